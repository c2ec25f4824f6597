"""
Normalization of Keycloak directory entries into application user records.
"""

import re
from typing import Iterable, List, Optional

from shared.logging import get_logger

from .models import NormalizedUser, RawDirectoryEntry

logger = get_logger("entitlements.normalizer")

REQUIRED_ATTRIBUTES = (
    "is_active",
    "is_org_admin",
    "is_internal",
    "account_id",
    "org_id",
    "entitlements",
    "account_number",
)

NEW_ENTITLEMENTS_ATTRIBUTE = "newEntitlements"

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_VALUES = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_INTEGER = re.compile(r"([+-]?)0*([0-9]+)")
_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1


def parse_bool_or_default(value: str, default: bool = False) -> bool:
    """Parse a boolean attribute value, falling back to ``default``."""
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return default


def parse_int_or_default(value: str, default: int = 0) -> int:
    """Parse a decimal integer attribute value, falling back to ``default``."""
    match = _INTEGER.fullmatch(value)
    if match is None:
        return default
    sign, digits = match.groups()
    # Out of int64 range counts as unparseable
    if len(digits) > 19:
        return default
    number = int(sign + digits)
    if not _INT64_MIN <= number <= _INT64_MAX:
        return default
    return number


def missing_attributes(entry: RawDirectoryEntry) -> List[str]:
    """Names of required attributes that are absent or have no values."""
    return [attr for attr in REQUIRED_ATTRIBUTES if not entry.attributes.get(attr)]


def resolve_entitlements(entry: RawDirectoryEntry) -> str:
    """Entitlements payload, preferring the newer list-valued attribute."""
    new_entitlements = entry.attributes.get(NEW_ENTITLEMENTS_ATTRIBUTE)
    if new_entitlements:
        return "{" + ",".join(new_entitlements) + "}"
    return entry.attributes["entitlements"][0]


def normalize_user(entry: RawDirectoryEntry) -> Optional[NormalizedUser]:
    """Build a NormalizedUser, or return None when required attributes are missing."""
    missing = missing_attributes(entry)
    if missing:
        for attr in missing:
            logger.info("User does not have field", username=entry.username, attribute=attr)
        logger.info("Skipping user as attributes are missing", username=entry.username)
        return None

    attrs = entry.attributes
    return NormalizedUser(
        username=entry.username,
        id=parse_int_or_default(attrs["account_id"][0]),
        email=entry.email,
        first_name=entry.first_name,
        last_name=entry.last_name,
        account_number=attrs["account_number"][0],
        is_active=parse_bool_or_default(attrs["is_active"][0]),
        is_org_admin=parse_bool_or_default(attrs["is_org_admin"][0]),
        is_internal=parse_bool_or_default(attrs["is_internal"][0]),
        org_id=parse_int_or_default(attrs["org_id"][0]),
        display_name=entry.first_name,
        entitlements=resolve_entitlements(entry),
    )


def normalize_users(entries: Iterable[RawDirectoryEntry]) -> List[NormalizedUser]:
    """Normalize directory entries, dropping incomplete ones and keeping order."""
    users = []
    for entry in entries:
        user = normalize_user(entry)
        if user is not None:
            users.append(user)
    return users
