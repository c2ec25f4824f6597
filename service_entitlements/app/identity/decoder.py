"""
Decoding of the x-rh-identity request header.
"""

import base64
import binascii
from typing import Optional

from pydantic import ValidationError

from shared.errors import DecodeError, InvalidSubject, MalformedAssertion, MissingHeader

from .models import IdentityAssertion, XRHIdentity

IDENTITY_HEADER = "x-rh-identity"
USER_SUBJECT_TYPE = "User"


def decode_identity(header_value: Optional[str]) -> IdentityAssertion:
    """Turn a raw x-rh-identity header value into a validated assertion.

    The header is standard (padded) base64 of a JSON document shaped like
    ``{"identity": {"type": "User", "user": {"username": "..."}}}``.

    Raises:
        MissingHeader: header absent or empty
        DecodeError: not valid base64
        MalformedAssertion: decoded bytes are not a well-formed identity record
        InvalidSubject: identity is not a user or carries no username
    """
    if not header_value:
        raise MissingHeader()

    try:
        decoded = base64.b64decode(header_value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(
            f"{IDENTITY_HEADER} is not valid base64",
            details={"error": str(exc)}
        ) from exc

    try:
        document = XRHIdentity.model_validate_json(decoded)
    except ValidationError as exc:
        raise MalformedAssertion(details={"errors": exc.error_count()}) from exc

    identity = document.identity
    if identity.type != USER_SUBJECT_TYPE or identity.user.username == "":
        raise InvalidSubject(details={"type": identity.type})

    return IdentityAssertion(
        subject_type=identity.type,
        username=identity.user.username,
    )
