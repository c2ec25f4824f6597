"""
Resolution of an identity header to a directory user.
"""

from typing import Optional

from shared.errors import AuthenticationError, BridgeException, DirectoryError, UserNotFound
from shared.logging import get_logger, set_user_context
from shared.metrics import MetricsCollector
from shared.tracing import add_span_attributes

from ..directory.client import DirectoryClient
from ..identity.decoder import decode_identity
from .models import NormalizedUser
from .normalizer import normalize_users


class UserResolver:
    """Decode the caller, fetch the directory and find the caller in it.

    Every call fetches and normalizes the full directory again.
    """

    def __init__(self, directory_client: DirectoryClient, metrics: Optional[MetricsCollector] = None):
        self.directory_client = directory_client
        self.metrics = metrics
        self.logger = get_logger("entitlements.resolver")

    async def resolve(self, header_value: Optional[str]) -> NormalizedUser:
        """Return the normalized user named by an x-rh-identity header value.

        Raises:
            AuthenticationError: the header could not be decoded or validated
            DirectoryError: the directory could not be fetched
            UserNotFound: no complete directory entry has the username
        """
        try:
            assertion = decode_identity(header_value)
        except BridgeException as e:
            self._record("invalid_identity")
            raise AuthenticationError(e.message, details={"reason": e.code}) from e

        set_user_context(assertion.username)
        add_span_attributes(username=assertion.username)

        try:
            entries = await self.directory_client.fetch_all()
        except BridgeException as e:
            self._record("directory_error")
            self.logger.error("Could not fetch user directory", code=e.code, error=e.message)
            raise DirectoryError(e.message, details={"reason": e.code}) from e

        users = normalize_users(entries)
        if self.metrics and len(users) < len(entries):
            self.metrics.increment_counter("directory_entries_skipped_total", len(entries) - len(users))

        for user in users:
            if user.username == assertion.username:
                self._record("found")
                return user

        self._record("not_found")
        raise UserNotFound()

    def _record(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("user_resolutions_total", outcome=outcome)
