"""
Keycloak user directory client for Entitlements Service.
"""

import asyncio
import time
from typing import List, Optional

import httpx
from pydantic import ValidationError

from shared.errors import DecodeError, TransportError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.tracing import trace_operation

from ..users.models import DirectoryListing, RawDirectoryEntry


class DirectoryClient:
    """Client that lists every user of a Keycloak realm.

    The listing is a single GET capped at ``page_size`` entries. Directories
    larger than the cap are silently truncated; there is no pagination, retry
    or caching.
    """

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient,
        realm: str = "redhat-external",
        page_size: int = 2000,
        timeout: float = 10.0,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client
        self.realm = realm
        self.page_size = page_size
        self.timeout = timeout
        self.metrics = metrics
        self.logger = get_logger("entitlements.directory_client")

    @classmethod
    def from_config(cls, config, http_client: httpx.AsyncClient, metrics: Optional[MetricsCollector] = None) -> "DirectoryClient":
        """Build a directory client from service configuration."""
        return cls(
            base_url=config.keycloak_server_url,
            http_client=http_client,
            realm=config.keycloak_realm,
            page_size=config.directory_page_size,
            timeout=config.directory_timeout_seconds,
            metrics=metrics,
        )

    @property
    def users_url(self) -> str:
        return f"{self.base_url}/auth/admin/realms/{self.realm}/users"

    async def fetch_all(self) -> List[RawDirectoryEntry]:
        """Fetch the user directory.

        Raises:
            TransportError: the provider is unreachable, too slow, or answers non-2xx
            DecodeError: the body is not a JSON list of user records
        """
        start_time = time.time()
        outcome = "error"
        try:
            with trace_operation("directory.fetch_all", realm=self.realm, page_size=self.page_size):
                body = await self._get_users_page()
                entries = self._parse(body)
            outcome = "ok"
            self.logger.debug("Fetched user directory", entries=len(entries))
            return entries
        finally:
            if self.metrics:
                self.metrics.increment_counter("directory_fetch_total", outcome=outcome)
                self.metrics.observe_histogram("directory_fetch_duration_seconds", time.time() - start_time)

    async def _get_users_page(self) -> bytes:
        try:
            # Whole-request deadline; httpx timeouts only bound single socket operations
            async with asyncio.timeout(self.timeout):
                response = await self.http_client.get(
                    self.users_url,
                    params={"max": self.page_size},
                    timeout=self.timeout,
                )
        except TimeoutError as e:
            self.logger.error("Directory fetch timed out", url=self.users_url, timeout=self.timeout)
            raise TransportError(
                "identity provider request timed out",
                details={"timeout_seconds": self.timeout}
            ) from e
        except httpx.HTTPError as e:
            self.logger.error("Directory fetch failed", url=self.users_url, error=str(e))
            raise TransportError(
                "identity provider unavailable",
                details={"http_error": str(e)}
            ) from e

        if response.is_error:
            self.logger.error("Directory fetch rejected", url=self.users_url, status_code=response.status_code)
            raise TransportError(
                f"identity provider error: {response.status_code}",
                details={"status_code": response.status_code}
            )

        return response.content

    def _parse(self, body: bytes) -> List[RawDirectoryEntry]:
        try:
            return DirectoryListing.validate_json(body)
        except ValidationError as e:
            self.logger.error("Directory response could not be decoded", errors=e.error_count())
            raise DecodeError(
                "identity provider returned an unreadable user listing",
                details={"errors": e.error_count()}
            ) from e
