"""
Bearer-token authentication against the Keycloak admin API.
"""

import asyncio
import time
from typing import AsyncGenerator, Optional

import httpx

from shared.errors import TransportError
from shared.logging import get_logger

# Refresh this many seconds before the provider-reported expiry
EXPIRY_LEEWAY_SECONDS = 10.0


class KeycloakAdminAuth(httpx.Auth):
    """httpx auth flow that attaches an admin access token to every request.

    Tokens come from the master realm token endpoint using the password grant
    for the admin client. A token is reused until it is about to expire, and
    refreshed once if the provider rejects a request with 401. Refreshes are
    serialised so concurrent requests share one token fetch.
    """

    requires_response_body = False

    def __init__(
        self,
        token_url: str,
        username: str,
        password: str,
        client_id: str = "admin-cli",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token_url = token_url
        self.username = username
        self.password = password
        self.client_id = client_id
        self.transport = transport
        self.logger = get_logger("entitlements.keycloak_auth")
        self._access_token: Optional[str] = None
        self._expires_at = 0.0
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config, transport: Optional[httpx.AsyncBaseTransport] = None) -> "KeycloakAdminAuth":
        """Build the auth flow from service configuration."""
        return cls(
            token_url=f"{config.keycloak_server_url}/auth/realms/master/protocol/openid-connect/token",
            username=config.keycloak_username,
            password=config.keycloak_password,
            client_id=config.keycloak_client_id,
            transport=transport,
        )

    def sync_auth_flow(self, request: httpx.Request):
        raise RuntimeError("KeycloakAdminAuth only supports httpx.AsyncClient")

    async def async_auth_flow(self, request: httpx.Request) -> AsyncGenerator[httpx.Request, httpx.Response]:
        token = await self._get_token()
        request.headers["Authorization"] = f"Bearer {token}"
        response = yield request

        if response.status_code == 401:
            token = await self._get_token(stale=token)
            request.headers["Authorization"] = f"Bearer {token}"
            yield request

    async def _get_token(self, stale: Optional[str] = None) -> str:
        async with self._lock:
            if stale is not None and self._access_token == stale:
                self._access_token = None
            if self._access_token is None or time.monotonic() >= self._expires_at:
                await self._fetch_token()
            return self._access_token

    async def _fetch_token(self) -> None:
        form = {
            "grant_type": "password",
            "client_id": self.client_id,
            "username": self.username,
            "password": self.password,
        }
        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self.transport) as client:
                response = await client.post(self.token_url, data=form)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            self.logger.error("Token request failed", token_url=self.token_url, error=str(e))
            raise TransportError(
                "could not obtain identity provider token",
                details={"http_error": str(e)}
            ) from e
        except ValueError as e:
            raise TransportError(
                "identity provider returned an unreadable token response",
                details={"error": str(e)}
            ) from e

        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not access_token:
            raise TransportError("identity provider token response has no access_token")

        try:
            expires_in = float(payload.get("expires_in") or 60)
        except (TypeError, ValueError) as e:
            raise TransportError(
                "identity provider token response has an invalid expires_in",
                details={"expires_in": str(payload.get("expires_in"))}
            ) from e

        self._access_token = access_token
        self._expires_at = time.monotonic() + max(expires_in - EXPIRY_LEEWAY_SECONDS, 0.0)
        self.logger.debug("Obtained identity provider token", expires_in=expires_in)
