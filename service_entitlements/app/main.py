"""
Entitlements service for the Entitlements Bridge.
"""

from typing import Optional

import httpx
from fastapi import Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig

from .directory.auth import KeycloakAdminAuth
from .directory.client import DirectoryClient
from .identity.decoder import IDENTITY_HEADER
from .users.models import NormalizedUser
from .users.resolver import UserResolver

SERVICE_NAME = "entitlements"
SERVICE_PORT = 8090


class EntitlementsService(BaseService):
    """Entitlements service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(SERVICE_NAME, SERVICE_PORT, config)

        # Shared by all requests; httpx.AsyncClient is safe for concurrent use
        self.http_client = httpx.AsyncClient(
            auth=KeycloakAdminAuth.from_config(self.config, transport=transport),
            transport=transport,
            timeout=self.config.directory_timeout_seconds,
        )
        self.directory_client = DirectoryClient.from_config(self.config, self.http_client, self.metrics)
        self.resolver = UserResolver(self.directory_client, self.metrics)

        self._setup_entitlements_routes()

    def _setup_entitlements_routes(self):
        """Set up entitlements-specific routes."""

        @self.app.get("/")
        async def status():
            """Liveness probe."""
            return Response(status_code=200)

        @self.app.get("/api/entitlements/v1/services")
        async def services(request: Request):
            """Return the caller's entitlements payload verbatim."""
            user = await self._get_user(request)
            return PlainTextResponse(user.entitlements)

        @self.app.get("/api/entitlements/v1/compliance")
        async def compliance(request: Request):
            """Report the caller as compliant once they resolve."""
            await self._get_user(request)
            return JSONResponse({"result": "OK", "description": ""})

    async def _get_user(self, request: Request) -> NormalizedUser:
        return await self.resolver.resolve(request.headers.get(IDENTITY_HEADER))

    async def on_shutdown(self) -> None:
        await self.http_client.aclose()
        await super().on_shutdown()


def create_app(config: Optional[ServiceConfig] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
    """Create entitlements service application."""
    service = EntitlementsService(config=config, transport=transport)
    return service.app


if __name__ == "__main__":
    service = EntitlementsService()
    service.run()
