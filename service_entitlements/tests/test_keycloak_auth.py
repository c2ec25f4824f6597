"""
Unit tests for the Keycloak admin bearer-token auth flow.
"""

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from service_entitlements.app.directory.auth import KeycloakAdminAuth
from shared.errors import TransportError
from shared.test_helpers import make_test_config

TOKEN_URL = "http://keycloak.test/auth/realms/master/protocol/openid-connect/token"
USERS_URL = "http://keycloak.test/auth/admin/realms/redhat-external/users"


class FakeKeycloak:
    """Minimal token endpoint plus a protected resource."""

    def __init__(self, expires_in: int = 300):
        self.expires_in = expires_in
        self.issued = []
        self.token_forms = []
        self.rejected = set()
        self.seen_authorization = []

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url == TOKEN_URL:
            self.token_forms.append(parse_qs(request.content.decode()))
            token = f"token-{len(self.issued) + 1}"
            self.issued.append(token)
            return httpx.Response(200, json={"access_token": token, "expires_in": self.expires_in})

        authorization = request.headers.get("Authorization", "")
        self.seen_authorization.append(authorization)
        if authorization.removeprefix("Bearer ") in self.rejected:
            return httpx.Response(401)
        return httpx.Response(200, json=[])


def _client(keycloak: FakeKeycloak) -> httpx.AsyncClient:
    transport = httpx.MockTransport(keycloak.handler)
    auth = KeycloakAdminAuth(TOKEN_URL, "admin", "secret", transport=transport)
    return httpx.AsyncClient(auth=auth, transport=transport)


class TestKeycloakAdminAuth:
    """Test cases for KeycloakAdminAuth."""

    @pytest.mark.asyncio
    async def test_attaches_bearer_token(self):
        keycloak = FakeKeycloak()

        async with _client(keycloak) as client:
            response = await client.get(USERS_URL)

        assert response.status_code == 200
        assert keycloak.seen_authorization == ["Bearer token-1"]
        assert keycloak.token_forms[0] == {
            "grant_type": ["password"],
            "client_id": ["admin-cli"],
            "username": ["admin"],
            "password": ["secret"],
        }

    @pytest.mark.asyncio
    async def test_reuses_token_until_expiry(self):
        keycloak = FakeKeycloak()

        async with _client(keycloak) as client:
            await client.get(USERS_URL)
            await client.get(USERS_URL)
            await client.get(USERS_URL)

        assert keycloak.issued == ["token-1"]

    @pytest.mark.asyncio
    async def test_short_lived_token_is_refreshed(self):
        # expires_in below the leeway means the token is stale immediately
        keycloak = FakeKeycloak(expires_in=5)

        async with _client(keycloak) as client:
            await client.get(USERS_URL)
            await client.get(USERS_URL)

        assert keycloak.seen_authorization == ["Bearer token-1", "Bearer token-2"]

    @pytest.mark.asyncio
    async def test_refreshes_once_on_401(self):
        keycloak = FakeKeycloak()

        async with _client(keycloak) as client:
            await client.get(USERS_URL)
            keycloak.rejected.add("token-1")
            response = await client.get(USERS_URL)

        assert response.status_code == 200
        assert keycloak.seen_authorization == ["Bearer token-1", "Bearer token-1", "Bearer token-2"]

    @pytest.mark.asyncio
    async def test_persistent_401_is_returned(self):
        keycloak = FakeKeycloak()
        keycloak.rejected.update({"token-1", "token-2"})

        async with _client(keycloak) as client:
            response = await client.get(USERS_URL)

        assert response.status_code == 401
        assert keycloak.issued == ["token-1", "token-2"]

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_token_fetch(self):
        keycloak = FakeKeycloak()

        async with _client(keycloak) as client:
            responses = await asyncio.gather(*(client.get(USERS_URL) for _ in range(5)))

        assert all(r.status_code == 200 for r in responses)
        assert keycloak.issued == ["token-1"]

    @pytest.mark.asyncio
    async def test_token_endpoint_failure_is_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": "invalid_grant"})

        transport = httpx.MockTransport(handler)
        auth = KeycloakAdminAuth(TOKEN_URL, "admin", "wrong", transport=transport)

        async with httpx.AsyncClient(auth=auth, transport=transport) as client:
            with pytest.raises(TransportError):
                await client.get(USERS_URL)

    @pytest.mark.asyncio
    async def test_token_response_without_access_token(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"token_type": "Bearer"})

        transport = httpx.MockTransport(handler)
        auth = KeycloakAdminAuth(TOKEN_URL, "admin", "admin", transport=transport)

        async with httpx.AsyncClient(auth=auth, transport=transport) as client:
            with pytest.raises(TransportError):
                await client.get(USERS_URL)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("expires_in", ["soon", {"seconds": 60}, [300]])
    async def test_token_response_with_bad_expiry(self, expires_in):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"access_token": "t", "expires_in": expires_in})

        transport = httpx.MockTransport(handler)
        auth = KeycloakAdminAuth(TOKEN_URL, "admin", "admin", transport=transport)

        async with httpx.AsyncClient(auth=auth, transport=transport) as client:
            with pytest.raises(TransportError, match="invalid expires_in"):
                await client.get(USERS_URL)

    def test_from_config(self):
        config = make_test_config(keycloak_server="https://sso.example.com/", keycloak_password="pw")

        auth = KeycloakAdminAuth.from_config(config)

        assert auth.token_url == "https://sso.example.com/auth/realms/master/protocol/openid-connect/token"
        assert auth.username == "admin"
        assert auth.password == "pw"
        assert auth.client_id == "admin-cli"
