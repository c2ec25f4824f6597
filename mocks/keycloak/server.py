"""
Mock Keycloak server providing the admin token and user listing endpoints.
"""

import uuid
from typing import Dict, Any, List, Optional
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import FastAPI, HTTPException, Depends, Form, Query
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from shared.logging import get_logger


def _attributes(
    account_id: str,
    org_id: str,
    account_number: str,
    entitlements: Optional[str] = None,
    new_entitlements: Optional[List[str]] = None,
    is_active: str = "true",
    is_org_admin: str = "false",
    is_internal: str = "false",
) -> Dict[str, List[str]]:
    attributes = {
        "is_active": [is_active],
        "is_org_admin": [is_org_admin],
        "is_internal": [is_internal],
        "account_id": [account_id],
        "org_id": [org_id],
        "account_number": [account_number],
    }
    if entitlements is not None:
        attributes["entitlements"] = [entitlements]
    if new_entitlements is not None:
        attributes["newEntitlements"] = new_entitlements
    return attributes


DEFAULT_USERS: List[Dict[str, Any]] = [
    {
        "username": "jdoe",
        "enabled": True,
        "firstName": "John",
        "lastName": "Doe",
        "email": "jdoe@example.com",
        "attributes": _attributes(
            "1001", "5001", "AC1001",
            entitlements='{"insights": {"is_entitled": true, "is_trial": false}}',
            is_org_admin="true",
        ),
    },
    {
        "username": "asmith",
        "enabled": True,
        "firstName": "Anna",
        "lastName": "Smith",
        "email": "asmith@example.com",
        "attributes": _attributes(
            "1002", "5001", "AC1002",
            entitlements="{}",
            new_entitlements=['"insights": {"is_entitled": true}', '"ansible": {"is_entitled": false}'],
        ),
    },
    {
        "username": "incomplete",
        "enabled": True,
        "firstName": "Ivan",
        "lastName": "Complete",
        "email": "incomplete@example.com",
        "attributes": {
            "is_active": ["true"],
            "is_org_admin": ["false"],
            "is_internal": ["false"],
            "account_id": ["1003"],
            "org_id": ["5002"],
            "entitlements": ["{}"],
        },
    },
    {
        "username": "sloppy",
        "enabled": False,
        "firstName": "Sam",
        "lastName": "Loppy",
        "email": "sloppy@example.com",
        "attributes": _attributes(
            "not-a-number", "5003", "AC1004",
            entitlements="{}",
            is_active="yes",
            is_internal="1",
        ),
    },
]


class MockKeycloakServer:
    """Mock Keycloak server implementation."""

    def __init__(self, port: int = 8080, users: Optional[List[Dict[str, Any]]] = None):
        self.port = port
        self.logger = get_logger("mock.keycloak")
        self.app = FastAPI(title="Mock Keycloak", version="1.0.0")

        self.realm = "redhat-external"
        self.client_id = "admin-cli"
        self.admin_username = "admin"
        self.admin_password = "admin"
        self.issuer = f"http://localhost:{port}/auth/realms/master"
        self.signing_key = "mock-keycloak-admin-signing-key-0001"

        self.users = DEFAULT_USERS if users is None else users
        self.token_requests = 0
        self.listing_requests = 0

        self._setup_routes()

    def revoke_tokens(self):
        """Invalidate every token issued so far."""
        self.signing_key = f"mock-signing-key-{uuid.uuid4().hex}"

    def _setup_routes(self):
        """Set up mock Keycloak routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "mock-keycloak",
                "message": "Mock Keycloak server for the Entitlements Bridge",
                "version": "1.0.0",
                "realm": self.realm,
            }

        @self.app.post("/auth/realms/master/protocol/openid-connect/token")
        async def token_endpoint(
            grant_type: str = Form(...),
            client_id: str = Form(...),
            username: Optional[str] = Form(None),
            password: Optional[str] = Form(None),
        ):
            """Admin token endpoint (password grant only)."""
            self.token_requests += 1

            if client_id != self.client_id:
                raise HTTPException(status_code=400, detail="Invalid client")
            if grant_type != "password":
                raise HTTPException(status_code=400, detail="Unsupported grant type")
            if username != self.admin_username or password != self.admin_password:
                raise HTTPException(status_code=401, detail="Invalid user credentials")

            return self._generate_admin_token(username)

        @self.app.get("/auth/admin/realms/{realm}/users")
        async def list_users(
            realm: str,
            max: int = Query(100, ge=0),
            credentials: HTTPAuthorizationCredentials = Depends(HTTPBearer()),
        ):
            """Admin user listing, truncated to ``max`` entries."""
            self._verify_admin_token(credentials.credentials)
            if realm != self.realm:
                raise HTTPException(status_code=404, detail="Realm not found")

            self.listing_requests += 1
            return self.users[:max]

    def _verify_admin_token(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self.signing_key,
                algorithms=["HS256"],
                audience=self.client_id,
            )
        except jwt.InvalidTokenError:
            self.logger.info("Rejected admin token")
            raise HTTPException(status_code=401, detail="HTTP 401 Unauthorized")

    def _generate_admin_token(self, username: str) -> Dict[str, Any]:
        """Generate an admin access token."""
        now = datetime.now(timezone.utc)

        access_token_payload = {
            "iss": self.issuer,
            "sub": username,
            "aud": self.client_id,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=1)).timestamp()),
            "azp": self.client_id,
            "preferred_username": username,
        }

        access_token = jwt.encode(access_token_payload, self.signing_key, algorithm="HS256")

        return {
            "access_token": access_token,
            "expires_in": 60,
            "refresh_expires_in": 1800,
            "token_type": "Bearer",
            "not-before-policy": 0,
            "scope": "profile email"
        }


def create_app():
    """Create mock Keycloak application."""
    server = MockKeycloakServer()
    return server.app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8080)
