"""
Unit tests for the Keycloak directory client.
"""

import asyncio
import json

import httpx
import pytest

from service_entitlements.app.directory.client import DirectoryClient
from shared.errors import DecodeError, TransportError
from shared.metrics import MetricsCollector
from shared.test_helpers import DirectoryDataFactory, make_test_config

USERS_URL = "http://keycloak.test/auth/admin/realms/redhat-external/users"


def _client(handler, **kwargs) -> DirectoryClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DirectoryClient("http://keycloak.test/", http_client, **kwargs)


class TestDirectoryClient:
    """Test cases for DirectoryClient."""

    @pytest.fixture
    def directory(self):
        return DirectoryDataFactory.create_directory()

    @pytest.mark.asyncio
    async def test_fetch_all_success(self, directory):
        """The listing is parsed into raw entries in provider order."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=directory)

        entries = await _client(handler).fetch_all()

        assert [e.username for e in entries] == ["alice", "bob", "carol"]
        assert entries[0].first_name == "Alice"
        assert entries[1].attributes["newEntitlements"] == ["x", "y"]
        assert len(requests) == 1
        assert str(requests[0].url) == f"{USERS_URL}?max=2000"
        assert requests[0].method == "GET"

    @pytest.mark.asyncio
    async def test_page_size_and_realm_are_configurable(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url)
            return httpx.Response(200, json=[])

        entries = await _client(handler, realm="other", page_size=5).fetch_all()

        assert entries == []
        assert seen[0].path == "/auth/admin/realms/other/users"
        assert seen[0].params["max"] == "5"

    @pytest.mark.asyncio
    async def test_null_fields_read_as_absent(self):
        """One entry with null fields does not spoil the rest of the listing."""
        alice = DirectoryDataFactory.create_user("alice").to_keycloak()
        alice["email"] = None
        alice["firstName"] = None
        listing = [alice, {"username": "bob", "enabled": None, "attributes": None}]

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=listing)

        entries = await _client(handler).fetch_all()

        assert [e.username for e in entries] == ["alice", "bob"]
        assert entries[0].email == ""
        assert entries[0].first_name == ""
        assert entries[0].attributes["account_id"] == ["42"]
        assert entries[1].enabled is False
        assert entries[1].attributes == {}

    @pytest.mark.asyncio
    async def test_every_call_fetches_again(self, directory):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=directory)

        client = _client(handler)
        await client.fetch_all()
        await client.fetch_all()

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_connection_error_is_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        with pytest.raises(TransportError) as exc_info:
            await _client(handler).fetch_all()

        assert "Connection refused" in exc_info.value.details["http_error"]

    @pytest.mark.asyncio
    async def test_error_status_is_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="unavailable")

        with pytest.raises(TransportError) as exc_info:
            await _client(handler).fetch_all()

        assert exc_info.value.details["status_code"] == 503

    @pytest.mark.asyncio
    async def test_slow_provider_hits_deadline(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1)
            return httpx.Response(200, json=[])

        with pytest.raises(TransportError) as exc_info:
            await _client(handler, timeout=0.05).fetch_all()

        assert exc_info.value.details["timeout_seconds"] == 0.05

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        b"<html>not json</html>",
        b'{"users": []}',
        b'[{"username": "alice", "attributes": {"is_active": "true"}}]',
        b'[{"username": 5}]',
    ])
    async def test_unexpected_body_is_decode_error(self, body):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=body)

        with pytest.raises(DecodeError):
            await _client(handler).fetch_all()

    @pytest.mark.asyncio
    async def test_unknown_fields_are_ignored(self):
        body = [{"id": "1", "username": "alice", "createdTimestamp": 1, "totp": False}]

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=json.dumps(body))

        entries = await _client(handler).fetch_all()

        assert entries[0].username == "alice"
        assert entries[0].attributes == {}

    @pytest.mark.asyncio
    async def test_metrics_record_outcomes(self, directory):
        metrics = MetricsCollector("entitlements")
        responses = iter([httpx.Response(200, json=directory), httpx.Response(500)])

        def handler(request: httpx.Request) -> httpx.Response:
            return next(responses)

        client = _client(handler, metrics=metrics)
        await client.fetch_all()
        with pytest.raises(TransportError):
            await client.fetch_all()

        assert metrics.registry.get_sample_value("directory_fetch_total", {"outcome": "ok"}) == 1
        assert metrics.registry.get_sample_value("directory_fetch_total", {"outcome": "error"}) == 1
        assert metrics.registry.get_sample_value("directory_fetch_duration_seconds_count") == 2

    def test_from_config(self):
        config = make_test_config(keycloak_realm="lab", directory_page_size=10, directory_timeout_seconds=2.5)
        http_client = httpx.AsyncClient()

        client = DirectoryClient.from_config(config, http_client)

        assert client.users_url == "http://keycloak.test/auth/admin/realms/lab/users"
        assert client.page_size == 10
        assert client.timeout == 2.5
