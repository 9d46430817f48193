"""
Tests for the Pterodactyl Panel Client
======================================

Exercises the client against an httpx mock transport.
"""

import json
import httpx
import pytest

from pterodactyl_service.config import PanelConfig
from pterodactyl_service.errors import NotFoundError, RemoteApiError, RemoteNotFoundError
from pterodactyl_service.models import User
from pterodactyl_service.panel import BuildSpec, PterodactylClient


SERVER_ATTRIBUTES = {
    "id": 11,
    "uuid": "a1b2c3",
    "name": "Minecraft 1GB",
    "external_id": "42",
    "user": 99,
    "suspended": False,
    "allocation": 101,
    "relationships": {
        "allocations": {
            "data": [
                {"attributes": {"id": 100, "ip": "10.0.0.5", "port": 25564}},
                {"attributes": {"id": 101, "ip": "10.0.0.5", "ip_alias": "mc.example.com", "port": 25565}},
            ]
        }
    },
}


class Recorder:
    """Mock transport handler that records requests and replays canned responses."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"errors": [{"detail": "The requested resource could not be found."}]})
        status, body = self.routes[key]
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def make_client(routes):
    recorder = Recorder(routes)
    client = PterodactylClient(
        PanelConfig(api_url="https://panel.test", api_key="ptla_key", sso_secret="secret"),
        transport=httpx.MockTransport(recorder),
    )
    return client, recorder


class TestRequests:
    """Authentication and error mapping."""

    def test_bearer_token_sent(self):
        client, recorder = make_client({
            ("GET", "/api/application/servers/external/42"): (200, {"attributes": SERVER_ATTRIBUTES}),
        })
        client.get_server(42)
        assert recorder.last.headers["Authorization"] == "Bearer ptla_key"
        assert recorder.last.headers["Accept"] == "application/json"

    def test_not_found(self):
        client, _ = make_client({})
        with pytest.raises(RemoteNotFoundError) as exc:
            client.get_server(42)
        assert exc.value.status_code == 404
        assert isinstance(exc.value, NotFoundError)

    def test_error_detail_used(self):
        client, _ = make_client({
            ("POST", "/api/application/servers/11/suspend"): (
                500, {"errors": [{"code": "HttpException", "detail": "Daemon offline"}]},
            ),
        })
        with pytest.raises(RemoteApiError) as exc:
            client.suspend_server(11)
        assert exc.value.status_code == 500
        assert exc.value.message == "Daemon offline"

    def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = PterodactylClient(
            PanelConfig(api_url="https://panel.test", api_key="k"),
            transport=httpx.MockTransport(handler),
        )
        with pytest.raises(RemoteApiError) as exc:
            client.delete_server(11)
        assert exc.value.status_code is None
        assert "connection refused" in exc.value.message

    def test_empty_response(self):
        client, recorder = make_client({
            ("DELETE", "/api/application/servers/11"): (204, None),
        })
        assert client.delete_server(11) is None
        assert recorder.last.method == "DELETE"


class TestServers:
    """Server operations."""

    def test_get_server_parses_allocations(self):
        client, recorder = make_client({
            ("GET", "/api/application/servers/external/42"): (200, {"attributes": SERVER_ATTRIBUTES}),
        })
        server = client.get_server(42)
        assert server.id == 11
        assert server.default_allocation.port == 25565
        assert recorder.last.url.params["include"] == "allocations"

    def test_server_ip_prefers_alias(self):
        client, _ = make_client({
            ("GET", "/api/application/servers/external/42"): (200, {"attributes": SERVER_ATTRIBUTES}),
        })
        assert client.server_ip(42) == "mc.example.com:25565"

    def test_create_server(self):
        client, recorder = make_client({
            ("POST", "/api/application/servers"): (201, {"attributes": SERVER_ATTRIBUTES}),
        })
        server = client.create_server({"name": "x", "external_id": "42"})
        assert server.id == 11
        assert json.loads(recorder.last.content) == {"name": "x", "external_id": "42"}

    def test_build_server_payload(self):
        client, recorder = make_client({
            ("PATCH", "/api/application/servers/11/build"): (200, {"attributes": SERVER_ATTRIBUTES}),
        })
        client.build_server(11, BuildSpec(memory=2048, disk=10000, databases=2, allocation=101))
        payload = json.loads(recorder.last.content)
        assert payload["allocation"] == 101
        assert payload["memory"] == 2048
        assert payload["io"] == 500
        assert payload["cpu"] == 100
        assert payload["feature_limits"] == {"databases": 2, "backups": 0, "allocations": 0}

    def test_suspend_and_unsuspend(self):
        client, recorder = make_client({
            ("POST", "/api/application/servers/11/suspend"): (204, None),
            ("POST", "/api/application/servers/11/unsuspend"): (204, None),
        })
        client.suspend_server(11)
        client.unsuspend_server(11)
        assert [r.url.path for r in recorder.requests] == [
            "/api/application/servers/11/suspend",
            "/api/application/servers/11/unsuspend",
        ]

    def test_free_allocation(self):
        client, _ = make_client({
            ("GET", "/api/application/nodes/3/allocations"): (200, {"data": [
                {"attributes": {"id": 1, "ip": "10.0.0.1", "port": 25565, "assigned": True}},
                {"attributes": {"id": 2, "ip": "10.0.0.1", "port": 25566, "assigned": False}},
            ]}),
        })
        assert client.free_allocation(3).id == 2

    def test_no_free_allocation(self):
        client, _ = make_client({
            ("GET", "/api/application/nodes/3/allocations"): (200, {"data": []}),
        })
        with pytest.raises(NotFoundError):
            client.free_allocation(3)


class TestUsers:
    """User operations."""

    user = User(id=7, email="player@example.com", username="player")

    def test_existing_user_found(self):
        client, recorder = make_client({
            ("GET", "/api/application/users"): (200, {"data": [{"attributes": {"id": 99, "email": "player@example.com"}}]}),
        })
        assert client.get_or_create_user(self.user)["id"] == 99
        assert recorder.last.url.params["filter[email]"] == "player@example.com"
        assert len(recorder.requests) == 1

    def test_missing_user_created(self):
        client, recorder = make_client({
            ("GET", "/api/application/users"): (200, {"data": []}),
            ("POST", "/api/application/users"): (201, {"attributes": {"id": 100, "email": "player@example.com"}}),
        })
        assert client.get_or_create_user(self.user)["id"] == 100
        body = json.loads(recorder.last.content)
        assert body["first_name"] == "player"
        assert body["external_id"] == "host-7"

    def test_update_user(self):
        client, recorder = make_client({
            ("PATCH", "/api/application/users/99"): (200, {"attributes": {"id": 99}}),
        })
        client.update_user(99, {"password": "hunter22"})
        assert json.loads(recorder.last.content) == {"password": "hunter22"}


class TestSSO:
    """SSO endpoint."""

    def test_request_sso_url(self):
        client, recorder = make_client({
            ("GET", "/sso-wemx"): (200, {"redirect": "https://panel.test/sso/abc"}),
        })
        assert client.request_sso_url("secret", 99) == {"redirect": "https://panel.test/sso/abc"}
        assert recorder.last.url.params["sso_secret"] == "secret"
        assert recorder.last.url.params["user_id"] == "99"

    def test_sso_error_keeps_body(self):
        client, _ = make_client({
            ("GET", "/sso-wemx"): (403, {"message": "Invalid SSO secret"}),
        })
        with pytest.raises(RemoteApiError) as exc:
            client.request_sso_url("wrong", 99)
        assert exc.value.message == "Invalid SSO secret"
        assert exc.value.details["body"] == {"message": "Invalid SSO secret"}
