"""
Pterodactyl Panel Client
========================

Pterodactyl integration using direct REST API calls via httpx.

Every operation issues one authenticated request against the panel's
application API. Failures surface as RemoteApiError; nothing is retried,
retry policy belongs to the caller.

API Docs: https://dashflo.net/docs/api/pterodactyl/v1/
"""

from typing import Any, Dict, Optional
import logging

import httpx

from ..config import PanelConfig
from ..errors import NotFoundError, RemoteApiError, RemoteNotFoundError
from ..models import User
from .base import Allocation, BuildSpec, PanelServer

logger = logging.getLogger(__name__)


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _error_message(response: httpx.Response, fallback: str) -> str:
    """Pull a readable message out of a panel error body."""
    body = _json_body(response)
    if not isinstance(body, dict):
        return fallback

    errors = body.get("errors")
    if isinstance(errors, list) and errors:
        detail = errors[0].get("detail") if isinstance(errors[0], dict) else None
        if detail:
            return detail

    if body.get("message"):
        return str(body["message"])

    return fallback


class PterodactylClient:
    """
    Pterodactyl application API client.

    Usage:
        client = PterodactylClient(PanelConfig(
            api_url="https://panel.example.com",
            api_key="ptla_xxxx",
        ))
        server = client.get_server(order_id=42)
        client.suspend_server(server.id)
    """

    API_PREFIX = "/api/application"

    def __init__(self, config: PanelConfig, transport: Optional[httpx.BaseTransport] = None):
        """
        Initialize the panel client.

        Args:
            config: Panel URL, API key and SSO secret
            transport: Optional httpx transport (used by tests)
        """
        self.config = config
        self.client = httpx.Client(
            base_url=config.api_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {config.api_key}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            timeout=config.timeout,
            transport=transport,
        )

    def close(self):
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict] = None,
        params: Optional[Dict] = None,
    ) -> Dict[str, Any]:
        """Make an authenticated API request."""
        try:
            response = self.client.request(
                method=method,
                url=endpoint,
                json=data,
                params=params,
            )
        except httpx.HTTPError as e:
            logger.error(f"Panel request {method} {endpoint} failed: {e}")
            raise RemoteApiError(None, f"Request failed: {e}")

        if response.status_code == 404:
            raise RemoteNotFoundError(
                404,
                _error_message(response, f"Resource not found: {endpoint}"),
                {"body": _json_body(response)},
            )

        if response.is_error:
            message = _error_message(response, f"HTTP {response.status_code}")
            logger.warning(f"Panel returned {response.status_code} for {method} {endpoint}: {message}")
            raise RemoteApiError(response.status_code, message, {"body": _json_body(response)})

        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError:
            raise RemoteApiError(response.status_code, "Panel returned a non-JSON response")

    # =========================================
    # SERVERS
    # =========================================

    def create_server(self, payload: Dict[str, Any]) -> PanelServer:
        """Create a server. The payload follows POST /servers."""
        response = self._make_request("POST", f"{self.API_PREFIX}/servers", data=payload)
        server = PanelServer.from_api(response.get("attributes", {}))
        logger.info(f"Created panel server {server.id}", extra={"server_id": server.id})
        return server

    def get_server(self, order_id: int) -> PanelServer:
        """
        Fetch the server belonging to an order.

        Servers are created with the order ID as their external ID.

        Raises:
            RemoteNotFoundError: If the order has no server
        """
        response = self._make_request(
            "GET",
            f"{self.API_PREFIX}/servers/external/{order_id}",
            params={"include": "allocations"},
        )
        return PanelServer.from_api(response.get("attributes", {}))

    def build_server(self, server_id: int, spec: BuildSpec) -> PanelServer:
        """Update the resource envelope of a server."""
        response = self._make_request(
            "PATCH",
            f"{self.API_PREFIX}/servers/{server_id}/build",
            data=spec.to_build_payload(),
        )
        return PanelServer.from_api(response.get("attributes", {}))

    def suspend_server(self, server_id: int) -> None:
        self._make_request("POST", f"{self.API_PREFIX}/servers/{server_id}/suspend")

    def unsuspend_server(self, server_id: int) -> None:
        self._make_request("POST", f"{self.API_PREFIX}/servers/{server_id}/unsuspend")

    def delete_server(self, server_id: int) -> None:
        self._make_request("DELETE", f"{self.API_PREFIX}/servers/{server_id}")

    def server_ip(self, order_id: int) -> str:
        """The ip:port address of the order's default allocation."""
        server = self.get_server(order_id)
        allocation = server.default_allocation
        if allocation is None:
            return ""
        return allocation.address

    # =========================================
    # NODES
    # =========================================

    def free_allocation(self, node_id: int) -> Allocation:
        """
        First unassigned allocation of a node.

        Raises:
            NotFoundError: If every allocation on the node is taken
        """
        response = self._make_request(
            "GET",
            f"{self.API_PREFIX}/nodes/{node_id}/allocations",
            params={"filter[assigned]": "false", "per_page": 100},
        )
        for item in response.get("data", []):
            attributes = item.get("attributes", {})
            if not attributes.get("assigned", False):
                return Allocation.from_api(attributes)
        raise NotFoundError(f"No free allocation on node {node_id}")

    # =========================================
    # USERS
    # =========================================

    def get_or_create_user(self, user: User) -> Dict[str, Any]:
        """
        Find the panel account for a host user by email, creating it if absent.

        Returns:
            The panel user attributes
        """
        response = self._make_request(
            "GET",
            f"{self.API_PREFIX}/users",
            params={"filter[email]": user.email},
        )
        matches = response.get("data", [])
        if matches:
            return matches[0].get("attributes", {})

        response = self._make_request(
            "POST",
            f"{self.API_PREFIX}/users",
            data={
                "email": user.email,
                "username": user.username,
                "first_name": user.first_name or user.username,
                "last_name": user.last_name or user.username,
                "external_id": f"host-{user.id}",
            },
        )
        attributes = response.get("attributes", {})
        logger.info(f"Created panel user {attributes.get('id')} for host user {user.id}")
        return attributes

    def update_user(self, remote_user_id: int, fields: Dict[str, Any]) -> Dict[str, Any]:
        response = self._make_request(
            "PATCH",
            f"{self.API_PREFIX}/users/{remote_user_id}",
            data=fields,
        )
        return response.get("attributes", {})

    # =========================================
    # SSO
    # =========================================

    def request_sso_url(self, secret: str, remote_user_id: int) -> Dict[str, Any]:
        """
        Ask the panel's SSO addon for a one-time login URL.

        Returns:
            The response body; holds "redirect" when the addon is installed
        """
        return self._make_request(
            "GET",
            "/sso-wemx",
            params={"sso_secret": secret, "user_id": remote_user_id},
        )
