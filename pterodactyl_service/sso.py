"""
Panel Single Sign-On
====================

Logs a client into the panel without a password: the shared SSO secret
and the client's panel user ID are exchanged for a one-time login URL,
which the caller redirects to.

Requires the SSO addon on the panel:
https://docs.wemx.net/en/third-party/pterodactyl#pterodactyl-sso
"""

import logging

from .config import PanelConfig
from .errors import RemoteApiError, ServiceError, StateConflictError
from .models import Order
from .panel import PterodactylClient
from .results import OperationResult

logger = logging.getLogger(__name__)


DEFAULT_LOGIN_ERROR = "Unable to log in to the panel, please try again later."
SSO_NOT_INSTALLED = (
    "Failed to connect to Pterodactyl | The SSO package is no longer installed "
    "https://docs.wemx.net/en/third-party/pterodactyl#pterodactyl-sso"
)


class SSORedirectHandler:
    """Builds one-time panel login URLs for orders."""

    def __init__(self, config: PanelConfig, client: PterodactylClient):
        self.config = config
        self.client = client

    def login_url(self, order: Order) -> OperationResult:
        if not self.config.sso_enabled:
            return OperationResult.failure(
                StateConflictError("Panel login is not enabled"), DEFAULT_LOGIN_ERROR
            )

        try:
            remote_user = self.client.get_or_create_user(order.user)
            response = self.client.request_sso_url(self.config.sso_secret, remote_user["id"])
        except RemoteApiError as e:
            if e.status_code is not None and 200 <= e.status_code < 300:
                # Panel answered but not with the addon's JSON
                return self._not_installed()
            logger.warning(f"SSO request failed for order {order.id}: {e}", extra={"order_id": order.id})
            body = e.details.get("body")
            message = DEFAULT_LOGIN_ERROR
            if isinstance(body, dict) and body.get("message"):
                message = str(body["message"])
            return OperationResult.failure(e, message)
        except ServiceError as e:
            return OperationResult.failure(e, DEFAULT_LOGIN_ERROR)

        redirect = response.get("redirect") if isinstance(response, dict) else None
        if not redirect:
            return self._not_installed()

        return OperationResult.success("Redirecting to panel", redirect_url=redirect)

    @staticmethod
    def _not_installed() -> OperationResult:
        logger.error("Panel SSO response has no redirect, is the SSO addon installed?")
        return OperationResult.failure(RemoteApiError(200, SSO_NOT_INSTALLED))
