"""
Pterodactyl Service API
=======================

FastAPI routes the host mounts for Pterodactyl orders.

Endpoints:
- GET  /pterodactyl/{order_id}/login-to-panel - SSO redirect into the panel
- GET  /pterodactyl/{order_id}/buttons - Order page buttons
- POST /pterodactyl/{order_id}/renew - Generate a renewal invoice
- POST /pterodactyl/{order_id}/cancel-service - Cancel (or invoice the fee)
- POST /pterodactyl/{order_id}/cancel-undo - Undo a cancellation
- GET  /pterodactyl/packages/{package_id}/checkout-config - Checkout form
- GET  /api/health - Health check

The host session is represented by the X-User-Id header set by the
host's authentication middleware.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, Field
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from . import METADATA, SERVICE_KEY, __version__
from .billing import BillingEngine
from .config import ServiceConfig
from .errors import (
    NotFoundError,
    RemoteApiError,
    ServiceError,
    StateConflictError,
    ValidationError,
)
from .lifecycle import LifecycleAdapter
from .models import Order
from .panel import PterodactylClient
from .results import OperationResult
from .sso import SSORedirectHandler
from .store import HostStore

logger = logging.getLogger(__name__)


# ============================================
# PYDANTIC MODELS
# ============================================

class RenewRequest(BaseModel):
    """Renewal request: number of billing periods to pay for."""
    frequency: int = Field(ge=1, le=12)


class CancelRequest(BaseModel):
    """Cancellation request."""
    cancelled_at: str = Field(min_length=1)
    cancel_reason: Optional[str] = Field(default=None, max_length=255)
    gateway: Optional[str] = None


# ============================================
# RESPONSES
# ============================================

def status_code_for(error: Optional[ServiceError]) -> int:
    """HTTP status for a failed operation."""
    if isinstance(error, ValidationError):
        return 422
    if isinstance(error, StateConflictError):
        return 409
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, RemoteApiError):
        return 502
    return 400


def respond(result: OperationResult, redirect_status: int = 303):
    if not result.ok:
        return JSONResponse(status_code=status_code_for(result.error), content=result.to_dict())
    if result.redirect_url:
        return RedirectResponse(result.redirect_url, status_code=redirect_status)
    return JSONResponse(content=result.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request body errors in the same shape as failed operations."""
    message = "Invalid request"
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return JSONResponse(status_code=422, content={"success": False, "message": message})


# ============================================
# APP FACTORY
# ============================================

def create_app(
    config: ServiceConfig,
    store: HostStore,
    billing: BillingEngine,
    client: PterodactylClient,
) -> FastAPI:
    """Create the FastAPI application around the given collaborators."""
    adapter = LifecycleAdapter(config, store, billing, client)
    sso = SSORedirectHandler(config.panel, client)
    limiter = Limiter(key_func=get_remote_address)

    app = FastAPI(
        title="Pterodactyl Service",
        description="Game server provisioning for host orders",
        version=__version__,
    )
    app.state.limiter = limiter
    app.state.adapter = adapter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.on_event("shutdown")
    async def shutdown_event():
        client.close()

    # ----------------------------------------
    # AUTH DEPENDENCIES
    # ----------------------------------------

    async def get_current_user_id(request: Request) -> int:
        """Identity of the logged-in host user."""
        user_id = request.headers.get("X-User-Id")
        if not user_id:
            raise HTTPException(status_code=401, detail="Not authenticated")
        try:
            return int(user_id)
        except ValueError:
            raise HTTPException(status_code=401, detail="Not authenticated")

    async def get_owned_order(order_id: int, user_id: int = Depends(get_current_user_id)) -> Order:
        """The order, if it belongs to the current user."""
        order = store.get_order(order_id)
        if order is None:
            raise HTTPException(status_code=404, detail="Order not found")
        if order.user_id != user_id:
            raise HTTPException(status_code=403, detail="This order does not belong to you")
        return order

    # ----------------------------------------
    # ROUTES
    # ----------------------------------------

    @app.get("/api/health")
    async def health_check() -> Dict[str, Any]:
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "service": SERVICE_KEY,
            "metadata": METADATA,
            "panel_configured": config.panel.is_configured,
            "sso_enabled": config.panel.sso_enabled,
        }

    @app.get("/pterodactyl/{order_id}/login-to-panel")
    @limiter.limit("10/minute")
    def login_to_panel(request: Request, order: Order = Depends(get_owned_order)):
        return respond(sso.login_url(order), redirect_status=307)

    @app.get("/pterodactyl/{order_id}/buttons")
    def service_buttons(order: Order = Depends(get_owned_order)):
        return {"buttons": adapter.service_buttons(order)}

    @app.post("/pterodactyl/{order_id}/renew")
    def renew(body: RenewRequest, order: Order = Depends(get_owned_order)):
        return respond(adapter.renew(order, body.frequency))

    @app.post("/pterodactyl/{order_id}/cancel-service")
    def cancel_service(body: CancelRequest, order: Order = Depends(get_owned_order)):
        return respond(adapter.cancel(order, body.cancelled_at, body.cancel_reason, body.gateway))

    @app.post("/pterodactyl/{order_id}/cancel-undo")
    def cancel_undo(order: Order = Depends(get_owned_order)):
        return respond(adapter.undo_cancel(order))

    @app.get("/pterodactyl/packages/{package_id}/checkout-config")
    def checkout_config(package_id: int):
        package = store.get_package(package_id)
        if package is None:
            raise HTTPException(status_code=404, detail="Package not found")
        try:
            fields = adapter.checkout_config(package)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=e.message)
        return {"fields": fields}

    return app
