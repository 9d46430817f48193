"""
Service Error Taxonomy
======================

All errors raised inside the adapter derive from ServiceError so the
lifecycle boundary can convert them into user-facing results.
"""

from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Base exception for adapter errors."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(ServiceError):
    """Caller-supplied input failed its declared constraints."""
    pass


class StateConflictError(ServiceError):
    """Operation attempted against an order in an incompatible state."""
    pass


class OutOfStockError(StateConflictError):
    """Location has no stock left."""
    pass


class NotFoundError(ServiceError):
    """Referenced location, package, order or remote entity does not exist."""
    pass


class RemoteApiError(ServiceError):
    """Non-success response or transport failure from the panel."""
    def __init__(
        self,
        status_code: Optional[int],
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        super().__init__(message, details)

    def __str__(self) -> str:
        if self.status_code is None:
            return f"[panel] {self.message}"
        return f"[panel HTTP {self.status_code}] {self.message}"


class RemoteNotFoundError(RemoteApiError, NotFoundError):
    """The panel answered 404 for the requested resource."""
    pass
