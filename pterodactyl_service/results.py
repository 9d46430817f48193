"""
Operation Results
=================

Lifecycle and SSO operations report their outcome as an OperationResult
instead of raising; the caller decides how to present it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .billing import Payment
from .errors import ServiceError


@dataclass
class OperationResult:
    """Outcome of an order operation."""
    ok: bool
    message: str = ""
    redirect_url: Optional[str] = None
    payment: Optional[Payment] = None
    error: Optional[ServiceError] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(
        cls,
        message: str = "",
        redirect_url: Optional[str] = None,
        payment: Optional[Payment] = None,
        **data: Any,
    ) -> "OperationResult":
        return cls(ok=True, message=message, redirect_url=redirect_url, payment=payment, data=data)

    @classmethod
    def failure(cls, error: ServiceError, message: Optional[str] = None) -> "OperationResult":
        return cls(ok=False, message=message or error.message, error=error)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        result: Dict[str, Any] = {"success": self.ok, "message": self.message}
        if self.redirect_url:
            result["redirect_url"] = self.redirect_url
        if self.payment is not None:
            result["payment"] = self.payment.to_dict()
        if self.data:
            result.update(self.data)
        return result
