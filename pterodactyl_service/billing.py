"""
Billing Engine Interface
========================

The host's payment engine generates invoices and takes payment.
The adapter only asks it to generate, find and delete payments.

Flow:
1. Adapter generates an unpaid payment with a handler name
2. Host redirects the client to the invoice
3. Client pays through a host gateway
4. Host calls LifecycleAdapter.handle_paid_payment()
5. The handler applies the deferred renewal or cancellation
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import itertools
import threading
import logging

logger = logging.getLogger(__name__)


class PaymentStatus(Enum):
    UNPAID = "unpaid"
    PAID = "paid"


class PaymentHandler(Enum):
    """What happens to the order once the payment settles."""
    RENEWAL = "renewal"
    CANCEL = "cancel"


@dataclass
class Payment:
    """An invoice generated against an order."""
    id: int
    order_id: int
    user_id: int
    description: str
    amount: float
    due_date: datetime
    handler: PaymentHandler
    status: PaymentStatus = PaymentStatus.UNPAID
    options: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "id": self.id,
            "order_id": self.order_id,
            "user_id": self.user_id,
            "description": self.description,
            "amount": self.amount,
            "due_date": self.due_date.isoformat(),
            "handler": self.handler.value,
            "status": self.status.value,
            "options": dict(self.options),
        }


class BillingEngine(ABC):
    """Host payment engine."""

    @abstractmethod
    def generate(
        self,
        order_id: int,
        user_id: int,
        description: str,
        amount: float,
        due_date: datetime,
        handler: PaymentHandler,
        options: Optional[Dict[str, Any]] = None,
    ) -> Payment:
        pass

    @abstractmethod
    def find_unpaid(self, order_id: int, due_date: datetime) -> Optional[Payment]:
        """Find an unpaid payment of the order for the given due date."""
        pass

    @abstractmethod
    def delete(self, payment_id: int) -> None:
        pass

    @abstractmethod
    def mark_paid(self, payment_id: int) -> None:
        pass


class InMemoryBillingEngine(BillingEngine):
    """Thread-safe in-memory billing engine for development and tests."""

    def __init__(self):
        self._payments: Dict[int, Payment] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def generate(
        self,
        order_id: int,
        user_id: int,
        description: str,
        amount: float,
        due_date: datetime,
        handler: PaymentHandler,
        options: Optional[Dict[str, Any]] = None,
    ) -> Payment:
        with self._lock:
            payment = Payment(
                id=next(self._ids),
                order_id=order_id,
                user_id=user_id,
                description=description,
                amount=amount,
                due_date=due_date,
                handler=handler,
                options=dict(options or {}),
            )
            self._payments[payment.id] = payment

        logger.info(
            f"Generated {handler.value} payment {payment.id} for order {order_id}: {amount}",
            extra={"order_id": order_id, "payment_id": payment.id},
        )
        return payment

    def find_unpaid(self, order_id: int, due_date: datetime) -> Optional[Payment]:
        with self._lock:
            for payment in self._payments.values():
                if (
                    payment.order_id == order_id
                    and payment.status == PaymentStatus.UNPAID
                    and payment.due_date == due_date
                ):
                    return payment
        return None

    def delete(self, payment_id: int) -> None:
        with self._lock:
            self._payments.pop(payment_id, None)

    def mark_paid(self, payment_id: int) -> None:
        with self._lock:
            payment = self._payments.get(payment_id)
            if payment is not None:
                payment.status = PaymentStatus.PAID

    def get(self, payment_id: int) -> Optional[Payment]:
        return self._payments.get(payment_id)

    def for_order(self, order_id: int) -> List[Payment]:
        return [p for p in self._payments.values() if p.order_id == order_id]
