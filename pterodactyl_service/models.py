"""
Host-Owned Records
==================

Order, Package, Location and Node records as the host billing system
hands them to the adapter. The host persists them; the adapter only
reads them and writes back through HostStore.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import ValidationError


class OrderStatus(Enum):
    """Order states known to the host."""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"
    TERMINATED = "terminated"


# Stock value meaning "never runs out"
UNLIMITED_STOCK = -1


@dataclass
class User:
    """Host user that owns orders."""
    id: int
    email: str
    username: str
    first_name: str = ""
    last_name: str = ""


@dataclass
class Price:
    """Price snapshot: renewal price, period in days, cancellation fee."""
    renewal_price: float = 0.0
    period: int = 30
    cancellation_fee: float = 0.0


@dataclass
class Package:
    """Product definition configured by admins."""
    id: int
    name: str
    data: Dict[str, Any] = field(default_factory=dict)
    price: Price = field(default_factory=Price)

    def get(self, key: str, default: Any = None) -> Any:
        """Retrieve a value configured by admins for this package."""
        value = self.data.get(key)
        return default if value is None else value

    def int_value(self, key: str, default: int = 0) -> int:
        """
        Integer value configured by admins.

        Raises:
            ValidationError: If the value is not an integer
        """
        value = self.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Package {self.id} has an invalid {key}: {value!r}")


@dataclass
class Node:
    """A host within a location that runs server instances."""
    id: int
    location_id: int
    name: str = ""
    memory: int = 0
    disk: int = 0
    memory_overallocate: int = 0
    disk_overallocate: int = 0
    allocated_memory: int = 0
    allocated_disk: int = 0

    @staticmethod
    def _fits(total: int, overallocate: int, allocated: int, requested: int) -> bool:
        if overallocate == -1:
            return True
        limit = total * (1 + overallocate / 100)
        return allocated + requested <= limit

    def check_resource(self, memory: int, disk: int) -> bool:
        """Whether a server of the given memory/disk size still fits on this node."""
        return (
            self._fits(self.memory, self.memory_overallocate, self.allocated_memory, memory)
            and self._fits(self.disk, self.disk_overallocate, self.allocated_disk, disk)
        )


@dataclass
class Location:
    """Deployment zone with a stock counter."""
    id: int
    name: str
    stock: int = UNLIMITED_STOCK
    nodes: List[Node] = field(default_factory=list)

    @property
    def is_unlimited(self) -> bool:
        return self.stock == UNLIMITED_STOCK

    @property
    def available(self) -> bool:
        return self.stock != 0

    def in_stock(self) -> str:
        """Human readable stock label shown at checkout."""
        if self.is_unlimited:
            return "In Stock"
        if self.stock == 0:
            return "Out of Stock"
        return f"{self.stock} left"


@dataclass
class ExternalUser:
    """Link between a host user and their panel account."""
    external_id: int
    username: str
    password: str = ""
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Order:
    """A purchased service instance."""
    id: int
    user: User
    package: Package
    name: str = ""
    status: OrderStatus = OrderStatus.ACTIVE
    price: Optional[Price] = None
    due_date: datetime = field(default_factory=datetime.now)
    options: Dict[str, Any] = field(default_factory=dict)
    cancelled_at: Optional[str] = None
    cancel_reason: Optional[str] = None
    external_user: Optional[ExternalUser] = None

    def __post_init__(self):
        if self.price is None:
            self.price = Price(
                renewal_price=self.package.price.renewal_price,
                period=self.package.price.period,
                cancellation_fee=self.package.price.cancellation_fee,
            )
        if not self.name:
            self.name = self.package.name

    @property
    def user_id(self) -> int:
        return self.user.id

    def option(self, key: str, default: Any = None) -> Any:
        """Retrieve a custom option configured by the user at checkout."""
        value = self.options.get(key)
        return default if value is None else value

    def has_external_user(self) -> bool:
        return self.external_user is not None

    def cancel(self, cancelled_at: str, cancel_reason: Optional[str] = None) -> None:
        self.status = OrderStatus.CANCELLED
        self.cancelled_at = cancelled_at
        self.cancel_reason = cancel_reason

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "package_id": self.package.id,
            "name": self.name,
            "status": self.status.value,
            "price": {
                "renewal_price": self.price.renewal_price,
                "period": self.price.period,
                "cancellation_fee": self.price.cancellation_fee,
            },
            "due_date": self.due_date.isoformat(),
            "options": dict(self.options),
            "cancelled_at": self.cancelled_at,
            "cancel_reason": self.cancel_reason,
        }
