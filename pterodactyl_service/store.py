"""
Host Persistence Interface
==========================

The host application owns orders, packages and locations. The adapter
talks to its datastore through HostStore; InMemoryHostStore backs
development and tests.

In production, the host binds HostStore to its own ORM.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
import threading
import logging

from .errors import NotFoundError, OutOfStockError
from .models import Location, Order, Package, UNLIMITED_STOCK

logger = logging.getLogger(__name__)


class HostStore(ABC):
    """Access to host-owned records."""

    @abstractmethod
    def get_order(self, order_id: int) -> Optional[Order]:
        pass

    @abstractmethod
    def save_order(self, order: Order) -> None:
        pass

    @abstractmethod
    def get_package(self, package_id: int) -> Optional[Package]:
        pass

    @abstractmethod
    def get_location(self, location_id: int) -> Optional[Location]:
        pass

    @abstractmethod
    def list_locations(self) -> List[Location]:
        """All locations in ascending ID order."""
        pass

    @abstractmethod
    def decrement_stock(self, location_id: int) -> int:
        """
        Atomically take one unit of stock.

        Returns:
            The remaining stock

        Raises:
            NotFoundError: If the location does not exist
            OutOfStockError: If the location has no stock left
        """
        pass

    @abstractmethod
    def increment_stock(self, location_id: int) -> int:
        """Atomically give one unit of stock back. Returns the new stock."""
        pass


class InMemoryHostStore(HostStore):
    """
    Thread-safe in-memory host store.

    Stock changes happen under a lock so concurrent checkouts cannot
    take the last unit twice within one process.
    """

    def __init__(
        self,
        orders: Optional[List[Order]] = None,
        packages: Optional[List[Package]] = None,
        locations: Optional[List[Location]] = None,
    ):
        self._orders: Dict[int, Order] = {o.id: o for o in orders or []}
        self._packages: Dict[int, Package] = {p.id: p for p in packages or []}
        self._locations: Dict[int, Location] = {loc.id: loc for loc in locations or []}
        self._lock = threading.Lock()

    def add_order(self, order: Order) -> None:
        with self._lock:
            self._orders[order.id] = order

    def add_package(self, package: Package) -> None:
        with self._lock:
            self._packages[package.id] = package

    def add_location(self, location: Location) -> None:
        with self._lock:
            self._locations[location.id] = location

    def get_order(self, order_id: int) -> Optional[Order]:
        return self._orders.get(order_id)

    def save_order(self, order: Order) -> None:
        with self._lock:
            self._orders[order.id] = order
        logger.debug(f"Saved order {order.id} ({order.status.value})")

    def get_package(self, package_id: int) -> Optional[Package]:
        return self._packages.get(package_id)

    def get_location(self, location_id: int) -> Optional[Location]:
        return self._locations.get(location_id)

    def list_locations(self) -> List[Location]:
        return [self._locations[k] for k in sorted(self._locations)]

    def _locked_location(self, location_id: int) -> Location:
        location = self._locations.get(location_id)
        if location is None:
            raise NotFoundError(f"Location not found: {location_id}")
        return location

    def decrement_stock(self, location_id: int) -> int:
        with self._lock:
            location = self._locked_location(location_id)
            if location.stock == UNLIMITED_STOCK:
                return location.stock
            if location.stock <= 0:
                raise OutOfStockError(f"{location.name} is out of stock")
            location.stock -= 1
            return location.stock

    def increment_stock(self, location_id: int) -> int:
        with self._lock:
            location = self._locked_location(location_id)
            if location.stock != UNLIMITED_STOCK:
                location.stock += 1
            return location.stock
