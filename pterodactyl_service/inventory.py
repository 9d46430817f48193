"""
Inventory Resolver
==================

Picks the location a server is deployed to and keeps location stock
in step with successful deployments.
"""

from typing import Any, Dict, Optional
import logging

from .errors import NotFoundError, OutOfStockError, ValidationError
from .models import Location, Node, Order, Package
from .store import HostStore

logger = logging.getLogger(__name__)


def location_id(value: Any) -> int:
    """
    Location ID as an integer.

    Raises:
        ValidationError: If the value is not an integer
    """
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid location: {value!r}")


class InventoryResolver:
    """Location selection and stock accounting on top of the host store."""

    def __init__(self, store: HostStore):
        self.store = store

    def resolve_location(self, order: Order) -> Location:
        """
        Location selected by the user at checkout, or the first location
        with stock left (lowest ID first) when none was selected.

        Raises:
            NotFoundError: Selected location does not exist, or nothing has stock
            OutOfStockError: Selected location has no stock left
            ValidationError: Selected location is not an ID
        """
        selected = order.option("location")
        if selected is not None:
            location = self.store.get_location(location_id(selected))
            if location is None:
                raise NotFoundError(f"Location not found: {selected}")
            if not location.available:
                raise OutOfStockError(f"{location.name} is out of stock")
            return location

        for location in sorted(self.store.list_locations(), key=lambda loc: loc.id):
            if location.available:
                return location

        raise NotFoundError("No location with available stock")

    def reserve(self, location: Location) -> bool:
        """
        Take one unit of stock from a location.

        Returns:
            True if a unit was taken, False for unlimited stock
        """
        if location.is_unlimited:
            return False

        remaining = self.store.decrement_stock(location.id)
        logger.info(
            f"Reserved stock at {location.name}, {remaining} left",
            extra={"location_id": location.id},
        )
        return True

    def release(self, location: Location) -> None:
        """Give back a unit taken by reserve()."""
        if location.is_unlimited:
            return

        stock = self.store.increment_stock(location.id)
        logger.info(
            f"Released stock at {location.name}, {stock} left",
            extra={"location_id": location.id},
        )

    def select_node(self, location: Location, package: Package) -> Node:
        """
        First node of a location (lowest ID) with room for the package.

        Raises:
            NotFoundError: If no node can take the server
        """
        memory = package.int_value("memory_limit", 0)
        disk = package.int_value("disk_limit", 0)
        for node in sorted(location.nodes, key=lambda n: n.id):
            if node.check_resource(memory, disk):
                return node
        raise NotFoundError(f"No node in {location.name} has room for this server")

    def list_available(self, package: Package) -> Dict[int, str]:
        """
        Locations of a package that can take a new server.

        A location qualifies when it has stock and one of its nodes has room
        for the package's memory and disk limits.

        Returns:
            Mapping of location ID to display label
        """
        memory = package.int_value("memory_limit", 0)
        disk = package.int_value("disk_limit", 0)

        available: Dict[int, str] = {}
        for raw_id in package.get("locations", []):
            location: Optional[Location] = self.store.get_location(location_id(raw_id))
            if location is None:
                logger.warning(f"Package {package.id} references unknown location {raw_id}")
                continue
            if not location.available:
                continue
            if not any(node.check_resource(memory, disk) for node in location.nodes):
                continue
            available[location.id] = f"{location.name} ({location.in_stock()})"

        return available
