"""
Panel Data Types
================

Typed views over Pterodactyl application API payloads.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..models import Package


@dataclass
class Allocation:
    """An ip:port pair assigned to a server."""
    id: int
    ip: str
    port: int
    ip_alias: Optional[str] = None

    @property
    def address(self) -> str:
        return f"{self.ip_alias or self.ip}:{self.port}"

    @classmethod
    def from_api(cls, attributes: Dict[str, Any]) -> "Allocation":
        return cls(
            id=int(attributes["id"]),
            ip=attributes.get("ip", ""),
            port=int(attributes.get("port", 0)),
            ip_alias=attributes.get("ip_alias") or None,
        )


@dataclass
class PanelServer:
    """A server as reported by the panel."""
    id: int
    uuid: str
    name: str
    allocation: int
    external_id: Optional[str] = None
    user: Optional[int] = None
    suspended: bool = False
    allocations: List[Allocation] = field(default_factory=list)
    container: Dict[str, Any] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def default_allocation(self) -> Optional[Allocation]:
        for allocation in self.allocations:
            if allocation.id == self.allocation:
                return allocation
        return None

    @classmethod
    def from_api(cls, attributes: Dict[str, Any]) -> "PanelServer":
        relationships = attributes.get("relationships", {})
        allocation_data = relationships.get("allocations", {}).get("data", [])
        return cls(
            id=int(attributes["id"]),
            uuid=attributes.get("uuid", ""),
            name=attributes.get("name", ""),
            allocation=int(attributes.get("allocation") or 0),
            external_id=attributes.get("external_id"),
            user=attributes.get("user"),
            suspended=bool(attributes.get("suspended", False)),
            allocations=[
                Allocation.from_api(item.get("attributes", {}))
                for item in allocation_data
            ],
            container=attributes.get("container", {}),
            raw=attributes,
        )


@dataclass
class BuildSpec:
    """Resource envelope sent to the panel build endpoint."""
    memory: int = 0
    swap: int = 0
    disk: int = 0
    io: int = 500
    cpu: int = 100
    databases: int = 0
    backups: int = 0
    allocations: int = 0
    allocation: Optional[int] = None

    @classmethod
    def from_package(cls, package: Package, allocation: Optional[int] = None) -> "BuildSpec":
        return cls(
            memory=package.int_value("memory_limit", 0),
            swap=package.int_value("swap_limit", 0),
            disk=package.int_value("disk_limit", 0),
            io=package.int_value("block_io_weight", 500),
            cpu=package.int_value("cpu_limit", 100),
            databases=package.int_value("database_limit", 0),
            backups=package.int_value("backup_limit", 0),
            allocations=package.int_value("allocation_limit", 0),
            allocation=allocation,
        )

    @property
    def limits(self) -> Dict[str, int]:
        return {
            "memory": self.memory,
            "swap": self.swap,
            "disk": self.disk,
            "io": self.io,
            "cpu": self.cpu,
        }

    @property
    def feature_limits(self) -> Dict[str, int]:
        return {
            "databases": self.databases,
            "backups": self.backups,
            "allocations": self.allocations,
        }

    def to_build_payload(self) -> Dict[str, Any]:
        """Payload for PATCH /servers/{id}/build."""
        payload: Dict[str, Any] = dict(self.limits)
        if self.allocation is not None:
            payload["allocation"] = self.allocation
        payload["feature_limits"] = self.feature_limits
        return payload
