"""
Pterodactyl Panel Access
========================

Typed client for the panel application API.
"""

from .base import Allocation, BuildSpec, PanelServer
from .client import PterodactylClient

__all__ = [
    "Allocation",
    "BuildSpec",
    "PanelServer",
    "PterodactylClient",
]
