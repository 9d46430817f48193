"""
Pterodactyl Service Adapter
===========================

Billing-platform plugin that provisions and manages game servers on a
Pterodactyl panel in response to order lifecycle events.

This package provides:
- Checkout form generation from remote egg metadata
- Location/node inventory resolution with stock reservation
- Order lifecycle orchestration (create, renew, cancel, upgrade, ...)
- Single sign-on redirects into the panel
"""

__version__ = "1.0.0"

# Unique key used to store settings for this service in the host.
SERVICE_KEY = "pterodactyl"

METADATA = {
    "display_name": "Pterodactyl",
    "author": "WemX",
    "version": __version__,
    "wemx_version": ["*"],
}
