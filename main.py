"""
Pterodactyl Service API Entry Point
===================================

Builds the service app from environment configuration.

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8001

In production the host binds HostStore and BillingEngine to its own
datastore and payment engine; the in-memory versions used here are for
development.
"""

import logging

from dotenv import load_dotenv

from pterodactyl_service.api import create_app
from pterodactyl_service.billing import InMemoryBillingEngine
from pterodactyl_service.config import ServiceConfig
from pterodactyl_service.logging_config import configure_logging
from pterodactyl_service.panel import PterodactylClient
from pterodactyl_service.store import InMemoryHostStore

# Load .env file if present (dev mode)
load_dotenv()

logger = logging.getLogger(__name__)

# Load centralized config from environment
config = ServiceConfig.from_env()
configure_logging(config.log_level, config.log_format)

if not config.panel.is_configured:
    logger.warning("PTERODACTYL_API_URL / PTERODACTYL_API_KEY not set, panel calls will fail")

app = create_app(
    config=config,
    store=InMemoryHostStore(),
    billing=InMemoryBillingEngine(),
    client=PterodactylClient(config.panel),
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8001, log_level=config.log_level.lower())
