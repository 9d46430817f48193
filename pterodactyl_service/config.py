"""
Pterodactyl Service Configuration
=================================

Single source of truth for all configuration values.
Reads from environment variables with sensible defaults.
"""

import os
from typing import List
from dataclasses import dataclass, field


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class PanelConfig:
    """Connection settings for the Pterodactyl panel."""
    api_url: str = ""
    api_key: str = ""
    sso_secret: str = ""
    timeout: float = 30.0

    @property
    def is_configured(self) -> bool:
        return bool(self.api_url and self.api_key)

    @property
    def sso_enabled(self) -> bool:
        return bool(self.sso_secret)

    @classmethod
    def from_env(cls) -> "PanelConfig":
        return cls(
            api_url=os.environ.get("PTERODACTYL_API_URL", "").rstrip("/"),
            api_key=os.environ.get("PTERODACTYL_API_KEY", ""),
            sso_secret=os.environ.get("PTERODACTYL_SSO_SECRET", ""),
            timeout=float(os.environ.get("PTERODACTYL_TIMEOUT", "30")),
        )


@dataclass
class ServiceConfig:
    """Master configuration for the service adapter."""

    panel: PanelConfig = field(default_factory=PanelConfig)

    # Lifecycle behavior
    date_format: str = "%d %b %Y"
    undo_cancel_requires_cancelled: bool = True
    invoice_url_template: str = "/invoice/{payment_id}"

    # Application settings
    log_level: str = "INFO"
    log_format: str = "json"
    cors_origins: List[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Load configuration from environment variables."""
        origins = os.environ.get("CORS_ORIGINS", "")
        return cls(
            panel=PanelConfig.from_env(),
            date_format=os.environ.get("DATE_FORMAT", "%d %b %Y"),
            undo_cancel_requires_cancelled=_env_bool("UNDO_CANCEL_REQUIRES_CANCELLED", True),
            invoice_url_template=os.environ.get("INVOICE_URL_TEMPLATE", "/invoice/{payment_id}"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            log_format=os.environ.get("LOG_FORMAT", "json"),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )
