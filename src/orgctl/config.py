"""Runtime configuration for orgctl.

Settings are read from ``ORGCTL_*`` environment variables (and an
optional ``.env`` file in the working directory) through
pydantic-settings.  Paths for the credential daemon default to the
per-user configuration directory of the current platform.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from orgctl.exceptions import ConfigurationError


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no extra deps)."""
    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "orgctl"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "orgctl"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "orgctl"
    return Path.home() / ".config" / "orgctl"


class Settings(BaseSettings):
    """Central application settings."""

    model_config = SettingsConfigDict(
        env_prefix="ORGCTL_",
        extra="ignore",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    api_url: str = Field(
        default="https://api.orgctl.dev/v1",
        min_length=8,
        description="Base URL of the control-plane API.",
    )
    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Per-request transport timeout (seconds).",
    )

    config_dir: Path = Field(description="Root directory for daemon files.")
    socket_path: Path = Field(description="Unix socket of the credential daemon.")
    credentials_file: Path = Field(description="File the daemon persists credentials to.")
    daemon_log_file: Path = Field(description="Log file of a detached daemon.")
    daemon_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Socket timeout for daemon requests (seconds).",
    )

    org: str | None = Field(
        default=None,
        description="Default organization for commands that take --org.",
    )

    @model_validator(mode="before")
    @classmethod
    def _derive_daemon_paths(cls, data: Any) -> Any:
        # Daemon files live under config_dir unless overridden one by one.
        if not isinstance(data, dict):
            return data
        config_dir = Path(data.get("config_dir") or get_user_config_dir()).expanduser()
        defaults = {
            "config_dir": config_dir,
            "socket_path": config_dir / "daemon.sock",
            "credentials_file": config_dir / "credentials.json",
            "daemon_log_file": config_dir / "daemon.log",
        }
        for key, value in defaults.items():
            if not data.get(key):
                data[key] = value
        return data


def load_settings(**overrides: object) -> Settings:
    """Build :class:`Settings`, mapping validation failures to our hierarchy.

    Raises
    ------
    ConfigurationError
        When an ``ORGCTL_*`` variable (or an override) is invalid.
    """
    try:
        return Settings(**overrides)  # type: ignore[arg-type]
    except ValidationError as exc:
        fields = ", ".join(
            ".".join(str(part) for part in err["loc"]) for err in exc.errors()
        )
        raise ConfigurationError(
            f"Invalid configuration: {fields}",
            hint="Check the ORGCTL_* environment variables.",
        ) from exc
