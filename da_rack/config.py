"""DA Rack — Service configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. System config: /etc/da-rack/config.yaml
    3. User config:   ~/.da-rack/config.yaml
    4. Environment variables prefixed with DA_ (nested with ``__``)

The flat variables ``DA_WRITE_TOKEN`` and ``DA_INSTANCEID`` are also honoured
and take precedence over their nested forms.

Call ``Settings.load()`` once at startup and inject the instance through
FastAPI dependencies.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from da_rack import __service__

# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=8787, ge=1, le=65535)
    log_level: Literal["debug", "info", "warning", "error"] = "info"


class SecurityConfig(BaseModel):
    write_token: str | None = Field(
        default=None,
        description="Shared bearer secret. None = every request is rejected.",
    )


class ServiceConfig(BaseModel):
    instance_id: str = Field(
        default="default",
        description="Instance label appended to the service name in source_id.",
    )

    def source_id(self) -> str:
        return f"{__service__}/{self.instance_id}"


class StorageConfig(BaseModel):
    database: str = Field(
        default="~/.da-rack/da.db",
        description="SQLite database path, or ':memory:'.",
    )
    timeout: Annotated[float, Field(gt=0, le=300)] = 5.0


class DiagnosticsConfig(BaseModel):
    file: Path | None = Field(
        default=None,
        description="NDJSON file receiving diagnostic events. None = log only.",
    )


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    format: Literal["json", "console"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------

_FLAT_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "DA_WRITE_TOKEN": ("security", "write_token"),
    "DA_INSTANCEID": ("service", "instance_id"),
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DA_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    diagnostics: DiagnosticsConfig = Field(default_factory=DiagnosticsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from file + environment variables."""
        data: dict[str, dict[str, object]] = {}

        candidates = [
            Path("/etc/da-rack/config.yaml"),
            Path.home() / ".da-rack" / "config.yaml",
        ]
        if config_file:
            candidates.append(config_file)

        for path in candidates:
            if path.exists():
                import yaml  # lazy import, only needed with config files

                with path.open() as f:
                    loaded = yaml.safe_load(f) or {}
                    for block, values in loaded.items():
                        if isinstance(values, dict):
                            data.setdefault(block, {}).update(values)

        for env_name, (block, key) in _FLAT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                data.setdefault(block, {})[key] = value

        return cls(**data)


# Module-level singleton, replaced by ``Settings.load()`` at startup.
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def override_settings(settings: Settings) -> None:
    """Replace the module-level singleton. Used in tests."""
    global _settings
    _settings = settings
