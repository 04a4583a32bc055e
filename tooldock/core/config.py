"""Configuration and storage paths for tooldock.

Paths are derived once from the host environment into a ``ToolDockConfig``
which is then handed to every component:

- ~/.tooldock/plugins   installed plugin executables
- ~/.tooldock/cache     cached registry snapshot (registry.json)
- ~/.tooldock/logs      log files

The registry location can be overridden with TOOLDOCK_REGISTRY_URL.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from tooldock.core.errors import PathResolutionError
from tooldock.utils.log import get_logger


logger = get_logger()

APP_NAME = "tooldock"
DEFAULT_REGISTRY_URL = (
    "https://raw.githubusercontent.com/Saurav-Paul/tooldock-plugins/main/plugins.json"
)
REGISTRY_URL_ENV_VAR = "TOOLDOCK_REGISTRY_URL"
REGISTRY_CACHE_FILE = "registry.json"
CACHE_TTL_SECONDS = 24 * 60 * 60
DEFAULT_HTTP_TIMEOUT = 30.0
DIRECTORY_MODE = 0o755


class ToolDockConfig(BaseModel):
    """Resolved locations and settings shared by all components."""

    model_config = {"frozen": True}

    home: Path
    plugin_dir: Path
    cache_dir: Path
    log_dir: Path
    registry_url: str = DEFAULT_REGISTRY_URL
    cache_ttl_seconds: float = Field(default=CACHE_TTL_SECONDS, gt=0)
    # Transport timeout for every registry and download request.
    http_timeout: float = Field(default=DEFAULT_HTTP_TIMEOUT, gt=0)

    @field_validator("registry_url")
    @classmethod
    def _registry_url_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("registry_url must not be empty")
        return value

    @property
    def registry_cache_path(self) -> Path:
        return self.cache_dir / REGISTRY_CACHE_FILE

    def plugin_path(self, name: str) -> Path:
        return self.plugin_dir / name


def resolve_home(home: Optional[Path] = None) -> Path:
    """Return the user home directory or raise ``PathResolutionError``."""
    if home is not None:
        home_dir = home.expanduser()
    else:
        # An empty $HOME expands to "/" rather than failing.
        if "HOME" in os.environ and not os.environ["HOME"].strip():
            raise PathResolutionError("cannot determine home directory: $HOME is empty")
        try:
            home_dir = Path.home()
        except (RuntimeError, KeyError) as exc:
            raise PathResolutionError(f"cannot determine home directory: {exc}") from exc
    if str(home_dir) in {"", ".", "~"} or home_dir == Path(home_dir.anchor):
        raise PathResolutionError(f"cannot determine home directory: {str(home_dir)!r}")
    return home_dir


def resolve_registry_url(env: Optional[Mapping[str, str]] = None) -> str:
    environ = os.environ if env is None else env
    override = (environ.get(REGISTRY_URL_ENV_VAR) or "").strip()
    return override or DEFAULT_REGISTRY_URL


def resolve_config(
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> ToolDockConfig:
    """Build the configuration from the environment and optional overrides."""
    home_dir = resolve_home(home)
    base = home_dir / f".{APP_NAME}"
    config = ToolDockConfig(
        home=home_dir,
        plugin_dir=base / "plugins",
        cache_dir=base / "cache",
        log_dir=base / "logs",
        registry_url=resolve_registry_url(env),
    )
    logger.debug(
        "[config] Resolved configuration",
        extra={
            "plugin_dir": str(config.plugin_dir),
            "cache_dir": str(config.cache_dir),
            "registry_url": config.registry_url,
        },
    )
    return config


def ensure_directories(config: ToolDockConfig) -> None:
    """Create the plugin and cache directories if they are missing."""
    for directory in (config.plugin_dir, config.cache_dir):
        try:
            directory.mkdir(mode=DIRECTORY_MODE, parents=True, exist_ok=True)
        except OSError as exc:
            raise PathResolutionError(
                f"failed to create directory {directory}: {exc}", path=directory
            ) from exc


__all__ = [
    "APP_NAME",
    "DEFAULT_REGISTRY_URL",
    "REGISTRY_URL_ENV_VAR",
    "CACHE_TTL_SECONDS",
    "ToolDockConfig",
    "resolve_home",
    "resolve_registry_url",
    "resolve_config",
    "ensure_directories",
]
