"""Typed error taxonomy for the registry and installation subsystem."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional


class ErrorKind(str, Enum):
    PATH_RESOLUTION = "path_resolution"
    REGISTRY_UNAVAILABLE = "registry_unavailable"
    REGISTRY_FORMAT = "registry_format"
    NOT_FOUND = "not_found"
    NOT_INSTALLED = "not_installed"
    ALREADY_INSTALLED = "already_installed"
    INTEGRITY = "integrity"
    DOWNLOAD_FAILED = "download_failed"
    WRITE_FAILED = "write_failed"
    REMOVAL_FAILED = "removal_failed"
    PLUGIN_LAUNCH = "plugin_launch"


class ToolDockError(Exception):
    """Base error carrying a stable kind plus structured context."""

    kind: ErrorKind

    def __init__(
        self,
        message: str,
        *,
        name: Optional[str] = None,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        path: Optional[Path] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.name = name
        self.url = url
        self.status_code = status_code
        self.path = path


class PathResolutionError(ToolDockError):
    """No usable home/installation location could be resolved or created."""

    kind = ErrorKind.PATH_RESOLUTION


class RegistryUnavailableError(ToolDockError):
    """Network failure or non-success status while fetching the catalog."""

    kind = ErrorKind.REGISTRY_UNAVAILABLE


class RegistryFormatError(ToolDockError):
    """Catalog payload could not be decoded."""

    kind = ErrorKind.REGISTRY_FORMAT


class NotFoundError(ToolDockError):
    """Plugin name is absent from the catalog."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, name: str) -> None:
        super().__init__(f"plugin '{name}' not found in registry", name=name)


class NotInstalledError(ToolDockError):
    kind = ErrorKind.NOT_INSTALLED

    def __init__(self, name: str) -> None:
        super().__init__(f"plugin '{name}' is not installed", name=name)


class AlreadyInstalledError(ToolDockError):
    kind = ErrorKind.ALREADY_INSTALLED

    def __init__(self, name: str) -> None:
        super().__init__(f"plugin '{name}' is already installed", name=name)


class IntegrityError(ToolDockError):
    """Downloaded content does not match the catalog checksum."""

    kind = ErrorKind.INTEGRITY

    def __init__(self, name: str, expected: str, actual: str, *, url: Optional[str] = None) -> None:
        super().__init__(
            f"checksum mismatch for '{name}': expected {expected}, got {actual}",
            name=name,
            url=url,
        )
        self.expected = expected
        self.actual = actual


class DownloadFailedError(ToolDockError):
    kind = ErrorKind.DOWNLOAD_FAILED


class WriteFailedError(ToolDockError):
    kind = ErrorKind.WRITE_FAILED


class RemovalFailedError(ToolDockError):
    kind = ErrorKind.REMOVAL_FAILED


class PluginLaunchError(ToolDockError):
    """The plugin executable could not be started (distinct from a non-zero exit)."""

    kind = ErrorKind.PLUGIN_LAUNCH


__all__ = [
    "ErrorKind",
    "ToolDockError",
    "PathResolutionError",
    "RegistryUnavailableError",
    "RegistryFormatError",
    "NotFoundError",
    "NotInstalledError",
    "AlreadyInstalledError",
    "IntegrityError",
    "DownloadFailedError",
    "WriteFailedError",
    "RemovalFailedError",
    "PluginLaunchError",
]
