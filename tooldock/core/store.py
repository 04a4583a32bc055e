"""Installed plugin executables under the plugin directory."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional, Set

from tooldock.core.catalog import is_valid_plugin_name
from tooldock.core.config import ToolDockConfig
from tooldock.core.errors import NotInstalledError, RemovalFailedError, WriteFailedError
from tooldock.utils.log import get_logger

logger = get_logger()

EXECUTABLE_MODE = 0o755
REGULAR_MODE = 0o644


class InstallationStore:
    """Owns ``config.plugin_dir``: one regular file per installed plugin."""

    def __init__(self, config: ToolDockConfig) -> None:
        self.config = config
        self.root = config.plugin_dir

    def _path_for(self, name: str) -> Optional[Path]:
        if not is_valid_plugin_name(name):
            return None
        return self.root / name

    def list(self) -> Set[str]:
        """Names of installed plugins. Hidden files and directories are skipped."""
        try:
            entries = list(self.root.iterdir())
        except FileNotFoundError:
            return set()
        return {
            entry.name
            for entry in entries
            if not entry.name.startswith(".") and not entry.is_dir()
        }

    def is_installed(self, name: str) -> bool:
        path = self._path_for(name)
        return path is not None and path.is_file()

    def plugin_path(self, name: str) -> Optional[Path]:
        """Path of the installed executable for ``name``, or None."""
        if not self.is_installed(name):
            return None
        return self._path_for(name)

    def write(self, name: str, content: bytes, executable: bool = True) -> Path:
        """Atomically place ``content`` at the plugin path, replacing any old file."""
        target = self._path_for(name)
        if target is None:
            raise WriteFailedError(f"invalid plugin name: {name!r}", name=name)

        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=str(self.root), prefix=f".{name}.", suffix=".tmp")
        except OSError as exc:
            raise WriteFailedError(
                f"failed to write plugin: {exc}", name=name, path=target
            ) from exc

        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(content)
            os.chmod(temp_path, EXECUTABLE_MODE if executable else REGULAR_MODE)
            os.replace(temp_path, target)
        except OSError as exc:
            raise WriteFailedError(
                f"failed to write plugin: {exc}", name=name, path=target
            ) from exc
        finally:
            try:
                if os.path.exists(temp_path):
                    os.unlink(temp_path)
            except OSError:
                logger.debug("[store] failed to cleanup temp file: %s", temp_path)

        logger.info(
            "[store] Wrote plugin",
            extra={"plugin": name, "path": str(target), "bytes": len(content)},
        )
        return target

    def remove(self, name: str) -> None:
        path = self._path_for(name)
        if path is None:
            raise NotInstalledError(name)
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise NotInstalledError(name) from exc
        except OSError as exc:
            raise RemovalFailedError(
                f"failed to remove plugin: {exc}", name=name, path=path
            ) from exc
        logger.info("[store] Removed plugin", extra={"plugin": name, "path": str(path)})


__all__ = ["InstallationStore", "EXECUTABLE_MODE"]
