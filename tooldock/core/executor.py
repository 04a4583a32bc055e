"""Run installed plugins with the caller's standard streams."""

from __future__ import annotations

import subprocess
from typing import Sequence

from tooldock.core.errors import NotInstalledError, PluginLaunchError
from tooldock.core.store import InstallationStore
from tooldock.utils.log import get_logger

logger = get_logger()


def is_plugin_installed(store: InstallationStore, name: str) -> bool:
    return store.is_installed(name)


def run_plugin(store: InstallationStore, name: str, args: Sequence[str]) -> int:
    """Execute plugin ``name`` and return its exit status.

    stdin, stdout and stderr are inherited. A plugin that cannot be started
    raises ``PluginLaunchError``; a plugin that starts and fails is reported
    through the returned status.
    """
    path = store.plugin_path(name)
    if path is None:
        raise NotInstalledError(name)

    logger.debug("[executor] Running plugin", extra={"plugin": name, "plugin_args": list(args)})
    try:
        completed = subprocess.run([str(path), *args], check=False)
    except OSError as exc:
        raise PluginLaunchError(
            f"failed to run plugin '{name}': {exc}", name=name, path=path
        ) from exc
    return completed.returncode


__all__ = ["is_plugin_installed", "run_plugin"]
