"""Plugin management operations composed from the registry and store."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import httpx

from tooldock.core.catalog import Catalog, PluginDescriptor
from tooldock.core.config import ToolDockConfig
from tooldock.core.errors import AlreadyInstalledError, NotFoundError, NotInstalledError
from tooldock.core.installer import Installer
from tooldock.core.registry import RegistryCache, RegistryFetcher
from tooldock.core.store import InstallationStore
from tooldock.utils.log import get_logger

logger = get_logger()


@dataclass(frozen=True)
class PluginStatus:
    descriptor: PluginDescriptor
    installed: bool


@dataclass(frozen=True)
class InstallOutcome:
    descriptor: PluginDescriptor
    path: Path


class PluginManager:
    """Entry point for list/install/update/remove/search."""

    def __init__(
        self,
        config: ToolDockConfig,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.config = config
        self.fetcher = RegistryFetcher(config, transport=transport)
        self.cache = RegistryCache(config, self.fetcher)
        self.store = InstallationStore(config)
        self.installer = Installer(self.fetcher, self.store)

    def _with_status(self, entries: List[PluginDescriptor]) -> List[PluginStatus]:
        installed = self.store.list()
        return [PluginStatus(entry, entry.name in installed) for entry in entries]

    def catalog(self) -> Catalog:
        return self.cache.load()

    def list_plugins(self) -> List[PluginStatus]:
        return self._with_status(list(self.catalog().entries))

    def search(self, query: str) -> List[PluginStatus]:
        return self._with_status(self.catalog().search(query))

    def install(self, name: str) -> InstallOutcome:
        descriptor = self.catalog().find(name)
        if descriptor is None:
            raise NotFoundError(name)
        if self.store.is_installed(name):
            raise AlreadyInstalledError(name)
        path = self.installer.install(descriptor)
        return InstallOutcome(descriptor, path)

    def update(self, name: str) -> InstallOutcome:
        """Replace an installed plugin with the version in a freshly fetched registry.

        The old file is removed before the download starts, so a failed
        download or checksum mismatch leaves the plugin uninstalled.
        """
        if not self.store.is_installed(name):
            raise NotInstalledError(name)
        descriptor = self.fetcher.fetch().find(name)
        if descriptor is None:
            raise NotFoundError(name)
        self.store.remove(name)
        logger.debug("[manager] Removed old version before update", extra={"plugin": name})
        path = self.installer.install(descriptor)
        return InstallOutcome(descriptor, path)

    def remove(self, name: str) -> None:
        self.store.remove(name)


__all__ = ["PluginManager", "PluginStatus", "InstallOutcome"]
