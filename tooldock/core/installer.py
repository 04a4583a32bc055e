"""Download, verify and place plugin artifacts."""

from __future__ import annotations

import hashlib
from pathlib import Path

from tooldock.core.catalog import CHECKSUM_PREFIX, PluginDescriptor
from tooldock.core.errors import IntegrityError
from tooldock.core.registry import RegistryFetcher
from tooldock.core.store import InstallationStore
from tooldock.utils.log import get_logger

logger = get_logger()


def compute_checksum(content: bytes) -> str:
    """Return ``sha256:<lowercase hex>`` for ``content``."""
    return CHECKSUM_PREFIX + hashlib.sha256(content).hexdigest()


def verify_checksum(descriptor: PluginDescriptor, content: bytes) -> None:
    """Raise ``IntegrityError`` unless ``content`` matches the declared checksum.

    An empty checksum means the catalog does not ask for verification.
    """
    if not descriptor.checksum:
        return
    actual = compute_checksum(content)
    if actual != descriptor.checksum:
        raise IntegrityError(
            descriptor.name, descriptor.checksum, actual, url=descriptor.download_url
        )


class Installer:
    def __init__(self, fetcher: RegistryFetcher, store: InstallationStore) -> None:
        self.fetcher = fetcher
        self.store = store

    def install(self, descriptor: PluginDescriptor) -> Path:
        content = self.fetcher.download(descriptor.download_url)
        verify_checksum(descriptor, content)
        path = self.store.write(descriptor.name, content, executable=True)
        logger.info(
            "[installer] Installed plugin",
            extra={
                "plugin": descriptor.name,
                "version": descriptor.version,
                "verified": bool(descriptor.checksum),
            },
        )
        return path


__all__ = ["Installer", "compute_checksum", "verify_checksum"]
