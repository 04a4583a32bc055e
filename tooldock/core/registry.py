"""Registry fetching and the time-bounded local catalog cache."""

from __future__ import annotations

import time
from typing import Callable, Optional

import httpx

from tooldock import __version__
from tooldock.core.catalog import Catalog, catalog_from_json, catalog_to_json
from tooldock.core.config import ToolDockConfig
from tooldock.core.errors import (
    DownloadFailedError,
    RegistryFormatError,
    RegistryUnavailableError,
)
from tooldock.utils.log import get_logger

logger = get_logger()

USER_AGENT = f"tooldock/{__version__}"


class RegistryFetcher:
    """Talks to the network: the registry catalog and plugin artifacts."""

    def __init__(
        self,
        config: ToolDockConfig,
        cache: Optional["RegistryCache"] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.config = config
        self.cache = cache
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.config.http_timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
            transport=self._transport,
        )

    def fetch(self) -> Catalog:
        """Download and parse the registry, then refresh the cache."""
        url = self.config.registry_url
        logger.debug("[registry] Fetching registry", extra={"url": url})
        try:
            with self._client() as client:
                response = client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise RegistryUnavailableError(
                f"failed to fetch registry: {type(exc).__name__}: {exc}", url=url
            ) from exc

        if not response.is_success:
            raise RegistryUnavailableError(
                f"failed to fetch registry: status {response.status_code}",
                url=url,
                status_code=response.status_code,
            )

        try:
            catalog = catalog_from_json(response.content)
        except RegistryFormatError as exc:
            exc.url = url
            raise

        logger.info(
            "[registry] Fetched registry",
            extra={"url": url, "version": catalog.catalog_version, "plugins": len(catalog.entries)},
        )
        if self.cache is not None:
            self.cache.store(catalog)
        return catalog

    def download(self, url: str) -> bytes:
        """Return the raw bytes at ``url``."""
        logger.debug("[registry] Downloading artifact", extra={"url": url})
        try:
            with self._client() as client:
                response = client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise DownloadFailedError(
                f"failed to download plugin: {type(exc).__name__}: {exc}", url=url
            ) from exc

        if not response.is_success:
            raise DownloadFailedError(
                f"failed to download plugin: status {response.status_code}",
                url=url,
                status_code=response.status_code,
            )
        return response.content


class RegistryCache:
    """Snapshot of the catalog at ``<cache_dir>/registry.json``.

    Freshness is the file's modification time compared with
    ``config.cache_ttl_seconds``. A stale, missing or unreadable cache falls
    through to ``RegistryFetcher.fetch``.
    """

    def __init__(
        self,
        config: ToolDockConfig,
        fetcher: Optional[RegistryFetcher] = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.path = config.registry_cache_path
        self.fetcher = fetcher if fetcher is not None else RegistryFetcher(config)
        if self.fetcher.cache is None:
            self.fetcher.cache = self
        self._clock = clock

    def is_fresh(self) -> bool:
        try:
            modified = self.path.stat().st_mtime
        except OSError:
            return False
        return (self._clock() - modified) < self.config.cache_ttl_seconds

    def read(self) -> Optional[Catalog]:
        """Return the cached catalog if it is present, fresh and parseable."""
        if not self.is_fresh():
            return None
        try:
            return catalog_from_json(self.path.read_bytes())
        except (OSError, RegistryFormatError) as exc:
            logger.debug(
                "[registry] Ignoring unreadable registry cache: %s: %s",
                type(exc).__name__,
                exc,
                extra={"path": str(self.path)},
            )
            return None

    def load(self) -> Catalog:
        cached = self.read()
        if cached is not None:
            logger.debug("[registry] Using cached registry", extra={"path": str(self.path)})
            return cached
        return self.fetcher.fetch()

    def store(self, catalog: Catalog) -> None:
        """Overwrite the cache file. Failures are logged, never raised."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(catalog_to_json(catalog), encoding="utf-8")
        except OSError as exc:
            logger.warning(
                "Failed to write registry cache: %s: %s",
                type(exc).__name__,
                exc,
                extra={"path": str(self.path)},
            )


__all__ = ["RegistryFetcher", "RegistryCache", "USER_AGENT"]
