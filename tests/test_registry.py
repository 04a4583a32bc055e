"""Tests for registry fetching and the registry cache."""

from __future__ import annotations

import json
import os
import time
from pathlib import Path

import httpx
import pytest

from tooldock.core.catalog import catalog_from_json, parse_catalog
from tooldock.core.errors import (
    DownloadFailedError,
    RegistryFormatError,
    RegistryUnavailableError,
)
from tooldock.core.registry import USER_AGENT, RegistryCache, RegistryFetcher

from conftest import REGISTRY_URL, plugin_entry, registry_payload, write_cache

HOUR = 60 * 60


def _age(path: Path, seconds: float) -> None:
    stamp = time.time() - seconds
    os.utime(path, (stamp, stamp))


def _registry(config, remote):
    fetcher = RegistryFetcher(config, transport=remote.transport)
    return RegistryCache(config, fetcher), fetcher


def test_fetch_parses_and_writes_cache(config, remote) -> None:
    remote.serve_json(REGISTRY_URL, registry_payload(plugin_entry("fmt"), version="7"))
    cache, fetcher = _registry(config, remote)

    catalog = fetcher.fetch()

    assert catalog.catalog_version == "7"
    assert [entry.name for entry in catalog.entries] == ["fmt"]
    assert config.registry_cache_path.exists()
    assert catalog_from_json(config.registry_cache_path.read_text(encoding="utf-8")) == catalog


def test_fetch_sends_user_agent(config) -> None:
    seen = {}

    def _handler(request: httpx.Request) -> httpx.Response:
        seen["ua"] = request.headers.get("user-agent")
        return httpx.Response(200, json=registry_payload())

    fetcher = RegistryFetcher(config, transport=httpx.MockTransport(_handler))
    fetcher.fetch()
    assert seen["ua"] == USER_AGENT


def test_fetch_non_success_status_is_unavailable(config, remote) -> None:
    remote.serve_json(REGISTRY_URL, {"error": "boom"}, status_code=503)
    _, fetcher = _registry(config, remote)

    with pytest.raises(RegistryUnavailableError) as exc:
        fetcher.fetch()
    assert exc.value.status_code == 503
    assert exc.value.url == REGISTRY_URL
    assert not config.registry_cache_path.exists()


def test_fetch_network_failure_is_unavailable(config, remote) -> None:
    remote.fail(REGISTRY_URL)
    _, fetcher = _registry(config, remote)

    with pytest.raises(RegistryUnavailableError):
        fetcher.fetch()


def test_fetch_malformed_payload_is_format_error(config, remote) -> None:
    remote.serve_bytes(REGISTRY_URL, b"<html>not json</html>")
    _, fetcher = _registry(config, remote)

    with pytest.raises(RegistryFormatError) as exc:
        fetcher.fetch()
    assert exc.value.url == REGISTRY_URL
    assert not config.registry_cache_path.exists()


def test_fetch_follows_redirects(config, remote) -> None:
    remote.routes[REGISTRY_URL] = httpx.Response(
        302, headers={"Location": "https://cdn.example.test/plugins.json"}
    )
    remote.serve_json("https://cdn.example.test/plugins.json", registry_payload(plugin_entry("fmt")))
    _, fetcher = _registry(config, remote)

    assert fetcher.fetch().find("fmt") is not None


def test_fresh_cache_is_used_without_fetch(config, remote) -> None:
    path = write_cache(config, registry_payload(plugin_entry("cached")))
    _age(path, 23 * HOUR)
    remote.serve_json(REGISTRY_URL, registry_payload(plugin_entry("remote")))
    cache, _ = _registry(config, remote)

    catalog = cache.load()

    assert [entry.name for entry in catalog.entries] == ["cached"]
    assert remote.calls_to(REGISTRY_URL) == 0


def test_stale_cache_triggers_fetch(config, remote) -> None:
    path = write_cache(config, registry_payload(plugin_entry("cached")))
    _age(path, 25 * HOUR)
    remote.serve_json(REGISTRY_URL, registry_payload(plugin_entry("remote")))
    cache, _ = _registry(config, remote)

    catalog = cache.load()

    assert [entry.name for entry in catalog.entries] == ["remote"]
    assert remote.calls_to(REGISTRY_URL) == 1
    refreshed = json.loads(config.registry_cache_path.read_text(encoding="utf-8"))
    assert refreshed["plugins"][0]["name"] == "remote"


def test_missing_cache_triggers_fetch(config, remote) -> None:
    remote.serve_json(REGISTRY_URL, registry_payload(plugin_entry("remote")))
    cache, _ = _registry(config, remote)

    assert cache.read() is None
    assert cache.load().find("remote") is not None
    assert remote.calls_to(REGISTRY_URL) == 1


def test_corrupt_fresh_cache_falls_back_to_fetch(config, remote) -> None:
    config.registry_cache_path.parent.mkdir(parents=True, exist_ok=True)
    config.registry_cache_path.write_text("{broken", encoding="utf-8")
    remote.serve_json(REGISTRY_URL, registry_payload(plugin_entry("remote")))
    cache, _ = _registry(config, remote)

    assert cache.load().find("remote") is not None


def test_injected_clock_controls_freshness(config, remote) -> None:
    path = write_cache(config, registry_payload(plugin_entry("cached")))
    mtime = path.stat().st_mtime
    fetcher = RegistryFetcher(config, transport=remote.transport)

    assert RegistryCache(config, fetcher, clock=lambda: mtime + 10).is_fresh()
    assert not RegistryCache(config, fetcher, clock=lambda: mtime + 24 * HOUR + 1).is_fresh()


def test_store_failure_is_not_raised(config, remote) -> None:
    # A directory in place of registry.json makes the write fail.
    config.registry_cache_path.mkdir(parents=True)
    remote.serve_json(REGISTRY_URL, registry_payload(plugin_entry("remote")))
    cache, fetcher = _registry(config, remote)

    catalog = fetcher.fetch()

    assert catalog.find("remote") is not None
    assert config.registry_cache_path.is_dir()


def test_cache_wires_itself_into_default_fetcher(config) -> None:
    cache = RegistryCache(config)
    assert cache.fetcher.cache is cache


def test_store_overwrites_existing_cache(config) -> None:
    write_cache(config, registry_payload(plugin_entry("old")))
    cache = RegistryCache(config)
    cache.store(parse_catalog(registry_payload(plugin_entry("new"))))
    assert cache.read().find("new") is not None


def test_download_returns_bytes(config, remote) -> None:
    remote.serve_bytes("https://downloads.example.test/fmt", b"#!/bin/sh\necho hi\n")
    _, fetcher = _registry(config, remote)
    assert fetcher.download("https://downloads.example.test/fmt") == b"#!/bin/sh\necho hi\n"


def test_download_failures(config, remote) -> None:
    remote.serve_bytes("https://downloads.example.test/gone", b"", status_code=404)
    remote.fail("https://downloads.example.test/down")
    _, fetcher = _registry(config, remote)

    with pytest.raises(DownloadFailedError) as exc:
        fetcher.download("https://downloads.example.test/gone")
    assert exc.value.status_code == 404

    with pytest.raises(DownloadFailedError) as exc:
        fetcher.download("https://downloads.example.test/down")
    assert exc.value.status_code is None
