"""Pytest configuration and fixtures for all tests."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Callable, Dict, List, Union

import httpx
import pytest

from tooldock.core.config import ToolDockConfig, resolve_config

REGISTRY_URL = "https://registry.example.test/plugins.json"

Route = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeRemote:
    """In-memory HTTP endpoints served through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.routes: Dict[str, Route] = {}
        self.requests: List[str] = []

    def serve_json(self, url: str, payload: object, status_code: int = 200) -> None:
        self.routes[url] = httpx.Response(status_code, json=payload)

    def serve_bytes(self, url: str, content: bytes, status_code: int = 200) -> None:
        self.routes[url] = httpx.Response(status_code, content=content)

    def fail(self, url: str) -> None:
        def _raise(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.routes[url] = _raise

    def calls_to(self, url: str) -> int:
        return self.requests.count(url)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, text="not found")
        if callable(route):
            return route(request)
        return route

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)


def sha256_checksum(content: bytes) -> str:
    return "sha256:" + hashlib.sha256(content).hexdigest()


def registry_payload(*plugins: dict, version: str = "1.0") -> dict:
    return {"version": version, "plugins": list(plugins)}


def plugin_entry(name: str, **overrides: object) -> dict:
    entry = {
        "name": name,
        "description": f"{name} plugin",
        "version": "1.0.0",
        "url": f"https://downloads.example.test/{name}",
        "type": "script",
        "checksum": "",
    }
    entry.update(overrides)
    return entry


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def config(home: Path) -> ToolDockConfig:
    return resolve_config(env={"TOOLDOCK_REGISTRY_URL": REGISTRY_URL}, home=home)


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


def write_cache(config: ToolDockConfig, payload: dict) -> Path:
    path = config.registry_cache_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path
