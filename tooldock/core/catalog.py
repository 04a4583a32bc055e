"""Plugin catalog model, lookup, search and JSON codec."""

from __future__ import annotations

import json
from typing import Any, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from tooldock.core.errors import RegistryFormatError
from tooldock.utils.log import get_logger

logger = get_logger()

CHECKSUM_PREFIX = "sha256:"


def is_valid_plugin_name(name: str) -> bool:
    """Whether ``name`` can be used as a plain file name in the plugin directory."""
    if not name or name in {".", ".."}:
        return False
    if name.startswith("."):
        return False
    return "/" not in name and "\\" not in name and "\x00" not in name


class PluginDescriptor(BaseModel):
    """One installable entry of the catalog."""

    model_config = {"frozen": True, "populate_by_name": True}

    name: str
    description: str = ""
    version: str = ""
    download_url: str = Field(alias="url")
    # "script" or "binary" in practice; informational only.
    kind: str = Field(default="binary", alias="type")
    checksum: str = ""

    @field_validator("description", "version", "kind", "checksum", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("name")
    @classmethod
    def _usable_name(cls, value: str) -> str:
        if not is_valid_plugin_name(value):
            raise ValueError(f"invalid plugin name: {value!r}")
        return value

    @field_validator("download_url")
    @classmethod
    def _url_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("plugin url must not be empty")
        return value


class Catalog(BaseModel):
    """Immutable snapshot of the registry."""

    model_config = {"frozen": True, "populate_by_name": True}

    catalog_version: str = Field(default="", alias="version")
    entries: Tuple[PluginDescriptor, ...] = Field(default=(), alias="plugins")

    @field_validator("catalog_version", mode="before")
    @classmethod
    def _version_none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("entries", mode="before")
    @classmethod
    def _drop_unusable_entries(cls, value: Any) -> Any:
        if value is None:
            return ()
        if not isinstance(value, (list, tuple)):
            return value
        entries: List[PluginDescriptor] = []
        for index, item in enumerate(value):
            if isinstance(item, PluginDescriptor):
                entries.append(item)
                continue
            try:
                entries.append(PluginDescriptor.model_validate(item))
            except ValidationError as exc:
                # One bad entry must not hide the rest of the registry.
                raw_name = item.get("name") if isinstance(item, dict) else None
                logger.warning(
                    "[catalog] Skipping invalid registry entry %d: %s",
                    index,
                    exc.errors()[0].get("msg", "invalid"),
                    extra={"plugin": raw_name},
                )
        return entries

    @model_validator(mode="after")
    def _report_duplicate_names(self) -> "Catalog":
        seen: set[str] = set()
        for entry in self.entries:
            if entry.name in seen:
                # Lookup is first-match, later duplicates are unreachable.
                logger.warning(
                    "[catalog] Duplicate plugin name in registry: %s",
                    entry.name,
                    extra={"plugin": entry.name},
                )
            seen.add(entry.name)
        return self

    def find(self, name: str) -> Optional[PluginDescriptor]:
        """Return the first entry whose name equals ``name`` exactly."""
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    def search(self, query: str) -> List[PluginDescriptor]:
        """Case-insensitive substring match on name or description, in catalog order."""
        needle = query.lower()
        return [
            entry
            for entry in self.entries
            if needle in entry.name.lower() or needle in entry.description.lower()
        ]

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def parse_catalog(payload: Any) -> Catalog:
    """Validate a decoded JSON payload into a ``Catalog``."""
    if not isinstance(payload, dict):
        raise RegistryFormatError("registry payload must be a JSON object")
    try:
        return Catalog.model_validate(payload)
    except ValidationError as exc:
        raise RegistryFormatError(f"invalid registry payload: {exc}") from exc


def catalog_from_json(raw: Union[str, bytes]) -> Catalog:
    try:
        payload = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise RegistryFormatError(f"failed to parse registry: {exc}") from exc
    return parse_catalog(payload)


def catalog_to_json(catalog: Catalog) -> str:
    return json.dumps(catalog.to_payload(), ensure_ascii=False, indent=2) + "\n"


__all__ = [
    "CHECKSUM_PREFIX",
    "PluginDescriptor",
    "Catalog",
    "is_valid_plugin_name",
    "parse_catalog",
    "catalog_from_json",
    "catalog_to_json",
]
