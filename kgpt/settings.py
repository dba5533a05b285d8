"""A small YAML-backed configuration store with dotted keys."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml


class Settings:
    """Configuration values kept in memory and written back to a YAML file.

    Keys are case-insensitive and may be dotted to reach nested mappings,
    e.g. ``"cache.gcs.bucketname"``.
    """

    def __init__(
        self,
        path: str | os.PathLike[str] | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> None:
        self.path = Path(path) if path is not None else None
        self._data: dict[str, Any] = {}
        if data is not None:
            self._data = _lower_keys(data)
        elif self.path is not None and self.path.exists():
            with self.path.open("r", encoding="utf-8") as handle:
                loaded = yaml.safe_load(handle)
            if loaded is not None:
                if not isinstance(loaded, Mapping):
                    raise ValueError(f"configuration in {self.path} is not a mapping")
                self._data = _lower_keys(loaded)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key``, or ``default``."""
        node: Any = self._data
        for part in _split(key):
            if not isinstance(node, Mapping) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, creating nested mappings as needed."""
        parts = _split(key)
        node = self._data
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = _lower_keys(value) if isinstance(value, Mapping) else value

    def get_string_list(self, key: str) -> list[str]:
        """Return the value under ``key`` as a list of strings."""
        value = self.get(key)
        if value is None:
            return []
        if isinstance(value, str):
            return value.split()
        if isinstance(value, (list, tuple, set)):
            return [str(item) for item in value]
        return [str(value)]

    def write(self) -> None:
        """Write the current values to the configuration file."""
        if self.path is None:
            raise FileNotFoundError("no configuration file to write to")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as handle:
            yaml.safe_dump(self._data, handle, default_flow_style=False)


def _split(key: str) -> list[str]:
    parts = key.lower().split(".")
    if not all(parts):
        raise KeyError(f"invalid configuration key: {key!r}")
    return parts


def _lower_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    return {
        str(k).lower(): _lower_keys(v) if isinstance(v, Mapping) else v
        for k, v in data.items()
    }