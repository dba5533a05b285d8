"""Field descriptions looked up in an OpenAPI v2 document."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class GroupVersion:
    group: str
    version: str


@dataclass
class K8sApiReference:
    """A kind in an API group, with the OpenAPI document describing it.

    ``openapi_schema`` is the document as a mapping with a ``definitions``
    section, as served by the API server.
    """

    api_version: GroupVersion
    kind: str
    openapi_schema: Mapping[str, Any] = field(default_factory=dict)

    def get_api_doc_v2(self, field: str) -> str:
        """Return the description of a dotted field path such as ``spec.containers``."""
        paths = field.split(".")
        group = self.api_version.group.split(".")[0]
        definitions = self.openapi_schema.get("definitions") or {}
        suffix = f"{group}.{self.api_version.version}.{self.kind}"
        start = next((name for name in definitions if name.endswith(suffix)), "")
        return _recurse_path(definitions, start, paths)


def _last_ref_part(ref: str) -> str:
    return ref.split("/")[-1]


def _is_string(schema: Mapping[str, Any]) -> bool:
    kind = schema.get("type")
    if isinstance(kind, str):
        return kind == "string"
    if isinstance(kind, Sequence):
        return list(kind) == ["string"]
    return False


def _item_schemas(schema: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    items = schema.get("items")
    if items is None:
        return []
    if isinstance(items, Mapping):
        return [items]
    return list(items)


def _recurse_path(
    definitions: Mapping[str, Any], leaf: str, paths: list[str]
) -> str:
    schema = definitions.get(leaf)
    if schema is None:
        return ""
    prop = (schema.get("properties") or {}).get(paths[0])
    if prop is None:
        return ""
    if len(paths) == 1 or _is_string(prop):
        return prop.get("description", "")
    description = ""
    ref = prop.get("$ref", "")
    if ref:
        description = _recurse_path(definitions, _last_ref_part(ref), paths[1:])
    items = _item_schemas(prop)
    if len(items) == 1:
        description = _recurse_path(
            definitions, _last_ref_part(items[0].get("$ref", "")), paths[1:]
        )
    return description