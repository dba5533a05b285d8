"""Small helpers shared by the analyzers, the cache and the integrations."""

from __future__ import annotations

import base64
import hashlib
import os
import re
import secrets
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Protocol

_ANONYMIZE_PATTERN = (
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
    "!@#$%^&*()-_=+[]{}|;':\",./<>?"
)

# Owner kinds that get_parent follows, with the prefix used in the result and
# whether the kind is namespaced.
_OWNER_KINDS: dict[str, tuple[str, bool]] = {
    "ReplicaSet": ("ReplicaSet", True),
    "Deployment": ("Deployment", True),
    "StatefulSet": ("StatefulSet", True),
    "DaemonSet": ("DaemonSet", True),
    "Ingress": ("Ingress", True),
    "MutatingWebhookConfiguration": ("MutatingWebhook", False),
    "ValidatingWebhookConfiguration": ("ValidatingWebhook", False),
}


@dataclass
class OwnerReference:
    """A reference from an object to the object that owns it."""

    kind: str
    name: str


@dataclass
class ObjectMeta:
    """The metadata of a cluster object."""

    name: str
    namespace: str = ""
    owner_references: list[OwnerReference] | None = None
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)


class _ObjectLookup(Protocol):
    def get_object(self, kind: str, namespace: str, name: str) -> ObjectMeta:
        """Return the metadata of an object, raising if it cannot be fetched."""


def slice_contains_string(items: Iterable[str], s: str) -> bool:
    """Tell whether ``s`` is one of ``items``."""
    return s in items


def get_parent(client: _ObjectLookup, meta: ObjectMeta) -> str:
    """Follow owner references up to the topmost known owner.

    Returns ``"<Kind>/<name>"`` for the topmost owner, the object's own name
    when it has no known owner, and an empty string when an owner cannot be
    fetched.
    """
    if meta.owner_references is None:
        return meta.name
    for owner in meta.owner_references:
        known = _OWNER_KINDS.get(owner.kind)
        if known is None:
            continue
        prefix, namespaced = known
        namespace = meta.namespace if namespaced else ""
        try:
            parent = client.get_object(owner.kind, namespace, owner.name)
        except Exception:  # any failure to fetch the owner ends the walk
            return ""
        if parent.owner_references is not None:
            return get_parent(client, parent)
        return f"{prefix}/{parent.name}"
    return meta.name


def remove_duplicates(items: Iterable[str]) -> tuple[list[str], list[str]]:
    """Split ``items`` into the distinct values and the repeated occurrences."""
    seen: dict[str, None] = {}
    duplicates: list[str] = []
    for value in items:
        if value in seen:
            duplicates.append(value)
        else:
            seen[value] = None
    return list(seen), duplicates


def slice_diff(source: Iterable[str], dest: Iterable[str]) -> list[str]:
    """Return the values of ``source`` that are not in ``dest``, in order."""
    excluded = set(dest)
    return [value for value in source if value not in excluded]


def mask_string(text: str) -> str:
    """Replace ``text`` with random characters of the same byte length, base64 encoded."""
    key = secrets.token_bytes(len(text.encode("utf-8")))
    masked = "".join(_ANONYMIZE_PATTERN[b % len(_ANONYMIZE_PATTERN)] for b in key)
    return base64.b64encode(masked.encode("utf-8")).decode("ascii")


def replace_if_match(text: str, pattern: str, replacement: str) -> str:
    """Replace every match of ``pattern`` that ends on a word boundary."""
    regex = re.compile(rf"{pattern}(\b)")
    return regex.sub(lambda _match: replacement, text)


def get_cache_key(provider: str, language: str, encoded: str) -> str:
    """Return the hex SHA-256 digest identifying a cached answer."""
    data = f"{provider}-{language}-{encoded}"
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def file_exists(path: str | os.PathLike[str]) -> bool:
    """Tell whether ``path`` exists; other stat errors are raised."""
    try:
        os.stat(path)
    except FileNotFoundError:
        return False
    return True


def ensure_dir_exists(path: str | os.PathLike[str]) -> None:
    """Create ``path`` and its parents if they are missing."""
    os.makedirs(path, mode=0o755, exist_ok=True)


def map_to_string(mapping: Mapping[str, str]) -> str:
    """Render a mapping as ``k1=v1,k2=v2``."""
    if not mapping:
        raise ValueError("cannot render an empty mapping")
    return ",".join(f"{key}={value}" for key, value in mapping.items())


def labels_include_any(selector: Mapping[str, str], labels: Mapping[str, str]) -> bool:
    """Tell whether any key of ``selector`` is present in ``labels``."""
    return any(key in labels for key in selector)