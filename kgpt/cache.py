"""Caching of AI answers, on disk or described for a remote store."""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from platformdirs import user_cache_dir

from kgpt.settings import Settings
from kgpt.util import ensure_dir_exists, file_exists

_REMOTE_TYPES = ("azure", "gcs", "s3")


class CacheError(Exception):
    """Raised when a cache cannot be configured or used."""


@dataclass
class GCSCacheConfiguration:
    projectid: str = ""
    region: str = ""
    bucketname: str = ""


@dataclass
class AzureCacheConfiguration:
    storageaccount: str = ""
    container: str = ""


@dataclass
class S3CacheConfiguration:
    region: str = ""
    bucketname: str = ""


@dataclass
class CacheProvider:
    """The remote cache settings; all-empty means the file cache."""

    gcs: GCSCacheConfiguration = field(default_factory=GCSCacheConfiguration)
    azure: AzureCacheConfiguration = field(default_factory=AzureCacheConfiguration)
    s3: S3CacheConfiguration = field(default_factory=S3CacheConfiguration)

    def to_dict(self) -> dict[str, dict[str, str]]:
        """Return the settings, leaving out empty values."""
        result: dict[str, dict[str, str]] = {}
        for name in ("gcs", "azure", "s3"):
            values = {k: v for k, v in asdict(getattr(self, name)).items() if v}
            if values:
                result[name] = values
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> CacheProvider:
        """Build the settings from a mapping as stored in the configuration."""
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise CacheError("cache configuration is not a mapping")
        parts: dict[str, Any] = {}
        for name, config_type in (
            ("gcs", GCSCacheConfiguration),
            ("azure", AzureCacheConfiguration),
            ("s3", S3CacheConfiguration),
        ):
            section = data.get(name) or {}
            if not isinstance(section, Mapping):
                raise CacheError(f"cache configuration for {name} is not a mapping")
            known = {f for f in config_type.__dataclass_fields__}
            lowered = {str(k).lower(): v for k, v in section.items()}
            parts[name] = config_type(
                **{k: str(v) for k, v in lowered.items() if k in known}
            )
        return cls(**parts)


@dataclass
class CacheObjectDetails:
    name: str
    updated_at: datetime


def _default_root() -> Path:
    return Path(user_cache_dir()) / "k8sgpt"


class FileBasedCache:
    """A cache that keeps one file per key in a directory."""

    name = "file"

    def __init__(self, root: str | os.PathLike[str] | None = None) -> None:
        self.root = Path(root) if root is not None else _default_root()
        self.cache_info = CacheProvider()
        self._disabled = False

    def _path(self, key: str) -> Path:
        path = self.root / key
        ensure_dir_exists(path.parent)
        return path

    def configure(self, cache_info: CacheProvider) -> None:
        """Record the cache settings; the file cache needs no other setup."""
        self.cache_info = cache_info

    def store(self, key: str, data: str) -> None:
        path = self._path(key)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)

    def load(self, key: str) -> str:
        return self._path(key).read_text(encoding="utf-8")

    def list(self) -> list[CacheObjectDetails]:
        ensure_dir_exists(self.root.parent)
        entries = sorted(os.scandir(self.root), key=lambda e: e.name)
        return [
            CacheObjectDetails(
                name=entry.name,
                updated_at=datetime.fromtimestamp(
                    entry.stat().st_mtime, tz=timezone.utc
                ),
            )
            for entry in entries
        ]

    def remove(self, key: str) -> None:
        self._path(key).unlink()

    def exists(self, key: str) -> bool:
        try:
            return file_exists(self._path(key))
        except OSError as err:
            print(
                "warning: error while testing if cache key exists:",
                err,
                file=sys.stderr,
            )
            return False

    def is_cache_disabled(self) -> bool:
        return self._disabled

    def disable_cache(self) -> None:
        self._disabled = True


def new_cache(
    cache_type: str, root: str | os.PathLike[str] | None = None
) -> FileBasedCache:
    """Return the cache for ``cache_type``; unknown types get the file cache."""
    if cache_type in _REMOTE_TYPES:
        raise CacheError(f"remote cache backend {cache_type} is not available")
    return FileBasedCache(root)


def _validate(cache_type: str, provider: CacheProvider) -> None:
    checks = {
        "azure": [
            (provider.azure.container, "Azure Container name not configured"),
            (provider.azure.storageaccount, "Azure Storage account not configured"),
        ],
        "gcs": [
            (provider.gcs.bucketname, "Bucket name not configured"),
            (provider.gcs.region, "Region not configured"),
            (provider.gcs.projectid, "ProjectID not configured"),
        ],
        "s3": [
            (provider.s3.bucketname, "Bucket name not configured"),
            (provider.s3.region, "Region not configured"),
        ],
    }
    for value, message in checks[cache_type]:
        if not value:
            raise CacheError(message)


def new_cache_provider(
    cache_type: str,
    bucket_name: str,
    region: str,
    storage_account: str,
    container_name: str,
    project_id: str,
) -> CacheProvider:
    """Build and check the remote cache settings for ``cache_type``."""
    provider = CacheProvider()
    if cache_type == "azure":
        provider.azure = AzureCacheConfiguration(
            storageaccount=storage_account, container=container_name
        )
    elif cache_type == "gcs":
        provider.gcs = GCSCacheConfiguration(
            projectid=project_id, region=region, bucketname=bucket_name
        )
    elif cache_type == "s3":
        provider.s3 = S3CacheConfiguration(region=region, bucketname=bucket_name)
    else:
        raise CacheError(f"{cache_type} is not a valid option")
    _validate(cache_type, provider)
    return provider


def parse_cache_configuration(settings: Settings) -> CacheProvider:
    """Read the cache settings from the configuration."""
    return CacheProvider.from_dict(settings.get("cache"))


def get_cache_configuration(
    settings: Settings, root: str | os.PathLike[str] | None = None
) -> FileBasedCache:
    """Return the configured cache; the file cache unless a remote one is set."""
    info = parse_cache_configuration(settings)
    if info.gcs != GCSCacheConfiguration():
        cache = new_cache("gcs", root)
    elif info.azure != AzureCacheConfiguration():
        cache = new_cache("azure", root)
    elif info.s3 != S3CacheConfiguration():
        cache = new_cache("s3", root)
    else:
        cache = new_cache("file", root)
    cache.configure(info)
    return cache


def add_remote_cache(settings: Settings, cache_info: CacheProvider) -> None:
    """Save remote cache settings to the configuration file."""
    settings.set("cache", cache_info.to_dict())
    settings.write()


def remove_remote_cache(settings: Settings) -> None:
    """Clear remote cache settings from the configuration file."""
    try:
        parse_cache_configuration(settings)
    except CacheError as err:
        raise CacheError("cache unmarshal") from err
    settings.set("cache", CacheProvider().to_dict())
    try:
        settings.write()
    except OSError as err:
        raise CacheError("unable to write config") from err