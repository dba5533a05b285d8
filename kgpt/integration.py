"""The registry of optional integrations and their activation."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from typing import Any, Protocol

from kgpt.settings import Settings
from kgpt.util import remove_duplicates

_ACTIVE_FILTERS = "active_filters"


class IntegrationError(Exception):
    """Raised when an integration cannot be found, activated or deactivated."""


class _Integration(Protocol):
    def deploy(self, namespace: str) -> None: ...

    def undeploy(self, namespace: str) -> None: ...

    def add_analyzer(self, merged: MutableMapping[str, Any]) -> None: ...

    def get_analyzer_name(self) -> list[str]: ...

    def get_namespace(self) -> str: ...

    def owns_analyzer(self, analyzer: str) -> bool: ...

    def is_activate(self) -> bool: ...


class Integration:
    """Looks up integrations by name and switches them on and off.

    Activating an integration adds its analyzers to the ``active_filters``
    setting and writes the configuration; deactivating removes them.
    """

    def __init__(
        self, integrations: Mapping[str, _Integration], settings: Settings
    ) -> None:
        self.integrations = dict(integrations)
        self.settings = settings

    def list(self) -> list[str]:
        """Return the names of the known integrations."""
        return list(self.integrations)

    def get(self, name: str) -> _Integration:
        """Return the integration called ``name``."""
        try:
            return self.integrations[name]
        except KeyError:
            raise IntegrationError("integration not found") from None

    def analyzer_by_integration(self, analyzer: str) -> str:
        """Return the name of the integration that owns ``analyzer``."""
        for name, integration in self.integrations.items():
            if integration.owns_analyzer(analyzer):
                return name
        raise IntegrationError("analyzerbyintegration: no matches found")

    def activate(
        self,
        name: str,
        namespace: str,
        active_filters: list[str],
        skip_install: bool,
    ) -> None:
        """Deploy an integration unless told not to, and enable its filters."""
        integration = self.get(name)
        if not skip_install:
            integration.deploy(namespace)
        merged = [*active_filters, *integration.get_analyzer_name()]
        unique, _ = remove_duplicates(merged)
        self.settings.set(_ACTIVE_FILTERS, unique)
        self._write()

    def deactivate(self, name: str, namespace: str) -> None:
        """Disable an integration's filters and remove its deployment."""
        integration = self.get(name)
        owned = set(integration.get_analyzer_name())
        remaining = [
            f for f in self.settings.get_string_list(_ACTIVE_FILTERS) if f not in owned
        ]
        integration.undeploy(namespace)
        self.settings.set(_ACTIVE_FILTERS, remaining)
        self._write()

    def is_activate(self, name: str) -> bool:
        """Tell whether the integration called ``name`` is active."""
        return self.get(name).is_activate()

    def _write(self) -> None:
        try:
            self.settings.write()
        except OSError as err:
            raise IntegrationError(f"error writing config file: {err}") from err