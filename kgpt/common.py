"""Data types shared by the analyzers and their results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Sensitive:
    """A piece of text and the masked form that replaces it."""

    unmasked: str
    masked: str


@dataclass
class Failure:
    """One problem found on an object."""

    text: str
    kubernetes_doc: str = ""
    sensitive: list[Sensitive] = field(default_factory=list)


@dataclass
class Result:
    """The outcome of analysing one object."""

    kind: str
    name: str
    error: list[Failure] = field(default_factory=list)
    details: str = ""
    parent_object: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the result in its serialised form."""
        return {
            "kind": self.kind,
            "name": self.name,
            "error": [
                {
                    "Text": failure.text,
                    "KubernetesDoc": failure.kubernetes_doc,
                    "Sensitive": [
                        {"Unmasked": s.unmasked, "Masked": s.masked}
                        for s in failure.sensitive
                    ],
                }
                for failure in self.error
            ],
            "details": self.details,
            "parentObject": self.parent_object,
        }


@dataclass
class PreAnalysis:
    """Failures gathered for an object before results are built."""

    failure_details: list[Failure] = field(default_factory=list)
    resource: Any = None
    trivy_vulnerability_report: Any = None
    trivy_config_audit_report: Any = None


@dataclass
class Analyzer:
    """The state handed to an analyzer."""

    client: Any = None
    namespace: str = ""
    ai_client: Any = None
    pre_analysis: dict[str, PreAnalysis] = field(default_factory=dict)
    results: list[Result] = field(default_factory=list)
    openapi_schema: Any = None