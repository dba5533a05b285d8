"""The Trivy operator integration and the analyzers for its reports."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any, Protocol

from kgpt.common import Analyzer, Failure, PreAnalysis, Result, Sensitive
from kgpt.settings import Settings
from kgpt.util import ObjectMeta, OwnerReference, get_parent, mask_string

AQUA_API_GROUP = "aquasecurity.github.io"
VULNERABILITY_REPORT = "VulnerabilityReport"
CONFIG_AUDIT_REPORT = "ConfigAuditReport"

_NAME_LABEL = "trivy-operator.resource.name"
_NAMESPACE_LABEL = "trivy-operator.resource.namespace"
_CONFIG_SEVERITIES = frozenset({"MEDIUM", "HIGH", "CRITICAL"})


@dataclass(frozen=True)
class Release:
    """A deployed chart release."""

    name: str
    namespace: str


@dataclass(frozen=True)
class ChartSpec:
    """What to install or uninstall with the chart client."""

    release_name: str
    chart_name: str
    namespace: str
    upgrade_crds: bool = True
    wait: bool = False
    timeout: int = 300
    create_namespace: bool = False


@dataclass(frozen=True)
class TrivyOptions:
    """Where the Trivy operator chart comes from and how it is released."""

    repo: str = "https://aquasecurity.github.io/helm-charts/"
    version: str = "0.13.0"
    chart_name: str = "trivy-operator"
    repo_short_name: str = "aqua"
    release_name: str = "trivy-operator-k8sgpt"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TrivyOptions:
        """Read the options from the environment; unset or empty values keep the default."""
        env = os.environ if environ is None else environ
        defaults = cls()

        def pick(key: str, default: str) -> str:
            return env.get(key) or default

        return cls(
            repo=pick("TRIVY_REPO", defaults.repo),
            version=pick("TRIVY_VERSION", defaults.version),
            chart_name=pick("TRIVY_CHART_NAME", defaults.chart_name),
            repo_short_name=pick("TRIVY_REPO_SHORT_NAME", defaults.repo_short_name),
            release_name=pick("TRIVY_RELEASE_NAME", defaults.release_name),
        )

    @property
    def full_chart_name(self) -> str:
        return f"{self.repo_short_name}/{self.chart_name}"


class _ChartClient(Protocol):
    def add_or_update_chart_repo(self, name: str, url: str) -> None: ...

    def install_or_upgrade_chart(self, spec: ChartSpec) -> None: ...

    def uninstall_release(self, spec: ChartSpec) -> None: ...

    def list_deployed_releases(self) -> Iterable[Release]: ...


class Trivy:
    """Deploys the Trivy operator and contributes its report analyzers.

    ``helm`` installs and removes charts; ``discover_groups`` returns the API
    group names served by the cluster, used to tell whether Trivy is present.
    """

    def __init__(
        self,
        helm: _ChartClient,
        settings: Settings | None = None,
        discover_groups: Callable[[], Iterable[str]] | None = None,
        options: TrivyOptions | None = None,
    ) -> None:
        self.helm = helm
        self.settings = settings if settings is not None else Settings()
        self.discover_groups = discover_groups
        self.options = options if options is not None else TrivyOptions.from_env()

    def get_analyzer_name(self) -> list[str]:
        return [VULNERABILITY_REPORT, CONFIG_AUDIT_REPORT]

    def get_namespace(self) -> str:
        """Return the namespace the Trivy release is deployed in."""
        for release in self.helm.list_deployed_releases():
            if release.name == self.options.release_name:
                return release.namespace
        raise LookupError("trivy release not found")

    def owns_analyzer(self, analyzer: str) -> bool:
        return analyzer in self.get_analyzer_name()

    def deploy(self, namespace: str) -> None:
        """Add the chart repository and install or upgrade the release."""
        self.helm.add_or_update_chart_repo(
            self.options.repo_short_name, self.options.repo
        )
        self.helm.install_or_upgrade_chart(
            ChartSpec(
                release_name=self.options.release_name,
                chart_name=self.options.full_chart_name,
                namespace=namespace,
                upgrade_crds=True,
                wait=False,
                timeout=300,
                create_namespace=True,
            )
        )

    def undeploy(self, namespace: str) -> None:
        """Uninstall the release."""
        self.helm.uninstall_release(
            ChartSpec(
                release_name=self.options.release_name,
                chart_name=self.options.full_chart_name,
                namespace=namespace,
                upgrade_crds=True,
                wait=False,
                timeout=300,
            )
        )

    def _is_deployed(self) -> bool:
        if self.discover_groups is None:
            raise RuntimeError("no cluster discovery available")
        return AQUA_API_GROUP in set(self.discover_groups())

    def _is_filter_active(self) -> bool:
        active = set(self.settings.get_string_list("active_filters"))
        return any(name in active for name in self.get_analyzer_name())

    def is_activate(self) -> bool:
        """Tell whether a Trivy filter is active and Trivy runs in the cluster."""
        return self._is_filter_active() and self._is_deployed()

    def add_analyzer(self, merged: MutableMapping[str, Any]) -> None:
        merged[VULNERABILITY_REPORT] = TrivyAnalyzer(vulnerability_report_analysis=True)
        merged[CONFIG_AUDIT_REPORT] = TrivyAnalyzer(config_audit_report_analysis=True)


def _meta_from(report: Mapping[str, Any]) -> ObjectMeta:
    metadata = report.get("metadata") or {}
    owners = metadata.get("ownerReferences")
    return ObjectMeta(
        name=metadata.get("name", ""),
        namespace=metadata.get("namespace", ""),
        owner_references=None
        if owners is None
        else [OwnerReference(kind=o.get("kind", ""), name=o.get("name", "")) for o in owners],
        labels=dict(metadata.get("labels") or {}),
    )


def _report_key(labels: Mapping[str, str]) -> str:
    return f"{labels.get(_NAMESPACE_LABEL, '')}/{labels.get(_NAME_LABEL, '')}"


def _vulnerability_failures(report: Mapping[str, Any]) -> list[Failure]:
    body = report.get("report") or {}
    return [
        Failure(
            text=(
                f"critical Vulnerability found ID: {vuln.get('vulnerabilityID', '')} "
                f"(learn more at: {vuln.get('primaryLink', '')})"
            )
        )
        for vuln in body.get("vulnerabilities") or []
        if vuln.get("severity") == "CRITICAL"
    ]


def _config_failures(report: Mapping[str, Any], labels: Mapping[str, str]) -> list[Failure]:
    body = report.get("report") or {}
    name = labels.get(_NAME_LABEL, "")
    namespace = labels.get(_NAMESPACE_LABEL, "")
    failures = []
    for check in body.get("checks") or []:
        severity = check.get("severity")
        if severity not in _CONFIG_SEVERITIES:
            continue
        messages = "".join(check.get("messages") or [])
        failures.append(
            Failure(
                text=f'Config issue with severity "{severity}" found: {messages}',
                sensitive=[
                    Sensitive(unmasked=name, masked=mask_string(name)),
                    Sensitive(unmasked=namespace, masked=mask_string(namespace)),
                ],
            )
        )
    return failures


@dataclass
class TrivyAnalyzer:
    """Turns Trivy reports into results.

    The analyzer's client must offer ``list_vulnerability_reports()`` and
    ``list_config_audit_reports()``, each returning reports as mappings with
    ``metadata`` and ``report`` sections, and ``get_object`` for owner lookups.
    """

    vulnerability_report_analysis: bool = False
    config_audit_report_analysis: bool = False

    def analyze(self, analyzer: Analyzer) -> list[Result]:
        if self.vulnerability_report_analysis:
            return self._analyze(
                analyzer,
                analyzer.client.list_vulnerability_reports(),
                VULNERABILITY_REPORT,
                lambda report, labels: _vulnerability_failures(report),
            )
        if self.config_audit_report_analysis:
            return self._analyze(
                analyzer,
                analyzer.client.list_config_audit_reports(),
                CONFIG_AUDIT_REPORT,
                _config_failures,
            )
        return []

    @staticmethod
    def _analyze(
        analyzer: Analyzer,
        reports: Iterable[Mapping[str, Any]],
        kind: str,
        failures_of: Callable[[Mapping[str, Any], Mapping[str, str]], list[Failure]],
    ) -> list[Result]:
        pre_analysis: dict[str, PreAnalysis] = {}
        for report in reports:
            meta = _meta_from(report)
            failures = failures_of(report, meta.labels)
            if failures:
                entry = PreAnalysis(failure_details=failures, resource=meta)
                if kind == VULNERABILITY_REPORT:
                    entry.trivy_vulnerability_report = report
                else:
                    entry.trivy_config_audit_report = report
                pre_analysis[_report_key(meta.labels)] = entry

        results = list(analyzer.results)
        for key, value in pre_analysis.items():
            results.append(
                Result(
                    kind=kind,
                    name=key,
                    error=value.failure_details,
                    parent_object=get_parent(analyzer.client, value.resource),
                )
            )
        return results