import pytest
import yaml

from kgpt.integration import Integration, IntegrationError
from kgpt.settings import Settings
from kgpt.trivy import Release, Trivy, TrivyOptions


class FakeHelm:
    def __init__(self, releases=()):
        self.calls = []
        self.releases = list(releases)

    def add_or_update_chart_repo(self, name, url):
        self.calls.append(("repo", name, url))

    def install_or_upgrade_chart(self, spec):
        self.calls.append(("install", spec.namespace))

    def uninstall_release(self, spec):
        self.calls.append(("uninstall", spec.namespace))

    def list_deployed_releases(self):
        return self.releases


def make(tmp_path, filters=None, groups=("aquasecurity.github.io",)):
    settings = Settings(tmp_path / "config.yaml")
    if filters is not None:
        settings.set("active_filters", filters)
    helm = FakeHelm()
    trivy = Trivy(
        helm,
        settings=settings,
        discover_groups=lambda: list(groups),
        options=TrivyOptions(),
    )
    return Integration({"trivy": trivy}, settings), helm, settings


def test_list_and_get(tmp_path):
    integ, _, _ = make(tmp_path)
    assert integ.list() == ["trivy"]
    assert integ.get("trivy") is integ.integrations["trivy"]


def test_get_unknown_raises(tmp_path):
    integ, _, _ = make(tmp_path)
    with pytest.raises(IntegrationError, match="integration not found"):
        integ.get("missing")


def test_analyzer_by_integration(tmp_path):
    integ, _, _ = make(tmp_path)
    assert integ.analyzer_by_integration("VulnerabilityReport") == "trivy"
    assert integ.analyzer_by_integration("ConfigAuditReport") == "trivy"
    with pytest.raises(IntegrationError, match="no matches found"):
        integ.analyzer_by_integration("Pod")


def test_activate_deploys_and_merges_filters(tmp_path):
    integ, helm, settings = make(tmp_path)
    integ.activate("trivy", "trivy-ns", ["Pod", "Service", "Pod"], False)
    assert ("install", "trivy-ns") in helm.calls
    filters = settings.get_string_list("active_filters")
    assert sorted(filters) == sorted(
        ["Pod", "Service", "VulnerabilityReport", "ConfigAuditReport"]
    )
    written = yaml.safe_load((tmp_path / "config.yaml").read_text())
    assert sorted(written["active_filters"]) == sorted(filters)


def test_activate_skip_install_does_not_deploy(tmp_path):
    integ, helm, settings = make(tmp_path)
    integ.activate("trivy", "ns", [], True)
    assert helm.calls == []
    assert sorted(settings.get_string_list("active_filters")) == [
        "ConfigAuditReport",
        "VulnerabilityReport",
    ]


def test_activate_unknown_raises(tmp_path):
    integ, _, _ = make(tmp_path)
    with pytest.raises(IntegrationError, match="integration not found"):
        integ.activate("nope", "ns", [], True)


def test_activate_without_config_file_raises():
    settings = Settings()
    trivy = Trivy(FakeHelm(), settings=settings, options=TrivyOptions())
    integ = Integration({"trivy": trivy}, settings)
    with pytest.raises(IntegrationError, match="error writing config file"):
        integ.activate("trivy", "ns", [], True)


def test_deactivate_removes_filters_and_undeploys(tmp_path):
    integ, helm, settings = make(
        tmp_path, ["Pod", "VulnerabilityReport", "Service", "ConfigAuditReport"]
    )
    integ.deactivate("trivy", "trivy-ns")
    assert ("uninstall", "trivy-ns") in helm.calls
    assert settings.get_string_list("active_filters") == ["Pod", "Service"]
    written = yaml.safe_load((tmp_path / "config.yaml").read_text())
    assert written["active_filters"] == ["Pod", "Service"]


def test_deactivate_unknown_raises(tmp_path):
    integ, _, _ = make(tmp_path)
    with pytest.raises(IntegrationError):
        integ.deactivate("nope", "ns")


def test_is_activate(tmp_path):
    integ, _, _ = make(tmp_path, ["VulnerabilityReport"])
    assert integ.is_activate("trivy") is True


def test_is_activate_false_without_filter(tmp_path):
    integ, _, _ = make(tmp_path, ["Pod"])
    assert integ.is_activate("trivy") is False


def test_is_activate_false_when_not_deployed(tmp_path):
    integ, _, _ = make(tmp_path, ["ConfigAuditReport"], groups=("apps",))
    assert integ.is_activate("trivy") is False


def test_is_activate_unknown_raises(tmp_path):
    integ, _, _ = make(tmp_path)
    with pytest.raises(IntegrationError, match="integration not found"):
        integ.is_activate("nope")


def test_namespace_of_deployed_release(tmp_path):
    settings = Settings(tmp_path / "config.yaml")
    helm = FakeHelm([Release(name="trivy-operator-k8sgpt", namespace="sec")])
    trivy = Trivy(helm, settings=settings, options=TrivyOptions())
    integ = Integration({"trivy": trivy}, settings)
    assert integ.get("trivy").get_namespace() == "sec"