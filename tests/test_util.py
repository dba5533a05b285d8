import base64

import pytest

from kgpt.util import (
    ObjectMeta,
    OwnerReference,
    ensure_dir_exists,
    file_exists,
    get_cache_key,
    get_parent,
    labels_include_any,
    map_to_string,
    mask_string,
    remove_duplicates,
    replace_if_match,
    slice_contains_string,
    slice_diff,
)

PATTERN = (
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
    "!@#$%^&*()-_=+[]{}|;':\",./<>?"
)


class FakeClient:
    def __init__(self, objects):
        self.objects = objects
        self.calls = []

    def get_object(self, kind, namespace, name):
        self.calls.append((kind, namespace, name))
        return self.objects[(kind, namespace, name)]


def test_slice_contains_string():
    assert slice_contains_string(["a", "b"], "b") is True
    assert slice_contains_string(["a", "b"], "c") is False
    assert slice_contains_string([], "a") is False


def test_get_parent_without_owner_returns_name():
    meta = ObjectMeta(name="pod-1", namespace="default")
    assert get_parent(FakeClient({}), meta) == "pod-1"


def test_get_parent_follows_chain_to_deployment():
    client = FakeClient(
        {
            ("ReplicaSet", "default", "web-rs"): ObjectMeta(
                name="web-rs",
                namespace="default",
                owner_references=[OwnerReference("Deployment", "web")],
            ),
            ("Deployment", "default", "web"): ObjectMeta(name="web", namespace="default"),
        }
    )
    pod = ObjectMeta(
        name="web-rs-xyz",
        namespace="default",
        owner_references=[OwnerReference("ReplicaSet", "web-rs")],
    )
    assert get_parent(client, pod) == "Deployment/web"


def test_get_parent_replicaset_without_owner():
    client = FakeClient({("ReplicaSet", "ns", "rs"): ObjectMeta(name="rs", namespace="ns")})
    pod = ObjectMeta(name="p", namespace="ns", owner_references=[OwnerReference("ReplicaSet", "rs")])
    assert get_parent(client, pod) == "ReplicaSet/rs"


def test_get_parent_missing_owner_returns_empty():
    pod = ObjectMeta(name="p", namespace="ns", owner_references=[OwnerReference("StatefulSet", "gone")])
    assert get_parent(FakeClient({}), pod) == ""


def test_get_parent_unknown_kind_returns_own_name():
    pod = ObjectMeta(name="p", namespace="ns", owner_references=[OwnerReference("Job", "j")])
    assert get_parent(FakeClient({}), pod) == "p"


def test_get_parent_webhook_is_cluster_scoped():
    client = FakeClient(
        {("MutatingWebhookConfiguration", "", "hook"): ObjectMeta(name="hook")}
    )
    meta = ObjectMeta(
        name="x", namespace="ns", owner_references=[OwnerReference("MutatingWebhookConfiguration", "hook")]
    )
    assert get_parent(client, meta) == "MutatingWebhook/hook"
    assert client.calls == [("MutatingWebhookConfiguration", "", "hook")]


def test_remove_duplicates():
    unique, duplicates = remove_duplicates(["a", "b", "a", "c", "b"])
    assert unique == ["a", "b", "c"]
    assert duplicates == ["a", "b"]


def test_remove_duplicates_empty():
    assert remove_duplicates([]) == ([], [])


def test_slice_diff():
    assert slice_diff(["a", "b", "c"], ["b"]) == ["a", "c"]
    assert slice_diff(["a"], ["a"]) == []


@pytest.mark.parametrize("text", ["", "a", "secret-namespace", "héllo"])
def test_mask_string_shape(text):
    masked = mask_string(text)
    decoded = base64.b64decode(masked).decode("utf-8")
    assert len(decoded) == len(text.encode("utf-8"))
    assert all(ch in PATTERN for ch in decoded)


def test_replace_if_match_replaces_word():
    assert replace_if_match("pod nginx-abc failed", "nginx-abc", "MASK") == "pod MASK failed"


def test_replace_if_match_requires_boundary():
    text = "pod nginx-abcdef failed"
    assert replace_if_match(text, "nginx-abc", "MASK") == text


def test_get_cache_key_properties():
    key = get_cache_key("openai", "english", "abc")
    assert len(key) == 64
    assert all(ch in "0123456789abcdef" for ch in key)
    assert key == get_cache_key("openai", "english", "abc")
    assert key != get_cache_key("openai", "german", "abc")


def test_file_exists(tmp_path):
    target = tmp_path / "f.txt"
    assert file_exists(target) is False
    target.write_text("x")
    assert file_exists(target) is True


def test_ensure_dir_exists(tmp_path):
    target = tmp_path / "a" / "b"
    ensure_dir_exists(target)
    assert target.is_dir()
    ensure_dir_exists(target)
    assert target.is_dir()


def test_ensure_dir_exists_file_in_the_way(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    with pytest.raises(OSError):
        ensure_dir_exists(blocker)


def test_map_to_string():
    assert map_to_string({"app": "web", "tier": "db"}) == "app=web,tier=db"


def test_map_to_string_single():
    assert map_to_string({"k": "v"}) == "k=v"


def test_map_to_string_empty_raises():
    with pytest.raises(ValueError):
        map_to_string({})


def test_labels_include_any():
    assert labels_include_any({"app": "x"}, {"app": "y", "other": "z"}) is True
    assert labels_include_any({"app": "x"}, {"other": "z"}) is False
    assert labels_include_any({}, {"app": "x"}) is False