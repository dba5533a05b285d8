# kgpt

Building blocks for cluster diagnostics: analysis result types, a local
file-based cache for answers, OpenAPI field documentation lookup, and a Trivy
integration that turns vulnerability and config-audit reports into results.

## Install

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `kgpt.common`: the analysis types `Result`, `Failure`, `Sensitive`,
  `PreAnalysis` and `Analyzer`. `Result.to_dict()` returns the serialised
  form, with the keys `kind`, `name`, `error`, `details` and `parentObject`.
- `kgpt.util`: helpers. `remove_duplicates` splits a list into its distinct
  values and the repeated ones; `slice_diff`, `slice_contains_string`,
  `mask_string` (random characters of the same length, base64 encoded),
  `replace_if_match`, `get_cache_key` (hex SHA-256 of
  `provider-language-encoded`), `map_to_string` (`k1=v1,k2=v2`, raising
  `ValueError` for an empty mapping), `labels_include_any`, `file_exists` and
  `ensure_dir_exists`. `get_parent` follows `OwnerReference`s on an
  `ObjectMeta` through a client offering `get_object(kind, namespace, name)`
  and returns `"<Kind>/<name>"` of the topmost known owner.
- `kgpt.settings`: `Settings`, a configuration store kept in memory and
  written to a YAML file. Keys are case-insensitive and may be dotted
  (`"cache.gcs.bucketname"`). It offers `get`, `set`, `get_string_list` and
  `write`; `write` raises `FileNotFoundError` when no path was given.
- `kgpt.cache`: `FileBasedCache` keeps one file per key (written with mode
  0600) under a root directory, by default `k8sgpt` inside the user cache
  directory. It offers `store`, `load`, `list`, `remove`, `exists`,
  `configure`, `is_cache_disabled` and `disable_cache`. `CacheProvider`
  holds the remote cache settings (`gcs`, `azure`, `s3`) with `to_dict` and
  `from_dict`. `new_cache_provider` builds and checks them, raising
  `CacheError` for an unknown type or a missing field.
  `parse_cache_configuration`, `get_cache_configuration`, `add_remote_cache`
  and `remove_remote_cache` read and write them through a `Settings`.
- `kgpt.api_reference`: `K8sApiReference.get_api_doc_v2(field)` returns the
  description of a dotted field path such as `spec.replicas`. The path is
  looked up in an OpenAPI v2 document given as a mapping with a `definitions`
  section, following `$ref` links and array items.
- `kgpt.trivy`: `Trivy` deploys and removes the Trivy operator through a
  chart client you pass in, and reports the namespace of its release.
  `TrivyOptions.from_env` reads `TRIVY_REPO`, `TRIVY_VERSION`,
  `TRIVY_CHART_NAME`, `TRIVY_REPO_SHORT_NAME` and `TRIVY_RELEASE_NAME`.
  `TrivyAnalyzer.analyze` turns CRITICAL vulnerabilities, and MEDIUM, HIGH or
  CRITICAL config checks, into `Result`s.
- `kgpt.integration`: `Integration` lists integrations, finds the one owning
  an analyzer, and activates or deactivates them. It keeps the
  `active_filters` setting up to date and writes the configuration.
  Failures raise `IntegrationError`.
- `kgpt.server_log`: `timed_call` runs a request handler and logs the
  duration, method, request and status. `log_request` logs at error level
  for status codes of 400 and above. `Health.to_json` reports health as
  indented JSON. `get_bool_param` is true only for `1`, `t` or `true`, in
  any case.

## Example

```python
from kgpt.cache import FileBasedCache
from kgpt.util import get_cache_key

cache = FileBasedCache(root="/tmp/kgpt-cache")
key = get_cache_key("openai", "english", "encoded-failure")
cache.store(key, "explanation")
assert cache.exists(key)
print(cache.load(key))
```

## What it does not do

- There is no command-line program and no server. `kgpt.server_log` only
  provides logging and health helpers for a server you run yourself.
- Only the file cache stores data. Azure, GCS and S3 settings can be built,
  checked and saved, but `new_cache` and `get_cache_configuration` raise
  `CacheError` for those types.
- It does not talk to a cluster, a chart repository or an AI backend by
  itself. `Trivy` needs a chart client and a group-discovery function.
  `TrivyAnalyzer` and `get_parent` need a client object that lists reports
  and fetches objects.