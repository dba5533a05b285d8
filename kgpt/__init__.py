"""Cluster diagnostics helpers: result types, a file cache, YAML settings, OpenAPI docs, Trivy and integrations."""

__version__ = "0.1.0"
__all__ = ["__version__"]