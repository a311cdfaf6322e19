"""kubediag - Kubernetes diagnostics and triage service."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("kubediag")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
