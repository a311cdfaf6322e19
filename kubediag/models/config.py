"""Configuration data structures.

Populated from ``KUBEDIAG_*`` environment variables by
``kubediag.config.load_config``.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ApiConfig:
    host: str = "0.0.0.0"
    port: int = 8080


@dataclass
class LogConfig:
    level: str = "info"
    format: str = "json"


@dataclass
class ProviderConfig:
    """How the process reaches the cluster."""

    demo_mode: bool = False
    kubeconfig: str | None = None


@dataclass
class RequestConfig:
    """Per-request limits applied by the front ends."""

    timeout_seconds: int = 30
    max_concurrency: int = 8
    expose_error_detail: bool = True


@dataclass
class KubeDiagConfig:
    mode: str = "http"
    api: ApiConfig = field(default_factory=ApiConfig)
    log: LogConfig = field(default_factory=LogConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    request: RequestConfig = field(default_factory=RequestConfig)
