"""Environment-driven configuration loader.

Every setting is read from a ``KUBEDIAG_*`` variable (``KUBECONFIG`` is the
one exception).  Numeric values are clamped to safe bounds rather than
rejected; enumerated values that are not recognised raise ``ValueError``.
"""

from __future__ import annotations

import os

from kubediag.models.config import (
    ApiConfig,
    KubeDiagConfig,
    LogConfig,
    ProviderConfig,
    RequestConfig,
)

_PREFIX = "KUBEDIAG_"

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_VALID_MODES = ("http", "mcp")
_VALID_LOG_LEVELS = ("debug", "info", "warning", "error")
_VALID_LOG_FORMATS = ("json", "console")


def _env(name: str) -> str | None:
    value = os.environ.get(_PREFIX + name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _env_str(name: str, default: str) -> str:
    return _env(name) or default


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    return raw.lower() in _TRUTHY


def _env_int(name: str, default: int, minimum: int, maximum: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid integer for {_PREFIX}{name}: {raw!r}") from exc
    return max(minimum, min(maximum, value))


def _env_choice(name: str, default: str, choices: tuple[str, ...], label: str) -> str:
    value = _env_str(name, default).lower()
    if value not in choices:
        raise ValueError(f"Invalid {label}: {value!r} (expected one of {', '.join(choices)})")
    return value


def load_config() -> KubeDiagConfig:
    """Build a KubeDiagConfig from the current process environment."""
    return KubeDiagConfig(
        mode=_env_choice("MODE", "http", _VALID_MODES, "mode"),
        api=ApiConfig(
            host=_env_str("API_HOST", "0.0.0.0"),
            port=_env_int("API_PORT", 8080, 1024, 65535),
        ),
        log=LogConfig(
            level=_env_choice("LOG_LEVEL", "info", _VALID_LOG_LEVELS, "log level"),
            format=_env_choice("LOG_FORMAT", "json", _VALID_LOG_FORMATS, "log format"),
        ),
        provider=ProviderConfig(
            demo_mode=_env_bool("DEMO_MODE", False),
            kubeconfig=os.environ.get("KUBECONFIG") or None,
        ),
        request=RequestConfig(
            timeout_seconds=_env_int("REQUEST_TIMEOUT", 30, 1, 300),
            max_concurrency=_env_int("MAX_CONCURRENCY", 8, 1, 64),
            expose_error_detail=_env_bool("EXPOSE_ERROR_DETAIL", True),
        ),
    )
