"""Kubernetes quantity strings to numbers, for ordering only."""

from __future__ import annotations

# Longest suffixes first so "Mi" wins over "M".
_MEMORY_MULTIPLIERS: tuple[tuple[str, float], ...] = (
    ("Ki", 1024.0),
    ("Mi", 1024.0**2),
    ("Gi", 1024.0**3),
    ("Ti", 1024.0**4),
    ("Pi", 1024.0**5),
    ("Ei", 1024.0**6),
    ("k", 1e3),
    ("K", 1e3),
    ("M", 1e6),
    ("G", 1e9),
    ("T", 1e12),
    ("P", 1e15),
    ("E", 1e18),
    ("m", 1e-3),
)


def parse_cpu(value: str | None) -> float:
    """Convert a CPU quantity (``"500m"``, ``"2"``) to cores.  Unparseable input is 0."""
    if not value:
        return 0.0
    s = value.strip()
    try:
        if s.endswith("m"):
            return float(s[:-1]) / 1000.0
        return float(s)
    except ValueError:
        return 0.0


def parse_memory(value: str | None) -> float:
    """Convert a memory quantity (``"128Mi"``, ``"1G"``, ``"1048576"``) to bytes."""
    if not value:
        return 0.0
    s = value.strip()
    for suffix, mult in _MEMORY_MULTIPLIERS:
        if s.endswith(suffix):
            try:
                return float(s[: -len(suffix)]) * mult
            except ValueError:
                return 0.0
    try:
        return float(s)
    except ValueError:
        return 0.0
