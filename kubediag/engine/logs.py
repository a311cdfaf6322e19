"""Log text classification.

Scans raw container log text line by line against fixed, ordered substring
tables.  Matching is case-insensitive; recorded lines keep their original
case.
"""

from __future__ import annotations

from kubediag.models.diagnostics import LogAnalysis
from kubediag.observability.logging import get_logger
from kubediag.provider.base import ClusterStateProvider

_log = get_logger("engine.logs")

DEFAULT_TAIL_LINES = 100

ERROR_PATTERNS: tuple[str, ...] = (
    "error",
    "fatal",
    "exception",
    "panic",
    "failed",
    "timeout",
    "connection refused",
    "permission denied",
    "out of memory",
    "killed",
    "segmentation fault",
    "stack overflow",
)

WARNING_PATTERNS: tuple[str, ...] = ("warning", "warn", "deprecated", "retry", "fallback")

PATTERN_SUGGESTIONS: dict[str, str] = {
    "out of memory": "Consider increasing memory limits or optimizing application memory usage",
    "connection refused": "Check network policies, service configurations, and target service availability",
    "permission denied": "Review RBAC permissions and file system permissions",
    "timeout": "Check network connectivity and increase timeout values if appropriate",
    "killed": "Pod may have been killed due to resource limits (OOMKilled) - check resource usage",
    "segmentation fault": "Application crash detected - review application code and dependencies",
}

HIGH_ERROR_RATE_SUGGESTION = "High error rate detected - consider reviewing application stability"
MANY_WARNINGS_SUGGESTION = "Multiple warnings detected - review application configuration"

HIGH_ERROR_COUNT = 10
HIGH_WARNING_COUNT = 5


def _first_match(line: str, patterns: tuple[str, ...]) -> str | None:
    for pattern in patterns:
        if pattern in line:
            return pattern
    return None


def analyze_logs(raw_text: str, pod_name: str = "", namespace: str = "") -> LogAnalysis:
    """Classify ``raw_text`` into error/warning counts, distinct error lines and suggestions.

    A line is an error when it contains any error pattern; it is counted
    every time it occurs but recorded once.  Every suggestion-bearing
    pattern present on an error line contributes its suggestion, so
    ``"ERROR: timeout"`` yields the timeout advice even though ``error``
    is the pattern that classified it.
    """
    lines = raw_text.splitlines()

    errors_found: list[str] = []
    seen_errors: set[str] = set()
    suggestions: list[str] = []
    error_count = 0
    warning_count = 0

    for line in lines:
        lowered = line.lower()

        if _first_match(lowered, ERROR_PATTERNS) is not None:
            error_count += 1
            if line not in seen_errors:
                seen_errors.add(line)
                errors_found.append(line)
            for pattern in ERROR_PATTERNS:
                suggestion = PATTERN_SUGGESTIONS.get(pattern)
                if suggestion and pattern in lowered and suggestion not in suggestions:
                    suggestions.append(suggestion)

        if _first_match(lowered, WARNING_PATTERNS) is not None:
            warning_count += 1

    if error_count > HIGH_ERROR_COUNT:
        suggestions.append(HIGH_ERROR_RATE_SUGGESTION)
    if warning_count > HIGH_WARNING_COUNT:
        suggestions.append(MANY_WARNINGS_SUGGESTION)

    return LogAnalysis(
        pod_name=pod_name,
        namespace=namespace,
        log_lines=len(lines),
        errors_found=tuple(errors_found),
        error_count=error_count,
        suggestions=tuple(suggestions),
        warning_count=warning_count,
    )


class LogClassifier:
    """Fetches a pod's log tail from the provider and classifies it."""

    def __init__(self, provider: ClusterStateProvider) -> None:
        self._provider = provider

    async def analyze_pod_logs(
        self,
        namespace: str,
        pod_name: str,
        container: str = "",
        lines: int = DEFAULT_TAIL_LINES,
    ) -> LogAnalysis:
        if lines <= 0:
            lines = DEFAULT_TAIL_LINES
        text = await self._provider.read_pod_logs(namespace, pod_name, container or None, lines)
        analysis = analyze_logs(text, pod_name=pod_name, namespace=namespace)
        _log.debug(
            "pod_logs_classified",
            namespace=namespace,
            pod=pod_name,
            errors=analysis.error_count,
            warnings=analysis.warning_count,
        )
        return analysis
