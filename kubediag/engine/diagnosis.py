"""Single-pod diagnosis.

Evaluates one pod's container statuses, container specs and recent events
into a PodDiagnostic.  Issue and suggestion lists are built in discovery
order and deduplicated by exact text.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from kubediag.errors import ProviderError
from kubediag.models.diagnostics import PodDiagnostic
from kubediag.models.snapshots import ContainerSpec, ContainerStatus, EventRecord
from kubediag.observability.logging import get_logger
from kubediag.provider.base import ClusterStateProvider

_log = get_logger("engine.diagnosis")

# Single-pod diagnosis is stricter about restarts than the fleet scans
# (which flag at > 3); see DESIGN.md.
HIGH_RESTART_THRESHOLD = 5
EVENT_WINDOW = timedelta(hours=24)

_IMAGE_PULL_REASONS = frozenset({"ImagePullBackOff", "ErrImagePull"})

SUGGEST_RESTARTS = "Check container logs and resource limits"
SUGGEST_IMAGE_PULL = "Check image name, registry credentials, and network connectivity"
SUGGEST_CRASH_LOOP = "Check application logs and startup configuration"
SUGGEST_RESOURCES = "Set appropriate resource requests and limits"


def _waiting_suggestion(reason: str) -> str | None:
    if reason in _IMAGE_PULL_REASONS:
        return SUGGEST_IMAGE_PULL
    if reason == "CrashLoopBackOff":
        return SUGGEST_CRASH_LOOP
    return None


def _format_event(event: EventRecord, timestamp: datetime) -> str:
    stamp = timestamp.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
    return f"{event.reason}: {event.message} ({stamp})"


class _Findings:
    """Ordered, duplicate-free issue and suggestion accumulator."""

    def __init__(self) -> None:
        self.issues: list[str] = []
        self.suggestions: list[str] = []

    def issue(self, text: str) -> None:
        if text not in self.issues:
            self.issues.append(text)

    def suggest(self, text: str | None) -> None:
        if text and text not in self.suggestions:
            self.suggestions.append(text)


def _check_status(cs: ContainerStatus, findings: _Findings) -> None:
    if cs.restart_count > HIGH_RESTART_THRESHOLD:
        findings.issue(f"Container {cs.name} has high restart count: {cs.restart_count}")
        findings.suggest(SUGGEST_RESTARTS)

    if not cs.ready:
        findings.issue(f"Container {cs.name} is not ready")

    if cs.waiting_reason:
        findings.issue(f"Container {cs.name} is waiting: {cs.waiting_reason}")
        findings.suggest(_waiting_suggestion(cs.waiting_reason))


def _check_spec(container: ContainerSpec, findings: _Findings, resources: dict[str, str]) -> None:
    reqs = container.resources
    if reqs.is_unset:
        findings.issue(f"Container {container.name} has no resource requests/limits")
        findings.suggest(SUGGEST_RESOURCES)
        return

    for attr, block in (("request", reqs.requests), ("limit", reqs.limits)):
        if not block:
            continue
        for resource in ("cpu", "memory"):
            if resource in block:
                resources[f"{container.name}_{resource}_{attr}"] = block[resource]


class PodDiagnosisEngine:
    """Turns one pod's live state into a PodDiagnostic.

    Args:
        provider: Source of pod and event snapshots.
        clock:    Returns the evaluation time; injectable for tests.
    """

    def __init__(
        self,
        provider: ClusterStateProvider,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._provider = provider
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    async def diagnose_pod(self, namespace: str, pod_name: str) -> PodDiagnostic:
        """Diagnose ``namespace/pod_name``.

        Raises:
            NotFoundError: the pod does not exist.
            ProviderError: the pod could not be read.
        """
        pod = await self._provider.get_pod(namespace, pod_name)
        now = self._clock()

        findings = _Findings()
        resources: dict[str, str] = {}

        for cs in pod.container_statuses:
            _check_status(cs, findings)

        for container in pod.containers:
            _check_spec(container, findings, resources)

        events = await self._recent_events(namespace, pod_name, now)

        return PodDiagnostic(
            name=pod.name,
            namespace=pod.namespace,
            status=pod.phase,
            restart_count=pod.total_restarts,
            issues=tuple(findings.issues),
            suggestions=tuple(findings.suggestions),
            recent_events=tuple(events),
            resources=resources,
            created_at=now,
        )

    async def _recent_events(self, namespace: str, pod_name: str, now: datetime) -> list[str]:
        """Events of the last 24 hours; an event lookup failure yields none."""
        try:
            events = await self._provider.list_pod_events(namespace, pod_name)
        except ProviderError as exc:
            _log.warning("pod_events_unavailable", namespace=namespace, pod=pod_name, error=str(exc))
            return []

        cutoff = now - EVENT_WINDOW
        return [_format_event(e, e.timestamp) for e in events if e.timestamp is not None and e.timestamp > cutoff]
