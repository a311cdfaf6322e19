"""Skip-and-continue collector for per-pod diagnosis fan-out.

Aggregate scans select a set of pods and diagnose each one.  A failed
diagnosis (pod vanished, transient API error) must not abort the scan: the
pod is dropped, logged and counted.  Diagnoses run concurrently under a
semaphore; results keep the order of ``targets``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from kubediag.engine.diagnosis import PodDiagnosisEngine
from kubediag.errors import DiagnosticsError
from kubediag.models.diagnostics import DiagnosisBatch, PodDiagnostic
from kubediag.models.snapshots import PodSnapshot
from kubediag.observability.logging import get_logger
from kubediag.observability.metrics import diagnoses_skipped_total

_log = get_logger("engine.collect")

DEFAULT_MAX_CONCURRENCY = 8


async def diagnose_all(
    engine: PodDiagnosisEngine,
    targets: Sequence[PodSnapshot],
    *,
    operation: str,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
) -> DiagnosisBatch:
    """Diagnose every pod in ``targets``, skipping the ones that fail.

    Only ``DiagnosticsError`` is treated as a per-pod failure; anything else
    (including cancellation by the request deadline) propagates once the
    remaining diagnoses have been cancelled.
    """
    if not targets:
        return DiagnosisBatch()

    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def _one(pod: PodSnapshot) -> PodDiagnostic | None:
        async with semaphore:
            try:
                return await engine.diagnose_pod(pod.namespace, pod.name)
            except DiagnosticsError as exc:
                _log.warning(
                    "pod_diagnosis_skipped",
                    operation=operation,
                    namespace=pod.namespace,
                    pod=pod.name,
                    error=str(exc),
                )
                return None

    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(_one(pod)) for pod in targets]
    except ExceptionGroup as failures:
        raise failures.exceptions[0] from None

    results = [task.result() for task in tasks]
    diagnostics = tuple(r for r in results if r is not None)
    skipped = len(results) - len(diagnostics)
    if skipped:
        diagnoses_skipped_total.labels(operation=operation).inc(skipped)
    return DiagnosisBatch(diagnostics=diagnostics, skipped=skipped)
