"""ClusterStateProvider backed by the kubernetes-asyncio client.

Translates client models into ``kubediag.models.snapshots`` types and maps
every client failure onto the kubediag error taxonomy:

    ApiException 404 on a pod lookup -> NotFoundError
    any other API or transport error -> ProviderError
"""

from __future__ import annotations

from collections.abc import Awaitable
from datetime import UTC, datetime
from typing import Any, TypeVar

from kubernetes_asyncio.client.exceptions import ApiException

from kubediag.errors import NotFoundError, ProviderError
from kubediag.models.snapshots import (
    ContainerSpec,
    ContainerStatus,
    DeploymentSnapshot,
    EventRecord,
    NodeSnapshot,
    PodSnapshot,
    ResourceRequirements,
)
from kubediag.observability.logging import get_logger
from kubediag.observability.metrics import provider_errors_total

_log = get_logger("provider.kubernetes")

_T = TypeVar("_T")


# ---------------------------------------------------------------------------
# Model conversion
# ---------------------------------------------------------------------------


def _utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _quantities(raw: dict[str, Any] | None) -> dict[str, str] | None:
    if raw is None:
        return None
    return {str(k): str(v) for k, v in raw.items()}


def container_spec_from_api(container: Any) -> ContainerSpec:
    resources = getattr(container, "resources", None)
    return ContainerSpec(
        name=container.name,
        resources=ResourceRequirements(
            requests=_quantities(getattr(resources, "requests", None)),
            limits=_quantities(getattr(resources, "limits", None)),
        ),
        has_liveness_probe=getattr(container, "liveness_probe", None) is not None,
        has_readiness_probe=getattr(container, "readiness_probe", None) is not None,
    )


def container_status_from_api(status: Any) -> ContainerStatus:
    state = getattr(status, "state", None)
    waiting = getattr(state, "waiting", None) if state is not None else None
    reason = getattr(waiting, "reason", None) if waiting is not None else None
    return ContainerStatus(
        name=status.name,
        ready=bool(status.ready),
        restart_count=int(status.restart_count or 0),
        waiting_reason=reason or None,
    )


def pod_from_api(pod: Any) -> PodSnapshot:
    meta = pod.metadata
    status = pod.status
    spec = pod.spec
    return PodSnapshot(
        name=meta.name,
        namespace=meta.namespace,
        phase=str(getattr(status, "phase", None) or "Unknown"),
        labels=dict(meta.labels or {}),
        container_statuses=tuple(
            container_status_from_api(cs) for cs in (getattr(status, "container_statuses", None) or [])
        ),
        containers=tuple(container_spec_from_api(c) for c in (getattr(spec, "containers", None) or [])),
        created_at=_utc(meta.creation_timestamp),
    )


def node_from_api(node: Any) -> NodeSnapshot:
    conditions = getattr(node.status, "conditions", None) or []
    ready = any(c.type == "Ready" and c.status == "True" for c in conditions)
    return NodeSnapshot(name=node.metadata.name, ready=ready)


def deployment_from_api(deployment: Any) -> DeploymentSnapshot:
    template_spec = deployment.spec.template.spec
    return DeploymentSnapshot(
        name=deployment.metadata.name,
        namespace=deployment.metadata.namespace,
        replicas=deployment.spec.replicas,
        containers=tuple(container_spec_from_api(c) for c in (template_spec.containers or [])),
    )


def event_from_api(event: Any) -> EventRecord:
    timestamp = (
        getattr(event, "last_timestamp", None)
        or getattr(event, "event_time", None)
        or getattr(event, "first_timestamp", None)
    )
    involved = getattr(event, "involved_object", None)
    return EventRecord(
        reason=event.reason or "",
        message=event.message or "",
        timestamp=_utc(timestamp),
        subject=getattr(involved, "name", "") or "",
    )


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------


class KubernetesStateProvider:
    """Reads cluster state through kubernetes-asyncio API objects.

    Args:
        core_v1: A ``CoreV1Api`` instance.
        apps_v1: An ``AppsV1Api`` instance.
        api_client: Optional shared ``ApiClient``; closed by ``close()``.
    """

    def __init__(self, core_v1: Any, apps_v1: Any, api_client: Any | None = None) -> None:
        self._core = core_v1
        self._apps = apps_v1
        self._api_client = api_client

    @classmethod
    async def connect(cls, kubeconfig: str | None = None) -> KubernetesStateProvider:
        """Load in-cluster config, falling back to kubeconfig, and build the APIs."""
        from kubernetes_asyncio import client, config

        try:
            config.load_incluster_config()  # type: ignore[no-untyped-call]
            _log.info("k8s client configured from in-cluster service account")
        except config.ConfigException:
            await config.load_kube_config(config_file=kubeconfig)
            _log.info("k8s client configured from kubeconfig", path=kubeconfig or "default")

        api_client = client.ApiClient()
        return cls(client.CoreV1Api(api_client), client.AppsV1Api(api_client), api_client)

    async def close(self) -> None:
        if self._api_client is not None:
            await self._api_client.close()

    async def _call(self, call: str, awaitable: Awaitable[_T]) -> _T:
        try:
            return await awaitable
        except ApiException as exc:
            provider_errors_total.labels(call=call).inc()
            _log.warning("provider_api_error", call=call, status=exc.status, reason=exc.reason)
            raise ProviderError(call, f"({exc.status}) {exc.reason}") from exc
        except Exception as exc:
            provider_errors_total.labels(call=call).inc()
            _log.warning("provider_transport_error", call=call, error=str(exc))
            raise ProviderError(call, str(exc)) from exc

    async def get_pod(self, namespace: str, name: str) -> PodSnapshot:
        try:
            pod = await self._core.read_namespaced_pod(name=name, namespace=namespace)
        except ApiException as exc:
            if exc.status == 404:
                raise NotFoundError("Pod", namespace, name) from exc
            provider_errors_total.labels(call="get_pod").inc()
            raise ProviderError("get_pod", f"({exc.status}) {exc.reason}") from exc
        except Exception as exc:
            provider_errors_total.labels(call="get_pod").inc()
            raise ProviderError("get_pod", str(exc)) from exc
        return pod_from_api(pod)

    async def list_pods(self, namespace: str | None = None) -> list[PodSnapshot]:
        if namespace:
            result = await self._call("list_pods", self._core.list_namespaced_pod(namespace=namespace))
        else:
            result = await self._call("list_pods", self._core.list_pod_for_all_namespaces())
        return [pod_from_api(p) for p in result.items]

    async def list_nodes(self) -> list[NodeSnapshot]:
        result = await self._call("list_nodes", self._core.list_node())
        return [node_from_api(n) for n in result.items]

    async def list_namespaces(self) -> list[str]:
        result = await self._call("list_namespaces", self._core.list_namespace())
        return [ns.metadata.name for ns in result.items]

    async def list_deployments(self, namespace: str | None = None) -> list[DeploymentSnapshot]:
        if namespace:
            result = await self._call(
                "list_deployments", self._apps.list_namespaced_deployment(namespace=namespace)
            )
        else:
            result = await self._call("list_deployments", self._apps.list_deployment_for_all_namespaces())
        return [deployment_from_api(d) for d in result.items]

    async def list_pod_events(self, namespace: str, pod_name: str) -> list[EventRecord]:
        result = await self._call(
            "list_pod_events",
            self._core.list_namespaced_event(
                namespace=namespace,
                field_selector=f"involvedObject.name={pod_name}",
            ),
        )
        return [event_from_api(e) for e in result.items]

    async def read_pod_logs(
        self,
        namespace: str,
        pod_name: str,
        container: str | None = None,
        tail_lines: int = 100,
    ) -> str:
        kwargs: dict[str, Any] = {"name": pod_name, "namespace": namespace, "tail_lines": tail_lines}
        if container:
            kwargs["container"] = container
        try:
            text = await self._core.read_namespaced_pod_log(**kwargs)
        except ApiException as exc:
            if exc.status == 404:
                raise NotFoundError("Pod", namespace, pod_name) from exc
            provider_errors_total.labels(call="read_pod_logs").inc()
            raise ProviderError("read_pod_logs", f"({exc.status}) {exc.reason}") from exc
        except Exception as exc:
            provider_errors_total.labels(call="read_pod_logs").inc()
            raise ProviderError("read_pod_logs", str(exc)) from exc
        return str(text or "")
