"""Unit tests for the FastAPI application (kubediag.api.app + routes)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from kubediag import __version__
from kubediag.api.app import create_app
from kubediag.errors import DeadlineExceededError, NotFoundError, ProviderError, ValidationError

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _diagnostic_payload(name: str = "api-pod") -> dict[str, object]:
    return {
        "name": name,
        "namespace": "default",
        "status": "Running",
        "restart_count": 0,
        "issues": [],
        "suggestions": [],
        "recent_events": [],
        "resources": {},
        "created_at": "2024-05-01T12:00:00+00:00",
    }


def _make_service() -> MagicMock:
    service = MagicMock()
    service.diagnose_pod = AsyncMock(return_value=_diagnostic_payload())
    service.analyze_cluster_health = AsyncMock(return_value={"node_count": 1})
    service.analyze_pod_logs = AsyncMock(return_value={"pod_name": "api-pod", "error_count": 0})
    service.list_pods = AsyncMock(return_value={"namespace": "default", "pod_count": 0, "pods": []})
    service.find_problematic_pods = AsyncMock(
        return_value={
            "search_criteria": "all",
            "namespace": "",
            "problem_count": 0,
            "skipped_count": 0,
            "problematic_pods": [],
        }
    )
    service.search_pods = AsyncMock(
        return_value={
            "search_pattern": "api",
            "namespace": "",
            "matches_found": 0,
            "skipped_count": 0,
            "matching_pods": [],
        }
    )
    service.get_resource_usage = AsyncMock(
        return_value={"namespace": "", "sort_by": "restarts", "pod_count": 0, "resource_usage": []}
    )
    service.quick_triage = AsyncMock(return_value={"immediate_actions": []})
    service.get_workload_recommendations = AsyncMock(return_value=["Deployment default/a has only 1 replica"])
    return service


def _make_client(
    service: MagicMock | None = None,
    *,
    demo_mode: bool = False,
    expose_error_detail: bool = True,
) -> TestClient:
    app = create_app(
        service or _make_service(),
        demo_mode=demo_mode,
        expose_error_detail=expose_error_detail,
    )
    return TestClient(app, raise_server_exceptions=False)


# ---------------------------------------------------------------------------
# GET /health and /metrics
# ---------------------------------------------------------------------------


class TestHealthEndpoint:
    def test_returns_200_with_healthy_status(self) -> None:
        resp = _make_client().get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["version"] == __version__
        assert body["demo_mode"] is False
        assert body["time"]

    def test_reports_demo_mode(self) -> None:
        assert _make_client(demo_mode=True).get("/health").json()["demo_mode"] is True


class TestMetricsEndpoint:
    def test_exposes_prometheus_text(self) -> None:
        client = _make_client()
        resp = client.get("/metrics")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/plain")
        assert "kubediag_requests_total" in resp.text


# ---------------------------------------------------------------------------
# POST /diagnose_pod
# ---------------------------------------------------------------------------


class TestDiagnosePod:
    def test_returns_diagnostic(self) -> None:
        service = _make_service()
        resp = _make_client(service).post("/diagnose_pod", json={"namespace": "prod", "pod_name": "api-pod"})
        assert resp.status_code == 200
        assert resp.json()["name"] == "api-pod"
        service.diagnose_pod.assert_awaited_once_with("prod", "api-pod")

    def test_namespace_defaults(self) -> None:
        service = _make_service()
        _make_client(service).post("/diagnose_pod", json={"pod_name": "api-pod"})
        service.diagnose_pod.assert_awaited_once_with("default", "api-pod")

    def test_missing_pod_name_is_400(self) -> None:
        resp = _make_client().post("/diagnose_pod", json={"namespace": "default"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "INVALID_REQUEST"
        assert "pod_name" in body["detail"]

    def test_empty_pod_name_is_400(self) -> None:
        resp = _make_client().post("/diagnose_pod", json={"pod_name": ""})
        assert resp.status_code == 400

    def test_malformed_json_is_400(self) -> None:
        resp = _make_client().post(
            "/diagnose_pod",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "INVALID_REQUEST"

    def test_get_is_405(self) -> None:
        assert _make_client().get("/diagnose_pod").status_code == 405

    def test_not_found_is_404(self) -> None:
        service = _make_service()
        service.diagnose_pod = AsyncMock(side_effect=NotFoundError("Pod", "default", "ghost"))
        resp = _make_client(service).post("/diagnose_pod", json={"pod_name": "ghost"})
        assert resp.status_code == 404
        assert resp.json() == {
            "error": "NOT_FOUND",
            "detail": "Pod 'ghost' not found in namespace 'default'",
        }


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


class TestErrorMapping:
    def test_service_validation_error_is_400(self) -> None:
        service = _make_service()
        service.get_resource_usage = AsyncMock(side_effect=ValidationError("Invalid sort_by: 'x'"))
        resp = _make_client(service).post("/get_resource_usage", json={"sort_by": "x"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid sort_by: 'x'"

    def test_provider_error_is_500_with_detail(self) -> None:
        service = _make_service()
        service.analyze_cluster_health = AsyncMock(side_effect=ProviderError("list_nodes", "unreachable"))
        resp = _make_client(service).post("/analyze_cluster_health")
        assert resp.status_code == 500
        assert resp.json() == {"error": "PROVIDER_ERROR", "detail": "list_nodes failed: unreachable"}

    def test_provider_error_detail_hidden(self) -> None:
        service = _make_service()
        service.analyze_cluster_health = AsyncMock(side_effect=ProviderError("list_nodes", "10.0.0.1 refused"))
        resp = _make_client(service, expose_error_detail=False).post("/analyze_cluster_health")
        assert resp.status_code == 500
        assert resp.json() == {"error": "PROVIDER_ERROR", "detail": "An unexpected error occurred."}

    def test_deadline_is_500(self) -> None:
        service = _make_service()
        service.quick_triage = AsyncMock(side_effect=DeadlineExceededError("quick_triage", 30))
        resp = _make_client(service).post("/quick_triage")
        assert resp.status_code == 500
        assert resp.json()["error"] == "DEADLINE_EXCEEDED"

    def test_unexpected_exception_is_generic_500(self) -> None:
        service = _make_service()
        service.list_pods = AsyncMock(side_effect=RuntimeError("boom"))
        resp = _make_client(service).post("/list_pods")
        assert resp.status_code == 500
        assert resp.json() == {"error": "INTERNAL_ERROR", "detail": "An unexpected error occurred."}


# ---------------------------------------------------------------------------
# Remaining routes
# ---------------------------------------------------------------------------


class TestRoutes:
    def test_analyze_pod_logs_defaults(self) -> None:
        service = _make_service()
        resp = _make_client(service).post("/analyze_pod_logs", json={"pod_name": "api-pod"})
        assert resp.status_code == 200
        service.analyze_pod_logs.assert_awaited_once_with("default", "api-pod", "", 100)

    def test_list_pods_without_body(self) -> None:
        service = _make_service()
        resp = _make_client(service).post("/list_pods")
        assert resp.status_code == 200
        service.list_pods.assert_awaited_once_with("default", False)

    def test_find_problematic_pods_passes_criteria(self) -> None:
        service = _make_service()
        resp = _make_client(service).post("/find_problematic_pods", json={"criteria": "failing"})
        assert resp.status_code == 200
        service.find_problematic_pods.assert_awaited_once_with("", "failing")

    def test_search_pods_requires_pattern(self) -> None:
        assert _make_client().post("/search_pods", json={}).status_code == 400

    def test_search_pods(self) -> None:
        service = _make_service()
        resp = _make_client(service).post("/search_pods", json={"pattern": "api"})
        assert resp.status_code == 200
        assert resp.json()["search_pattern"] == "api"

    def test_resource_usage_defaults(self) -> None:
        service = _make_service()
        _make_client(service).post("/get_resource_usage")
        service.get_resource_usage.assert_awaited_once_with("", "restarts")

    def test_workload_recommendations_returns_list(self) -> None:
        resp = _make_client().post("/get_workload_recommendations", json={"namespace": "all"})
        assert resp.status_code == 200
        assert resp.json() == ["Deployment default/a has only 1 replica"]
