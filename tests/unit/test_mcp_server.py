"""Unit tests for kubediag.mcp.server: tool catalogue, dispatch and the guide resource."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from mcp.types import (
    CallToolRequest,
    ListResourcesRequest,
    ListToolsRequest,
    ReadResourceRequest,
    ReadResourceRequestParams,
)
from pydantic import AnyUrl

from kubediag.errors import DeadlineExceededError, NotFoundError, ProviderError
from kubediag.mcp.guide import GUIDE_URI
from kubediag.mcp.server import RESOURCES, TOOLS, MCPServer

# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def _make_service() -> MagicMock:
    service = MagicMock()
    service.diagnose_pod = AsyncMock(return_value={"name": "api-pod", "issues": []})
    service.analyze_cluster_health = AsyncMock(return_value={"node_count": 3})
    service.analyze_pod_logs = AsyncMock(return_value={"error_count": 0})
    service.list_pods = AsyncMock(return_value={"pod_count": 0, "pods": []})
    service.find_problematic_pods = AsyncMock(return_value={"problem_count": 0})
    service.search_pods = AsyncMock(return_value={"matches_found": 0})
    service.get_resource_usage = AsyncMock(return_value={"pod_count": 0})
    service.quick_triage = AsyncMock(return_value={"immediate_actions": []})
    service.get_workload_recommendations = AsyncMock(return_value=["rec"])
    return service


def _make_server(service: MagicMock | None = None, expose_error_detail: bool = True) -> MCPServer:
    return MCPServer(service or _make_service(), expose_error_detail=expose_error_detail)


async def _call(server: MCPServer, name: str, arguments: dict[str, Any] | None = None) -> Any:
    contents = await server.call_tool(name, arguments)
    assert len(contents) == 1
    assert contents[0].type == "text"
    return json.loads(contents[0].text)


# ---------------------------------------------------------------------------
# Tool catalogue
# ---------------------------------------------------------------------------


class TestToolCatalogue:
    def test_nine_tools(self) -> None:
        assert [t.name for t in TOOLS] == [
            "diagnose_pod",
            "analyze_cluster_health",
            "analyze_pod_logs",
            "list_pods",
            "find_problematic_pods",
            "search_pods",
            "get_resource_usage",
            "quick_triage",
            "get_workload_recommendations",
        ]

    def test_required_arguments(self) -> None:
        required = {t.name: t.inputSchema.get("required", []) for t in TOOLS}
        assert required["diagnose_pod"] == ["pod_name"]
        assert required["analyze_pod_logs"] == ["pod_name"]
        assert required["search_pods"] == ["pattern"]
        assert required["quick_triage"] == []

    def test_every_tool_has_a_handler(self) -> None:
        server = _make_server()
        assert set(server._handlers) == {t.name for t in TOOLS}


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class TestCallTool:
    @pytest.mark.asyncio
    async def test_diagnose_pod_defaults_namespace(self) -> None:
        service = _make_service()
        payload = await _call(_make_server(service), "diagnose_pod", {"pod_name": "api-pod"})
        assert payload == {"name": "api-pod", "issues": []}
        service.diagnose_pod.assert_awaited_once_with("default", "api-pod")

    @pytest.mark.asyncio
    async def test_none_arguments_treated_as_empty(self) -> None:
        service = _make_service()
        await _call(_make_server(service), "list_pods", None)
        service.list_pods.assert_awaited_once_with("default", False)

    @pytest.mark.asyncio
    async def test_logs_lines_coerced(self) -> None:
        service = _make_service()
        await _call(_make_server(service), "analyze_pod_logs", {"pod_name": "api", "lines": "50"})
        service.analyze_pod_logs.assert_awaited_once_with("default", "api", "", 50)

    @pytest.mark.asyncio
    async def test_logs_bad_lines_is_invalid_request(self) -> None:
        payload = await _call(_make_server(), "analyze_pod_logs", {"pod_name": "api", "lines": "many"})
        assert payload["isError"] is True
        assert payload["error"] == "INVALID_REQUEST"

    @pytest.mark.asyncio
    async def test_show_system_string_flag(self) -> None:
        service = _make_service()
        await _call(_make_server(service), "list_pods", {"namespace": "all", "show_system": "true"})
        service.list_pods.assert_awaited_once_with("all", True)

    @pytest.mark.asyncio
    async def test_find_problematic_pods_defaults(self) -> None:
        service = _make_service()
        await _call(_make_server(service), "find_problematic_pods", {})
        service.find_problematic_pods.assert_awaited_once_with("", "all")

    @pytest.mark.asyncio
    async def test_resource_usage_defaults(self) -> None:
        service = _make_service()
        await _call(_make_server(service), "get_resource_usage", {"namespace": "prod"})
        service.get_resource_usage.assert_awaited_once_with("prod", "restarts")

    @pytest.mark.asyncio
    async def test_workload_recommendations_list_payload(self) -> None:
        assert await _call(_make_server(), "get_workload_recommendations", {}) == ["rec"]

    @pytest.mark.asyncio
    async def test_unknown_tool(self) -> None:
        payload = await _call(_make_server(), "delete_cluster", {})
        assert payload == {"isError": True, "error": "INVALID_REQUEST", "detail": "Unknown tool: delete_cluster"}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestToolErrors:
    @pytest.mark.asyncio
    async def test_not_found_keeps_detail(self) -> None:
        service = _make_service()
        service.diagnose_pod = AsyncMock(side_effect=NotFoundError("Pod", "default", "ghost"))
        payload = await _call(_make_server(service, expose_error_detail=False), "diagnose_pod", {"pod_name": "ghost"})
        assert payload["error"] == "NOT_FOUND"
        assert "ghost" in payload["detail"]

    @pytest.mark.asyncio
    async def test_provider_error_detail_exposed(self) -> None:
        service = _make_service()
        service.analyze_cluster_health = AsyncMock(side_effect=ProviderError("list_nodes", "unreachable"))
        payload = await _call(_make_server(service), "analyze_cluster_health")
        assert payload == {"isError": True, "error": "PROVIDER_ERROR", "detail": "list_nodes failed: unreachable"}

    @pytest.mark.asyncio
    async def test_deadline_detail_hidden(self) -> None:
        service = _make_service()
        service.quick_triage = AsyncMock(side_effect=DeadlineExceededError("quick_triage", 30))
        payload = await _call(_make_server(service, expose_error_detail=False), "quick_triage")
        assert payload == {"isError": True, "error": "DEADLINE_EXCEEDED", "detail": "An unexpected error occurred."}

    @pytest.mark.asyncio
    async def test_unexpected_exception(self) -> None:
        service = _make_service()
        service.search_pods = AsyncMock(side_effect=RuntimeError("boom"))
        payload = await _call(_make_server(service), "search_pods", {"pattern": "x"})
        assert payload == {"isError": True, "error": "INTERNAL_ERROR", "detail": "An unexpected error occurred."}


# ---------------------------------------------------------------------------
# Guide resource
# ---------------------------------------------------------------------------


class TestGuideResource:
    def test_catalogue_lists_the_guide(self) -> None:
        assert [str(r.uri) for r in RESOURCES] == [GUIDE_URI]
        assert RESOURCES[0].mimeType == "text/markdown"

    def test_protocol_handlers_registered(self) -> None:
        handlers = _make_server()._server.request_handlers
        for request_type in (ListToolsRequest, CallToolRequest, ListResourcesRequest, ReadResourceRequest):
            assert request_type in handlers

    def test_read_guide(self) -> None:
        contents = _make_server().read_resource(GUIDE_URI)
        assert len(contents) == 1
        assert contents[0].mime_type == "text/markdown"
        for tool in TOOLS:
            assert f"### {tool.name}" in contents[0].content

    def test_unknown_resource_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown resource"):
            _make_server().read_resource("k8s://diagnostics/missing")

    @pytest.mark.asyncio
    async def test_list_resources_over_protocol(self) -> None:
        handler = _make_server()._server.request_handlers[ListResourcesRequest]
        result = await handler(ListResourcesRequest(method="resources/list"))
        assert [str(r.uri) for r in result.root.resources] == [GUIDE_URI]

    @pytest.mark.asyncio
    async def test_read_guide_over_protocol(self) -> None:
        handler = _make_server()._server.request_handlers[ReadResourceRequest]
        request = ReadResourceRequest(
            method="resources/read",
            params=ReadResourceRequestParams(uri=AnyUrl(GUIDE_URI)),
        )
        result = await handler(request)
        content = result.root.contents[0]
        assert content.mimeType == "text/markdown"
        assert content.text.startswith("# kubediag Troubleshooting Guide")
