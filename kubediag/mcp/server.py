"""MCP stdio server for kubediag.

Exposes the diagnostic operations to AI assistants via the Model Context
Protocol.  Tool names and argument defaults match the REST routes; each
tool returns the same JSON payload as its REST counterpart.  A markdown
troubleshooting guide is served as the ``k8s://diagnostics/guide`` resource.

Transport: stdio (read from stdin, write to stdout).

Usage::

    from kubediag.mcp.server import MCPServer

    server = MCPServer(service=service)
    await server.start()  # blocks until stdin is closed
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import Any

from mcp.server import NotificationOptions, Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.models import InitializationOptions
from mcp.server.stdio import stdio_server
from mcp.types import Resource, TextContent, Tool
from pydantic import AnyUrl

from kubediag import __version__
from kubediag.errors import DiagnosticsError, NotFoundError, ValidationError
from kubediag.mcp.guide import GUIDE_MIME_TYPE, GUIDE_NAME, GUIDE_TEXT, GUIDE_URI
from kubediag.observability.logging import get_logger
from kubediag.service import DiagnosticsService

_log = get_logger("mcp.server")

_SERVER_NAME = "kubediag"

_GENERIC_DETAIL = "An unexpected error occurred."


def _string(description: str) -> dict[str, str]:
    return {"type": "string", "description": description}


def _tool(name: str, description: str, properties: dict[str, Any], required: list[str] | None = None) -> Tool:
    schema: dict[str, Any] = {
        "type": "object",
        "properties": properties,
        "additionalProperties": False,
    }
    if required:
        schema["required"] = required
    return Tool(name=name, description=description, inputSchema=schema)


TOOLS: list[Tool] = [
    _tool(
        "diagnose_pod",
        "Diagnose issues with a specific Kubernetes pod: restarts, readiness, "
        "waiting reasons, missing resource settings and recent events.",
        {
            "namespace": _string("Namespace of the pod (default: default)."),
            "pod_name": _string("Name of the pod."),
        },
        required=["pod_name"],
    ),
    _tool(
        "analyze_cluster_health",
        "Summarize node readiness and problem pods across non-system namespaces, with recommendations.",
        {},
    ),
    _tool(
        "analyze_pod_logs",
        "Classify a pod's recent log lines into errors and warnings and suggest fixes.",
        {
            "namespace": _string("Namespace of the pod (default: default)."),
            "pod_name": _string("Name of the pod."),
            "container": _string("Container name (default: the pod's default container)."),
            "lines": {"type": "integer", "description": "Number of trailing lines to analyze (default: 100)."},
        },
        required=["pod_name"],
    ),
    _tool(
        "list_pods",
        "List pods with status, ready containers, restart count and age.",
        {
            "namespace": _string("Namespace to list, or 'all' (default: default)."),
            "show_system": {
                "type": "boolean",
                "description": "List every namespace, system ones included (default: false).",
            },
        },
    ),
    _tool(
        "find_problematic_pods",
        "Find and diagnose pods matching a problem criterion.",
        {
            "namespace": _string("Namespace, empty for all non-system namespaces, or 'all'."),
            "criteria": _string(
                "failing, restarting, not-ready, resource-issues, image-issues or all (default: all)."
            ),
        },
    ),
    _tool(
        "search_pods",
        "Search pods by a case-insensitive pattern over name, namespace and labels, and diagnose the matches.",
        {
            "pattern": _string("Substring to search for."),
            "namespace": _string("Namespace, empty for all non-system namespaces, or 'all'."),
        },
        required=["pattern"],
    ),
    _tool(
        "get_resource_usage",
        "Show CPU and memory requests and limits per pod and flag resource misconfiguration.",
        {
            "namespace": _string("Namespace, empty for all non-system namespaces, or 'all'."),
            "sort_by": _string("restarts, cpu, memory or name (default: restarts)."),
        },
    ),
    _tool(
        "quick_triage",
        "One-shot triage: cluster health, failing pods, restarting pods and immediate actions.",
        {},
    ),
    _tool(
        "get_workload_recommendations",
        "Audit deployments for resource settings, replica count and health probes.",
        {"namespace": _string("Namespace to audit, or 'all' (default: default).")},
    ),
]

RESOURCES: list[Resource] = [
    Resource(
        uri=AnyUrl(GUIDE_URI),
        name=GUIDE_NAME,
        description="Tool catalogue, common troubleshooting patterns and best practices.",
        mimeType=GUIDE_MIME_TYPE,
    ),
]


def _int_arg(args: dict[str, Any], key: str, default: int) -> int:
    value = args.get(key, default)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer, got {value!r}") from None


def _bool_arg(args: dict[str, Any], key: str, default: bool) -> bool:
    value = args.get(key, default)
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


class MCPServer:
    """MCP stdio server wrapping the DiagnosticsService.

    Args:
        service:              Facade every tool delegates to.
        expose_error_detail:  When false, provider and deadline failures are
                              reported with a generic detail.
    """

    def __init__(self, service: DiagnosticsService, expose_error_detail: bool = True) -> None:
        self._service = service
        self._expose_error_detail = expose_error_detail
        self._server = Server(_SERVER_NAME)
        self._handlers: dict[str, Callable[[dict[str, Any]], Awaitable[Any]]] = {
            "diagnose_pod": self._diagnose_pod,
            "analyze_cluster_health": self._analyze_cluster_health,
            "analyze_pod_logs": self._analyze_pod_logs,
            "list_pods": self._list_pods,
            "find_problematic_pods": self._find_problematic_pods,
            "search_pods": self._search_pods,
            "get_resource_usage": self._get_resource_usage,
            "quick_triage": self._quick_triage,
            "get_workload_recommendations": self._get_workload_recommendations,
        }
        self._register_handlers()

    def _register_handlers(self) -> None:
        """Wire tool and resource handlers onto the MCP Server."""

        @self._server.list_tools()  # type: ignore[no-untyped-call, untyped-decorator]
        async def _list_tools() -> list[Tool]:
            return TOOLS

        @self._server.call_tool()  # type: ignore[untyped-decorator]
        async def _call_tool(
            name: str,
            arguments: dict[str, Any] | None,
        ) -> list[TextContent]:
            return await self.call_tool(name, arguments)

        @self._server.list_resources()  # type: ignore[no-untyped-call, untyped-decorator]
        async def _list_resources() -> list[Resource]:
            return RESOURCES

        @self._server.read_resource()  # type: ignore[no-untyped-call, untyped-decorator]
        async def _read_resource(uri: AnyUrl) -> list[ReadResourceContents]:
            return self.read_resource(str(uri))

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
        """Dispatch ``name`` and wrap the result (or failure) as JSON text."""
        handler = self._handlers.get(name)
        if handler is None:
            return _text({"isError": True, "error": ValidationError.code, "detail": f"Unknown tool: {name}"})

        try:
            payload = await handler(arguments or {})
        except DiagnosticsError as exc:
            detail = str(exc)
            if not isinstance(exc, ValidationError | NotFoundError):
                _log.error("mcp_tool_failed", tool=name, code=exc.code, error=detail)
                if not self._expose_error_detail:
                    detail = _GENERIC_DETAIL
            return _text({"isError": True, "error": exc.code, "detail": detail})
        except Exception as exc:
            _log.error("mcp_tool_crashed", tool=name, error=str(exc))
            return _text({"isError": True, "error": "INTERNAL_ERROR", "detail": _GENERIC_DETAIL})
        return _text(payload)

    def read_resource(self, uri: str) -> list[ReadResourceContents]:
        """Contents of the resource at ``uri``; only the guide is served."""
        if uri != GUIDE_URI:
            raise ValueError(f"Unknown resource: {uri}")
        return [ReadResourceContents(content=GUIDE_TEXT, mime_type=GUIDE_MIME_TYPE)]

    # ------------------------------------------------------------------
    # Tool handlers
    # ------------------------------------------------------------------

    async def _diagnose_pod(self, args: dict[str, Any]) -> Any:
        return await self._service.diagnose_pod(args.get("namespace") or "default", args.get("pod_name") or "")

    async def _analyze_cluster_health(self, args: dict[str, Any]) -> Any:
        return await self._service.analyze_cluster_health()

    async def _analyze_pod_logs(self, args: dict[str, Any]) -> Any:
        return await self._service.analyze_pod_logs(
            args.get("namespace") or "default",
            args.get("pod_name") or "",
            args.get("container") or "",
            _int_arg(args, "lines", 100),
        )

    async def _list_pods(self, args: dict[str, Any]) -> Any:
        return await self._service.list_pods(
            args.get("namespace") or "default",
            _bool_arg(args, "show_system", False),
        )

    async def _find_problematic_pods(self, args: dict[str, Any]) -> Any:
        return await self._service.find_problematic_pods(
            args.get("namespace") or "",
            args.get("criteria") or "all",
        )

    async def _search_pods(self, args: dict[str, Any]) -> Any:
        return await self._service.search_pods(args.get("pattern") or "", args.get("namespace") or "")

    async def _get_resource_usage(self, args: dict[str, Any]) -> Any:
        return await self._service.get_resource_usage(
            args.get("namespace") or "",
            args.get("sort_by") or "restarts",
        )

    async def _quick_triage(self, args: dict[str, Any]) -> Any:
        return await self._service.quick_triage()

    async def _get_workload_recommendations(self, args: dict[str, Any]) -> Any:
        return await self._service.get_workload_recommendations(args.get("namespace") or "default")

    async def start(self) -> None:
        """Run the MCP server until stdin is closed.

        Blocks the calling coroutine; intended to run as a background task.
        """
        _log.info("mcp_server_starting", version=__version__, tools=len(TOOLS), resources=len(RESOURCES))
        init_options = InitializationOptions(
            server_name=_SERVER_NAME,
            server_version=__version__,
            capabilities=self._server.get_capabilities(
                notification_options=NotificationOptions(),
                experimental_capabilities={},
            ),
        )
        async with stdio_server() as (read_stream, write_stream):
            await self._server.run(read_stream, write_stream, init_options)

        _log.info("mcp_server_stopped")


def _text(payload: Any) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload))]
