"""Application bootstrap for kubediag.

Wires the components in dependency order and manages the asyncio lifecycle.
Startup order: config -> logging -> provider -> service -> REST or MCP

Shutdown stops components in reverse startup order.  Each component's
stop error is caught and logged independently so that one failure does not
prevent the rest from shutting down cleanly.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from kubediag.config import load_config
from kubediag.models.config import KubeDiagConfig
from kubediag.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from kubediag.provider.base import ClusterStateProvider
    from kubediag.service import DiagnosticsService

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class KubeDiagApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    ``stop()`` is safe to call on an app that was never started or has
    already stopped.
    """

    def __init__(self, config: KubeDiagConfig | None = None) -> None:
        self.config = config

        self._provider: ClusterStateProvider | None = None
        self._service: DiagnosticsService | None = None
        self._rest_server: object | None = None
        self._mcp_server: object | None = None

        # The serving task (uvicorn or MCP stdio); its completion ends the app.
        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
        self._log: FilteringBoundLogger | None = None

    @property
    def running(self) -> bool:
        """True while started and the serving task has not finished."""
        return self._running and any(not t.done() for t in self._background_tasks)

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        # --- 1. Configuration -------------------------------------------
        if self.config is None:
            self.config = load_config()

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level, self.config.log.format)
        self._log = get_logger("app")
        self._log.info(
            "kubediag starting",
            version=_kubediag_version(),
            mode=self.config.mode,
            demo_mode=self.config.provider.demo_mode,
        )

        # --- 3. Cluster state provider -----------------------------------
        await self._start_provider()

        # --- 4. Diagnostics service --------------------------------------
        self._start_service()

        # --- 5. Front end ------------------------------------------------
        if self.config.mode == "mcp":
            await self._start_mcp()
        else:
            await self._start_rest()

        self._running = True
        self._log.info("kubediag started", mode=self.config.mode)

    async def _start_provider(self) -> None:
        """Use the demo cluster, or connect to the real one."""
        assert self._log is not None
        assert self.config is not None
        if self.config.provider.demo_mode:
            from kubediag.provider.demo import DemoStateProvider

            self._provider = DemoStateProvider()
            self._log.info("demo provider selected; serving canned cluster state")
            return

        self._log.debug("starting k8s provider")
        try:
            from kubediag.provider.kubernetes import KubernetesStateProvider

            self._provider = await KubernetesStateProvider.connect(self.config.provider.kubeconfig)
        except Exception as exc:
            raise _ComponentError("provider", exc) from exc

    def _start_service(self) -> None:
        assert self.config is not None
        assert self._provider is not None
        from kubediag.service import DiagnosticsService

        self._service = DiagnosticsService(
            self._provider,
            timeout_seconds=self.config.request.timeout_seconds,
            max_concurrency=self.config.request.max_concurrency,
        )

    async def _start_mcp(self) -> None:
        """Start the MCP stdio server."""
        assert self._log is not None
        assert self.config is not None
        assert self._service is not None
        self._log.debug("starting mcp server")
        try:
            from kubediag.mcp.server import MCPServer

            mcp = MCPServer(self._service, expose_error_detail=self.config.request.expose_error_detail)
            task = asyncio.create_task(mcp.start(), name="mcp-server")
            self._background_tasks.append(task)
            self._mcp_server = mcp
        except Exception as exc:
            raise _ComponentError("mcp", exc) from exc

    async def _start_rest(self) -> None:
        """Start the uvicorn REST server."""
        assert self._log is not None
        assert self.config is not None
        assert self._service is not None
        self._log.debug("starting rest api")
        try:
            import uvicorn

            from kubediag.api.app import create_app

            fastapi_app = create_app(
                self._service,
                demo_mode=self.config.provider.demo_mode,
                expose_error_detail=self.config.request.expose_error_detail,
            )
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host=self.config.api.host,
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", host=self.config.api.host, port=self.config.api.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("kubediag shutting down")
        self._running = False

        rest = self._rest_server
        if rest is not None and hasattr(rest, "should_exit"):
            rest.should_exit = True

        for task in reversed(self._background_tasks):
            if not task.done():
                task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()
        self._rest_server = None
        self._mcp_server = None

        if self._service is not None:
            try:
                await asyncio.wait_for(self._service.close(), timeout=_SHUTDOWN_GRACE_SECONDS)
            except TimeoutError:
                log.warning("provider close timed out", timeout=_SHUTDOWN_GRACE_SECONDS)
            except Exception as exc:
                log.error("provider close raised an error", error=str(exc))
            self._service = None
            self._provider = None

        log.info("kubediag stopped")


def _kubediag_version() -> str:
    from kubediag import __version__

    return __version__


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


async def main() -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = KubeDiagApp()
    loop = asyncio.get_running_loop()

    shutdown_triggered = False

    def _request_shutdown() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            return
        shutdown_triggered = True
        asyncio.create_task(app.stop(), name="shutdown")

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        # Block until a signal arrives or the serving task ends (stdin closed in MCP mode).
        while app.running:
            await asyncio.sleep(1)
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app._running:
            await app.stop()


def run() -> None:
    """Console-script entrypoint."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
