"""FastAPI application factory for the kubediag REST API."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from kubediag import __version__
from kubediag.api.routes import router
from kubediag.api.schemas import ErrorResponse
from kubediag.errors import DiagnosticsError, NotFoundError, ValidationError
from kubediag.observability.logging import get_logger
from kubediag.service import DiagnosticsService

_log = get_logger("api.app")

_GENERIC_DETAIL = "An unexpected error occurred."


def _error(status_code: int, code: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=code, detail=detail).model_dump(),
    )


def _status_for(exc: DiagnosticsError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    return 500


def _describe_validation(exc: RequestValidationError) -> str:
    parts: list[str] = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        where = ".".join(loc) or "body"
        parts.append(f"{where}: {err.get('msg', 'invalid')}")
    return "; ".join(parts) or "Invalid request"


def create_app(
    service: DiagnosticsService,
    *,
    demo_mode: bool = False,
    expose_error_detail: bool = True,
) -> FastAPI:
    """Build the FastAPI app around ``service``.

    Args:
        service:              Facade every route delegates to.
        demo_mode:            Reported by ``GET /health``.
        expose_error_detail:  When false, 5xx bodies carry a generic detail
                              instead of the upstream error text.
    """
    app = FastAPI(
        title="kubediag",
        version=__version__,
        description="Kubernetes pod and cluster diagnostics.",
    )
    app.state.service = service
    app.state.demo_mode = demo_mode
    app.state.expose_error_detail = expose_error_detail

    @app.exception_handler(RequestValidationError)
    async def _on_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, ValidationError.code, _describe_validation(exc))

    @app.exception_handler(DiagnosticsError)
    async def _on_diagnostics_error(request: Request, exc: DiagnosticsError) -> JSONResponse:
        status_code = _status_for(exc)
        detail = str(exc)
        if status_code >= 500:
            _log.error("request_failed", path=request.url.path, code=exc.code, error=detail)
            if not expose_error_detail:
                detail = _GENERIC_DETAIL
        return _error(status_code, exc.code, detail)

    @app.exception_handler(Exception)
    async def _on_unexpected(request: Request, exc: Exception) -> JSONResponse:
        _log.error("request_crashed", path=request.url.path, error=str(exc))
        return _error(500, "INTERNAL_ERROR", _GENERIC_DETAIL)

    app.include_router(router)
    return app
