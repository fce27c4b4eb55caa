"""FastAPI app factory: health, asset index and static asset routes."""
from __future__ import annotations

import os
import time
from collections.abc import Callable
from pathlib import Path
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.exception_handlers import http_exception_handler
from starlette.exceptions import HTTPException as StarletteHTTPException

from asset_cdn.api import router as api_router
from asset_cdn.api.models import HealthResponse
from asset_cdn.api.routes import render
from asset_cdn.logging_conf import get_logger, setup_logging
from asset_cdn.service.asset_service import (
    AssetIOError,
    get_static_dir_from_env,
    internal_error,
    method_not_allowed,
)

# Configure logging before anything else.
setup_logging()
logger = get_logger("app")


def create_app(static_dir: str | os.PathLike[str] | None = None) -> FastAPI:
    """Build the app serving files below `static_dir` (default: $STATIC_DIR or ./static)."""
    root = Path(static_dir) if static_dir is not None else get_static_dir_from_env()

    app = FastAPI(
        title="Asset CDN",
        version=os.getenv("APP_VERSION", "0.1.0"),
    )
    app.state.static_dir = root

    @app.on_event("startup")
    async def _on_startup() -> None:
        logger.info(
            "startup",
            extra={
                "event": "startup",
                "static_dir": str(root.resolve()),
                "static_dir_exists": root.is_dir(),
            },
        )

    @app.on_event("shutdown")
    async def _on_shutdown() -> None:
        logger.info("shutdown", extra={"event": "shutdown"})

    @app.middleware("http")
    async def request_logger(request: Request, call_next: Callable[[Request], Response]):
        """JSON request logging with a correlation id.

        - Reuses an incoming X-Request-ID, otherwise mints one for the logs
        - Echoes the header only when the client sent it, so responses to the
          same request stay byte-identical across GET and HEAD
        """
        incoming = request.headers.get("X-Request-ID")
        request_id = incoming or str(uuid4())
        request.state.request_id = request_id

        start = time.perf_counter()
        logger.info(
            "request.start",
            extra={
                "event": "request_start",
                "method": request.method,
                "path": request.url.path,
                "request_id": request_id,
            },
        )
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request.error",
                extra={
                    "event": "request_error",
                    "path": request.url.path,
                    "method": request.method,
                    "request_id": request_id,
                },
            )
            raise
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000.0

        if incoming:
            response.headers["X-Request-ID"] = request_id
        logger.info(
            "request.end",
            extra={
                "event": "request_end",
                "status_code": response.status_code,
                "elapsed_ms": round(elapsed_ms, 2),
                "request_id": request_id,
            },
        )
        return response

    @app.exception_handler(AssetIOError)
    async def _asset_io_error(request: Request, exc: AssetIOError) -> Response:
        # Details stay in the logs; the client only sees a generic 500.
        logger.error(
            "asset.io_error",
            exc_info=exc,
            extra={
                "event": "asset_io_error",
                "path": request.url.path,
                "error_code": exc.code,
                "request_id": getattr(request.state, "request_id", None),
            },
        )
        return render(internal_error())

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> Response:
        # The router answers unmatched methods with a bare 405; give it the asset headers.
        if exc.status_code != 405:
            return await http_exception_handler(request, exc)
        logger.info(
            "request.method_not_allowed",
            extra={
                "event": "method_not_allowed",
                "method": request.method,
                "path": request.url.path,
            },
        )
        return render(method_not_allowed())

    @app.get("/health", response_model=HealthResponse, summary="Liveness check")
    async def health() -> HealthResponse:
        return HealthResponse(ok=True)

    app.include_router(api_router)

    return app


# ASGI entrypoint for uvicorn: `uvicorn asset_cdn.main:app --port 8000`
app = create_app()
