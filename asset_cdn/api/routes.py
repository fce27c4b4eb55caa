from __future__ import annotations

from fastapi import APIRouter, Header, Request, Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask
from starlette.concurrency import run_in_threadpool

from ..service import asset_service
from ..service.asset_service import AssetResponse, FileStream
from .models import AssetIndexResponse

router = APIRouter()


def render(result: AssetResponse) -> Response:
    """Turn a service result into a Starlette response.

    File bodies are streamed from the threadpool; the handle is closed again
    once the response has been sent, even if the client went away early.
    """
    headers = dict(result.headers)
    if isinstance(result.body, FileStream):
        return StreamingResponse(
            result.body,
            status_code=result.status_code,
            headers=headers,
            background=BackgroundTask(result.close),
        )
    return Response(content=result.body, status_code=result.status_code, headers=headers)


@router.api_route(
    "/",
    methods=["GET", "HEAD"],
    response_model=AssetIndexResponse,
    summary="List servable assets by category",
)
async def asset_index(request: Request) -> AssetIndexResponse:
    """Walk the static root and return every servable asset."""
    index = await run_in_threadpool(asset_service.list_assets, request.app.state.static_dir)
    return AssetIndexResponse(
        categories=index,
        count=sum(len(files) for files in index.values()),
    )


@router.options("/{asset_path:path}", include_in_schema=False)
async def options_asset(asset_path: str) -> Response:
    """CORS preflight for any path."""
    return render(asset_service.preflight())


@router.api_route("/{asset_path:path}", methods=["GET", "HEAD"], summary="Serve a static asset")
async def get_asset(
    asset_path: str,
    request: Request,
    if_none_match: str | None = Header(default=None),
) -> Response:
    """Serve `/{category}/{filename.ext}` with immutable caching and ETags."""
    serve = asset_service.head_asset if request.method == "HEAD" else asset_service.serve_asset
    result = await run_in_threadpool(
        serve,
        request.scope["path"],
        request.app.state.static_dir,
        if_none_match,
    )
    return render(result)

