"""
FastAPI Application - Dev-server integration for prebundle.

Endpoints:
    GET    /__prebundle/status   Snapshot and build state
    POST   /__prebundle/build    Trigger a (forced) rebuild
    WS     /__prebundle/ws       Live-reload notifications

Every other request first goes through the artifact middleware, which
answers from the artifact output directory when the file exists.
"""

from contextlib import asynccontextmanager
from typing import Annotated, Union
import asyncio

from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..config import Mode
from ..errors import ConfigError, UnresolvedDependency
from ..service import PrebundleService
from .interceptor import ArtifactInterceptor, ArtifactMiddleware
from .reload import ReloadHub
from .schemas import (
    BuildInfo,
    DependencyInfo,
    ErrorCode,
    ErrorResponse,
    StatusResponse,
    TriggerResponse,
)


def create_app(service: PrebundleService, hub: ReloadHub | None = None) -> FastAPI:
    """
    Create the FastAPI application around a started service.

    Artifacts are always served from the development output directory.
    """
    hub = hub or ReloadHub()
    service.add_reload_listener(lambda result: hub.notify())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        hub.bind_loop(asyncio.get_running_loop())
        yield
        hub.bind_loop(None)

    app = FastAPI(title="Prebundle", version="1.0.0", lifespan=lifespan)
    app.state.hub = hub
    app.state.service = service

    interceptor = ArtifactInterceptor(
        output_dir=service.config.output_dir(Mode.DEVELOPMENT),
        public_path=service.config.public_path,
        enabled=service.config.enabled,
    )
    app.add_middleware(ArtifactMiddleware, interceptor=interceptor)

    def make_error_response(error_code: ErrorCode, message: str, status_code: int = 400) -> JSONResponse:
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(error=message, error_code=error_code).model_dump(),
        )

    @app.get("/__prebundle/status", response_model=StatusResponse)
    async def status() -> StatusResponse:
        snapshot = service.tracker.snapshot
        last_build = None
        if service.last_result is not None:
            result = service.last_result
            errors = []
            if result.error is not None:
                errors = result.error.errors or [result.error.message]
            last_build = BuildInfo(
                ok=result.ok,
                skipped=result.skipped,
                dep_count=len(result.job.deps),
                duration_ms=result.stats.duration_ms if result.stats else None,
                errors=errors,
            )
        return StatusResponse(
            mode=service.mode.value,
            output_dir=str(service.output_dir),
            building=service.orchestrator.is_building,
            pending=service.orchestrator.has_pending,
            deps=[
                DependencyInfo(specifier=r.specifier, version=r.version, file=r.file)
                for r in snapshot.records()
            ],
            last_build=last_build,
        )

    @app.post(
        "/__prebundle/build",
        response_model=TriggerResponse,
        responses={422: {"model": ErrorResponse}},
    )
    async def build(
        force: Annotated[bool, Query(description="Rebuild even if nothing changed")] = False,
    ) -> Union[TriggerResponse, JSONResponse]:
        try:
            scheduled = service.trigger_build(force=force)
        except UnresolvedDependency as e:
            return make_error_response(ErrorCode.UNRESOLVED_DEPENDENCY, str(e), status_code=422)
        except ConfigError as e:
            return make_error_response(ErrorCode.CONFIG_ERROR, str(e), status_code=422)
        deps = service.last_finalize.deps if service.last_finalize else ()
        return TriggerResponse(scheduled=scheduled, force=force, dep_count=len(deps))

    @app.websocket("/__prebundle/ws")
    async def live_reload(websocket: WebSocket):
        await hub.connect(websocket)
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            hub.disconnect(websocket)

    return app
