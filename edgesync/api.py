from __future__ import annotations

from threading import Thread
from typing import Any

import uvicorn
from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse

from .api_models import EventOut, HealthOut, RouteOut
from .events import MAX_EVENTS, latest_events
from .runtime import RuntimeState


def create_app(runtime: RuntimeState, supervisor: Any) -> FastAPI:
    """Read-only status API over the reconciler's runtime state."""
    app = FastAPI(title="edgesync", version="1.0.0")

    @app.get("/health", response_model=HealthOut)
    def health():
        running = supervisor.is_running()
        body = HealthOut(
            status="healthy" if running else "unhealthy",
            proxy=supervisor.state.value,
            pid=supervisor.pid,
            **runtime.snapshot(),
        )
        return JSONResponse(status_code=200 if running else 503, content=body.model_dump())

    @app.get("/routes", response_model=list[RouteOut])
    def routes():
        return runtime.table().as_dict()

    @app.get("/events", response_model=list[EventOut])
    def events(limit: int = Query(100, ge=1, le=MAX_EVENTS)):
        return latest_events(limit)

    return app


def serve_in_background(app: FastAPI, host: str, port: int) -> Thread:
    server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_config=None))
    thr = Thread(target=server.run, name="edgesync-api", daemon=True)
    thr.start()
    return thr
