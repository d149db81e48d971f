"""Liveness endpoint.

Liveness is decoupled from business logic: the endpoint answers as long as
the event loop runs, whatever the state of the channel or the last run.
"""

from __future__ import annotations

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

RUNNING_MESSAGE = "goldwatch is running"


def build_health_app() -> FastAPI:
    app = FastAPI(title="goldwatch", docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        return RUNNING_MESSAGE

    return app


def build_health_server(port: int, host: str = "0.0.0.0") -> uvicorn.Server:
    """Return a uvicorn server to be awaited inside the main event loop."""

    config = uvicorn.Config(build_health_app(), host=host, port=port, log_level="warning")
    return uvicorn.Server(config)
