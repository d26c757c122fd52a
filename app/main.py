"""
FastAPI app serving the MCP tools over streamable HTTP.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

import thoughtchain.config as config
from thoughtchain.mcp import get_runtime, mcp, shutdown_runtime
from app.routes.health import router as health_router
from app.routes.root import router as root_router


mcp_stream_app = mcp.http_app(
    path="/",
    transport="streamable-http",
    stateless_http=True,
    json_response=True,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store on startup, close it on shutdown."""
    get_runtime()
    try:
        async with mcp_stream_app.lifespan(mcp_stream_app):
            yield
    finally:
        shutdown_runtime()
        config.logger.info("http_app_stopped")


app = FastAPI(
    title=config.SERVER_NAME,
    version=config.SERVER_VERSION,
    redirect_slashes=False,
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(root_router)
app.mount("/mcp", mcp_stream_app)
