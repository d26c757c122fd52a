"""
Root endpoint with service metadata.
"""

from __future__ import annotations

from fastapi import APIRouter

import thoughtchain.config as config
from thoughtchain.mcp import registered_tool_names


router = APIRouter()


@router.get("/")
async def root():
    """Root endpoint with service info."""
    return {
        "service": config.SERVER_NAME,
        "version": config.SERVER_VERSION,
        "description": "Persistent thought chains for step-by-step reasoning",
        "tools": registered_tool_names(),
        "endpoints": {
            "health": "/health",
            "mcp": "/mcp",
        },
    }
