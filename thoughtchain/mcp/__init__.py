from thoughtchain.mcp.server import (
    mcp,
    ToolRuntime,
    build_runtime,
    get_runtime,
    set_runtime,
    shutdown_runtime,
    registered_tool_names,
    main,
)

__all__ = [
    "mcp",
    "ToolRuntime",
    "build_runtime",
    "get_runtime",
    "set_runtime",
    "shutdown_runtime",
    "registered_tool_names",
    "main",
]
