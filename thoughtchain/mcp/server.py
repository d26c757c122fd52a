"""
MCP server wiring and tool registration.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

import thoughtchain.config as config
from thoughtchain.db import create_store
from thoughtchain.mcp.render import render_load, render_mutation, render_search, render_stats
from thoughtchain.services.chain_controller import ChainController
from thoughtchain.services.chain_store import ChainStore
from thoughtchain.services.rate_limiter import RateLimitConfig, RateLimitGate, build_rate_limit_gate
from thoughtchain.services.tool_errors import tool_error_message
from thoughtchain.session import ChainSession

logger = config.logger

READ_ONLY_TOOL_ANNOTATIONS = {"readOnlyHint": True}
WRITE_TOOL_ANNOTATIONS = {"readOnlyHint": False, "destructiveHint": False}

mcp = FastMCP(config.SERVER_NAME, version=config.SERVER_VERSION)

_REGISTERED_TOOLS: list[tuple[Callable[..., str], tuple[Any, ...], dict[str, Any]]] = []


@dataclass
class ToolRuntime:
    """Everything a tool call needs: the controller, the live session and the rate gate."""

    controller: ChainController
    session: ChainSession
    rate_gate: RateLimitGate
    lock: threading.Lock = field(default_factory=threading.Lock)

    @property
    def store(self) -> ChainStore:
        return self.controller.store

    def close(self) -> None:
        self.store.close()


def build_runtime(
    store: Optional[ChainStore] = None,
    rate_config: Optional[RateLimitConfig] = None,
) -> ToolRuntime:
    """Open the store and resume the newest active chain, if any."""
    store = store or create_store()
    controller = ChainController(store)
    session = ChainSession()
    controller.resume_most_recent(session)
    return ToolRuntime(
        controller=controller,
        session=session,
        rate_gate=build_rate_limit_gate(rate_config),
    )


class _Runtime:
    current: Optional[ToolRuntime] = None
    lock = threading.Lock()


def get_runtime() -> ToolRuntime:
    with _Runtime.lock:
        if _Runtime.current is None:
            _Runtime.current = build_runtime()
            logger.info(
                "runtime_started",
                extra={
                    "storage_location": _Runtime.current.store.location,
                    "chain_id": _Runtime.current.session.current.id,
                },
            )
        return _Runtime.current


def set_runtime(runtime: Optional[ToolRuntime]) -> Optional[ToolRuntime]:
    """Install ``runtime`` as the process runtime and return the previous one."""
    with _Runtime.lock:
        previous = _Runtime.current
        _Runtime.current = runtime
        return previous


def shutdown_runtime() -> None:
    runtime = set_runtime(None)
    if runtime is not None:
        runtime.close()


def mcp_tool(*args, **kwargs):
    """Register a tool with FastMCP and return the plain function for direct calls."""
    def decorator(fn: Callable[..., str]):
        _REGISTERED_TOOLS.append((fn, args, kwargs))
        mcp.tool(*args, **kwargs)(fn)
        return fn
    return decorator


def _run_tool(tool_name: str, body: Callable[..., str], *args: Any) -> str:
    """
    Run a tool body against the process runtime.

    Calls are serialized on the runtime lock and rate-checked per session
    client. Any failure is logged and re-raised as a ToolError carrying
    only a caller-safe message.
    """
    try:
        runtime = get_runtime()
        with runtime.lock:
            runtime.rate_gate.check(runtime.session.client_id)
            return body(runtime, *args)
    except Exception as exc:
        raise ToolError(tool_error_message(tool_name, exc)) from None


def _thought_chain(
    runtime: ToolRuntime,
    action: str,
    thought: Optional[str],
    reflection: Optional[str],
) -> str:
    result = runtime.controller.mutate(runtime.session, action, thought, reflection)
    if action == "new_chain":
        runtime.session.swap(result.chain)
    return render_mutation(result)


def _recall_thoughts(runtime: ToolRuntime, query: Optional[str], limit: int) -> str:
    return render_search(runtime.controller.search(query, limit))


def _load_thought_chain(runtime: ToolRuntime, chain_id: str) -> str:
    return render_load(runtime.controller.load(runtime.session, chain_id))


def _get_stats(runtime: ToolRuntime) -> str:
    return render_stats(runtime.controller.stats())


@mcp_tool(
    description=(
        "Add a step to your Thought Chain process, building on previous thoughts. "
        "action: add_step (add new thought), review_chain (show all steps), "
        "conclude (finish thinking), new_chain (start fresh). "
        "reflection: optional note on how this builds on previous steps."
    ),
    annotations=WRITE_TOOL_ANNOTATIONS,
)
def thought_chain(
    action: str,
    thought: Optional[str] = None,
    reflection: Optional[str] = None,
) -> str:
    return _run_tool("thought_chain", _thought_chain, action, thought, reflection)


@mcp_tool(
    description=(
        "Search and recall previous thought chains. "
        "Leave query empty to list the most recent chains."
    ),
    annotations=READ_ONLY_TOOL_ANNOTATIONS,
)
def recall_thoughts(
    query: Optional[str] = None,
    limit: int = config.DEFAULT_RECALL_LIMIT,
) -> str:
    return _run_tool("recall_thoughts", _recall_thoughts, query, limit)


@mcp_tool(
    description="Load a previous thought chain to continue working on it",
    annotations=WRITE_TOOL_ANNOTATIONS,
)
def load_thought_chain(chain_id: str) -> str:
    return _run_tool("load_thought_chain", _load_thought_chain, chain_id)


@mcp_tool(
    description="Get database statistics and system information",
    annotations=READ_ONLY_TOOL_ANNOTATIONS,
)
def get_stats() -> str:
    return _run_tool("get_stats", _get_stats)


def registered_tool_names() -> list[str]:
    return sorted(fn.__name__ for fn, _, _ in _REGISTERED_TOOLS)


def _run_http() -> None:
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=config.HTTP_HOST,
        port=config.HTTP_PORT,
        log_level=config.LOG_LEVEL.lower(),
    )


def main() -> None:
    """Console entry point: serve over stdio, or HTTP when SERVER_TRANSPORT=http."""
    config.validate_and_prepare_config()
    if config.SERVER_TRANSPORT == "http":
        _run_http()
        return

    get_runtime()
    logger.info(
        "server_starting",
        extra={"transport": "stdio", "server": config.SERVER_NAME, "version": config.SERVER_VERSION},
    )
    try:
        mcp.run(transport="stdio")
    except KeyboardInterrupt:
        logger.info("server_interrupted")
    finally:
        shutdown_runtime()
        logger.info("server_stopped")


if __name__ == "__main__":
    main()
