"""
Text renderings of controller results for MCP clients.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from thoughtchain.entities import Chain
from thoughtchain.services.chain_controller import MutationResult, SearchResult
from thoughtchain.services.chain_store import ChainStats

RECALL_PREVIEW_CHARS = 100
LOAD_PREVIEW_CHARS = 80
LOAD_RECENT_STEPS = 3

EMPTY_CHAIN_MESSAGE = "🤔 No thoughts in current chain yet. Use 'add_step' to begin thinking."


def display_time(timestamp: Optional[str]) -> str:
    if not timestamp:
        return "unknown"
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return timestamp
    return parsed.strftime("%Y-%m-%d %H:%M:%S UTC")


def truncate(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def render_new_chain(result: MutationResult) -> str:
    return (
        f"🆕 Started new thought chain (ID: {result.chain.id})\n\n"
        "Ready for your first thought step."
    )


def render_add_step(result: MutationResult) -> str:
    step = result.step
    lines = [
        f"✅ Added step {step.id} to thought chain",
        "",
        f"**Step {step.id}:** {step.thought}",
    ]
    if step.reflection:
        lines.append(f"*Reflection:* {step.reflection}")
    lines.append("")
    lines.append(f"*Chain progress: {len(result.chain.steps)} steps*")
    return "\n".join(lines)


def render_review(result: MutationResult) -> str:
    chain = result.chain
    if not chain.steps:
        return EMPTY_CHAIN_MESSAGE

    lines = [
        f"🔍 **Thought Chain Review** (ID: {chain.id})",
        f"*Created: {display_time(chain.created)}*",
        "",
    ]
    for step in chain.steps:
        lines.append(f"**Step {step.id}:** {step.thought}")
        if step.reflection:
            lines.append(f"*Builds on previous:* {step.reflection}")
        lines.append(f"*Time:* {display_time(step.timestamp)}")
        lines.append("")
    lines.append(f"*Status: {chain.status} | Total steps: {len(chain.steps)}*")
    return "\n".join(lines)


def render_conclusion(result: MutationResult) -> str:
    chain = result.chain
    step = result.step
    lines = [
        f"🎯 **Thought Chain Concluded** (ID: {chain.id})",
        "",
        f"**Final Conclusion:** {step.thought}",
    ]
    if step.reflection:
        lines.append(f"*Final Reflection:* {step.reflection}")
    lines.append("")
    lines.append(f"*Total steps: {len(chain.steps)}*")
    lines.append(f"*Duration: {display_time(chain.created)} - {display_time(chain.concluded)}*")
    return "\n".join(lines)


_MUTATION_RENDERERS = {
    "new_chain": render_new_chain,
    "add_step": render_add_step,
    "review_chain": render_review,
    "conclude": render_conclusion,
}


def render_mutation(result: MutationResult) -> str:
    return _MUTATION_RENDERERS[result.action](result)


def _render_chain_summary(chain: Chain) -> list[str]:
    lines = [
        f"**ID:** {chain.id}",
        f"**Created:** {display_time(chain.created)}",
        f"**Status:** {chain.status}",
        f"**Steps:** {len(chain.steps)}",
    ]
    if chain.steps:
        lines.append(f"**First thought:** {truncate(chain.steps[0].thought, RECALL_PREVIEW_CHARS)}")
        if chain.is_concluded and len(chain.steps) > 1:
            lines.append(f"**Conclusion:** {truncate(chain.last_step.thought, RECALL_PREVIEW_CHARS)}")
    return lines


def render_search(result: SearchResult) -> str:
    if not result.chains:
        if result.query:
            return f'🔍 No thought chains found matching "{result.query}"'
        return "📝 No saved thought chains found"

    if result.query:
        header = f'🔍 Found {len(result.chains)} thought chains matching "{result.query}":'
    else:
        header = f"📝 Recent thought chains ({len(result.chains)}):"

    lines = [header, ""]
    for chain in result.chains:
        lines.extend(_render_chain_summary(chain))
        lines.append("")
    return "\n".join(lines).strip()


def render_load(chain: Chain) -> str:
    lines = [
        f"📂 **Loaded thought chain** (ID: {chain.id})",
        f"*Originally created: {display_time(chain.created)}*",
        f"*Steps: {len(chain.steps)}*",
        "",
    ]
    if chain.steps:
        lines.append("**Recent steps:**")
        for step in chain.steps[-LOAD_RECENT_STEPS:]:
            lines.append(f"- Step {step.id}: {truncate(step.thought, LOAD_PREVIEW_CHARS)}")
        lines.append("")
    lines.append(
        "*Chain is now active. Use 'add_step' to continue thinking "
        "or 'review_chain' to see all steps.*"
    )
    return "\n".join(lines)


def render_stats(stats: ChainStats) -> str:
    return "\n".join([
        "📊 **Database Statistics**",
        "",
        f"**Total Thought Chains:** {stats.total_chains}",
        f"**Total Thought Steps:** {stats.total_steps}",
        f"**Active Chains:** {stats.active_chains}",
        f"**Database Path:** {stats.storage_location}",
    ])


__all__ = [
    "EMPTY_CHAIN_MESSAGE",
    "display_time",
    "truncate",
    "render_mutation",
    "render_search",
    "render_load",
    "render_stats",
]
