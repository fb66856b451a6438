"""Context message builder for the orchestrator."""

import json
from typing import Any

from ..tools.base import ToolResult
from ..windows import Window

TOOL_POLICY = """You are DeskMind, an assistant that arranges and edits windows on the user's canvas.

When the user asks for something that changes the canvas, act with a tool call instead of describing what you would do.
After a tool runs you will see its result; only reply with text once the work is done.

CODE EXECUTION RULES:
1. Use executeInlineCode for quick calculations, conversions and small computations.
2. Use executeCode only for multi-step programs, code the user wants to keep, or when a code window is requested.
3. Do not announce inline calculations, just give the result.

Use createArtifactWindow for interactive tools, games and small apps with complete HTML, CSS and JavaScript.
Use remember when the user explicitly asks you to remember something about them."""


def _window_detail(window: Window) -> str:
    metadata = window.metadata
    if window.type == "webview":
        return f" (URL: {metadata.get('url') or 'unknown'})"
    if window.type == "text":
        return f" ({len(metadata.get('content') or '')} chars)"
    if window.type == "code-execution":
        return f" ({metadata.get('language') or 'unknown'} code)"
    if window.type == "artifact":
        artifact = metadata.get("artifact") or {}
        return f" (Interactive App: {artifact.get('title') or 'Unknown'})"
    return ""


def build_window_state(windows: list[Window]) -> str:
    """Render the current canvas as a short bullet list."""
    lines = ["Current Canvas State:"]
    if not windows:
        lines.append("- No windows currently open")
        return "\n".join(lines)

    lines.append(f"- {len(windows)} window(s) open:")
    for index, window in enumerate(windows, start=1):
        lines.append(
            f"  {index}. {window.title or 'Untitled'} [{window.type}]{_window_detail(window)} "
            f"id={window.id} at ({window.position.x:g}, {window.position.y:g}) "
            f"{window.size.width:g}x{window.size.height:g}"
        )
        label = window.metadata.get("label")
        if label:
            lines.append(f"     Label: {label}")
    return "\n".join(lines)


def build_context_message(
    windows: list[Window],
    memory_block: str | None = None,
    tools_schema: list[dict[str, Any]] | None = None,
) -> str:
    """Build the system context sent ahead of the transcript.

    Args:
        windows: Windows currently on the canvas.
        memory_block: Rendered memory context, or None to omit it.
        tools_schema: Tool definitions, listed by name when given.

    Returns:
        The system message content.
    """
    parts = [TOOL_POLICY]

    if tools_schema:
        parts.append("Available tools: " + ", ".join(
            t["function"]["name"] for t in tools_schema
        ))

    parts.append(build_window_state(windows))

    if memory_block and memory_block.strip():
        parts.append(memory_block)

    return "\n\n".join(parts)


def format_tool_result(result: ToolResult) -> str:
    """Serialize an envelope as the content of a ``tool`` message."""
    return json.dumps(result.to_dict(), ensure_ascii=False, default=str)
