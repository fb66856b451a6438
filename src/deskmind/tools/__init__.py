"""Tool registry and tool implementations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import Tool, ToolParameter, ToolResult
from .code import CODE_TOOLS
from .memory import MEMORY_TOOLS
from .registry import RegistryFrozenError, ToolRegistry
from .text import TEXT_TOOLS
from .windows import WINDOW_TOOLS

if TYPE_CHECKING:
    from ..memory import MemoryManager
    from ..sandbox import CodeExecutionSandbox
    from ..windows import WindowManager


def build_default_registry(
    windows: WindowManager,
    sandbox: CodeExecutionSandbox | None = None,
    memory: MemoryManager | None = None,
) -> ToolRegistry:
    """Register the full catalogue; code and memory tools need their backends."""
    registry = ToolRegistry()
    for tool_cls in WINDOW_TOOLS + TEXT_TOOLS:
        registry.register(tool_cls(windows))
    if sandbox is not None:
        for tool_cls in CODE_TOOLS:
            registry.register(tool_cls(windows, sandbox))
    if memory is not None:
        for tool_cls in MEMORY_TOOLS:
            registry.register(tool_cls(memory))
    return registry


__all__ = [
    "RegistryFrozenError",
    "Tool",
    "ToolParameter",
    "ToolRegistry",
    "ToolResult",
    "build_default_registry",
]
