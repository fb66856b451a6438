"""Tool registry for managing and dispatching tools."""

import logging
from collections.abc import Iterable
from typing import Any

from ..agent.parsing import parse_tool_arguments
from ..errors import ToolArgumentsError
from .base import Tool, ToolResult
from .sanitize import make_serializable

logger = logging.getLogger(__name__)


class RegistryFrozenError(RuntimeError):
    """Raised when registering into a frozen registry."""


class ToolRegistry:
    """Catalogue of available tools.

    Tools are registered while the application is wired up; ``freeze()``
    then makes the catalogue read-only for the rest of its life.
    """

    def __init__(self, tools: Iterable[Tool] | None = None) -> None:
        self._tools: dict[str, Tool] = {}
        self._frozen = False
        for tool in tools or ():
            self.register(tool)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, tool: Tool) -> None:
        """Register a tool."""
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register '{tool.name}': registry is frozen")
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' already registered")
        self._tools[tool.name] = tool

    def freeze(self) -> "ToolRegistry":
        self._frozen = True
        return self

    def get(self, name: str) -> Tool | None:
        """Get a tool by name."""
        return self._tools.get(name)

    def list_tools(self) -> list[str]:
        """List all registered tool names."""
        return list(self._tools.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def get_tool_definitions(self) -> list[dict[str, Any]]:
        """Get schemas for all tools (for LLM function calling)."""
        return [tool.get_schema() for tool in self._tools.values()]

    async def execute(
        self,
        name: str,
        params: Any = None,
        window_id: str | None = None,
    ) -> ToolResult:
        """Dispatch a tool call by name.

        ``params`` may be a mapping or the raw argument string from the
        model. Every outcome, including unknown tools, unparseable arguments
        and exceptions raised by the tool, is returned as an envelope.
        """
        tool = self._tools.get(name)
        if tool is None:
            return ToolResult.fail(
                f"Unknown tool: {name}. Available tools: {', '.join(self._tools)}",
                window_id=window_id,
            )

        try:
            args = parse_tool_arguments(params, name).args
        except ToolArgumentsError as e:
            return ToolResult.fail(f"Invalid arguments for {name}: {e}", window_id=window_id)

        valid, error = tool.validate_args(args)
        if not valid:
            return ToolResult.fail(error or "Invalid arguments", window_id=window_id)

        try:
            data = await tool.execute(args, window_id=window_id)
        except Exception as e:
            logger.warning(f"Tool {name} failed: {e}")
            return ToolResult.fail(f"Tool execution failed: {e}", window_id=window_id)

        issues: list[str] = []
        data = make_serializable(data, issues, field=name)
        if issues:
            logger.warning(f"Tool {name} returned unserializable data: {'; '.join(issues)}")

        if window_id is None and isinstance(data, dict) and isinstance(data.get("windowId"), str):
            window_id = data["windowId"]
        return ToolResult.ok(data, window_id=window_id)
