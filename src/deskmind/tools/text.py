"""Text-window tools.

Text windows keep their content and label in window metadata; the label
doubles as the window title and is how the model usually refers to them.
"""

from typing import Any

from ..windows import Window
from .base import ToolParameter
from .sanitize import sanitize_window_config
from .windows import WindowTool

UPDATE_MODES = ("replace", "append", "prepend")

MODE = ToolParameter("mode", "string", "How to apply the content update", enum=UPDATE_MODES)


def apply_update(current: str, content: str, mode: str | None) -> str:
    """Combine existing and new content according to ``mode``."""
    mode = mode or "replace"
    if mode == "append":
        return f"{current}\n{content}" if current else content
    if mode == "prepend":
        return f"{content}\n{current}" if current else content
    if mode == "replace":
        return content
    raise ValueError(f"Unknown mode: {mode}. Use one of {', '.join(UPDATE_MODES)}")


def _summary(window: Window) -> dict[str, Any]:
    content = window.metadata.get("content") or ""
    return {
        "windowId": window.id,
        "label": window.metadata.get("label") or window.title,
        "length": len(content),
    }


class TextWindowTool(WindowTool):
    """Shared lookups for text windows."""

    def _text_windows(self) -> list[Window]:
        return self.windows.get_windows_by_type("text")

    def _by_label(self, label: str) -> Window:
        wanted = label.strip().lower()
        for window in self._text_windows():
            if (window.metadata.get("label") or window.title).strip().lower() == wanted:
                return window
        raise LookupError(f"No text window with label '{label}'")

    def _by_id(self, window_id: str) -> Window:
        window = self._require(window_id)
        if window.type != "text":
            raise ValueError(f"Window {window_id} is not a text window")
        return window

    async def _write(self, window: Window, content: str, mode: str | None) -> dict[str, Any]:
        current = window.metadata.get("content") or ""
        new_content = apply_update(current, content, mode)
        updated = await self.windows.update_window(
            window.id, {"metadata": {**window.metadata, "content": new_content}}
        )
        return {**_summary(updated), "mode": mode or "replace"}


class CreateTextWindowTool(TextWindowTool):
    name = "createTextWindow"
    description = "Create a new text window with a label and optional initial content"
    parameters = (
        ToolParameter("label", "string", "The label/title for the text window", required=True),
        ToolParameter("content", "string", "Initial content for the text window"),
    )

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        issues: list[str] = []
        config = sanitize_window_config("text", {"title": args["label"]}, issues)
        config["metadata"] = {"label": args["label"], "content": args.get("content") or ""}
        window = await self.windows.create_window("text", config)
        return _summary(window)


class ReadTextByLabelTool(TextWindowTool):
    name = "readTextByLabel"
    description = "Read the content from a text window by label"
    parameters = (
        ToolParameter("label", "string", "The label of the text window to read from", required=True),
    )

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        window = self._by_label(args["label"])
        return {**_summary(window), "content": window.metadata.get("content") or ""}


class UpdateTextByLabelTool(TextWindowTool):
    name = "updateTextByLabel"
    description = "Update the content of a specific text window identified by label"
    parameters = (
        ToolParameter("label", "string", "The label of the text window to update", required=True),
        ToolParameter("content", "string", "The new content for the text window", required=True),
        MODE,
    )

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        return await self._write(self._by_label(args["label"]), args["content"], args.get("mode"))


class UpdateTextLabelTool(TextWindowTool):
    name = "updateTextLabel"
    description = "Rename a text window label (and title) by id or current label"
    parameters = (
        ToolParameter("windowId", "string", "Optional window id"),
        ToolParameter("label", "string", "Current label"),
        ToolParameter("newLabel", "string", "New label", required=True),
    )

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        target = args.get("windowId") or window_id
        if target:
            window = self._by_id(target)
        elif args.get("label"):
            window = self._by_label(args["label"])
        else:
            raise ValueError("Provide either windowId or label")

        new_label = args["newLabel"]
        updated = await self.windows.update_window(window.id, {
            "title": new_label,
            "metadata": {**window.metadata, "label": new_label},
        })
        return _summary(updated)


class ListTextWindowsTool(TextWindowTool):
    name = "listTextWindows"
    description = "Get a list of all text windows with their labels and IDs"
    parameters = ()

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        return [_summary(w) for w in self._text_windows()]


class ReadTextContentTool(TextWindowTool):
    name = "readTextContent"
    description = "Read the content from a specific text window"
    parameters = (
        ToolParameter("windowId", "string", "The ID of the text window to read from", required=True),
    )

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        window = self._by_id(args["windowId"])
        return {**_summary(window), "content": window.metadata.get("content") or ""}


class UpdateTextContentTool(TextWindowTool):
    name = "updateTextContent"
    description = "Update the content of a specific text window"
    parameters = (
        ToolParameter("windowId", "string", "The ID of the text window to update", required=True),
        ToolParameter("content", "string", "The new content for the text window", required=True),
        MODE,
    )

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        return await self._write(self._by_id(args["windowId"]), args["content"], args.get("mode"))


TEXT_TOOLS: tuple[type[TextWindowTool], ...] = (
    CreateTextWindowTool,
    ReadTextByLabelTool,
    UpdateTextByLabelTool,
    UpdateTextLabelTool,
    ListTextWindowsTool,
    ReadTextContentTool,
    UpdateTextContentTool,
)
