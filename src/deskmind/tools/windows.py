"""Window-management, state-query and content tools."""

import logging
from datetime import datetime, timezone
from typing import Any

from ..windows import WINDOW_CONFIGS, Window, WindowManager, WindowNotFoundError
from .base import Tool, ToolParameter
from .sanitize import safe_string, sanitize_window_config

logger = logging.getLogger(__name__)

CANVAS_DIMENSIONS = {"width": 1400, "height": 900}

WINDOW_ID = ToolParameter("windowId", "string", "Window ID", required=True)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class WindowTool(Tool):
    """Base for tools that act on the window manager."""

    def __init__(self, windows: WindowManager) -> None:
        self.windows = windows

    def _require(self, window_id: str | None) -> Window:
        if not window_id:
            raise ValueError("windowId is required")
        window = self.windows.get_window(window_id)
        if window is None:
            raise WindowNotFoundError(window_id)
        return window


class CreateWindowTool(WindowTool):
    name = "createWindow"
    description = (
        "Create a new window on the canvas. Types: " + ", ".join(WINDOW_CONFIGS)
        + ". The config may set title, position {x, y}, size {width, height} and metadata."
    )
    parameters = (
        ToolParameter("type", "string", "Window type", required=True),
        ToolParameter(
            "config", "object", "Optional title, position, size and metadata", sanitized=True
        ),
    )

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        window_type = args.get("type")
        if window_type not in WINDOW_CONFIGS:
            logger.warning(f"Unknown window type {window_type!r}, falling back to 'text'")
            window_type = "text"

        issues: list[str] = []
        config = sanitize_window_config(window_type, args.get("config"), issues)
        if issues:
            logger.warning(f"createWindow config sanitized: {'; '.join(issues)}")

        window = await self.windows.create_window(window_type, config)
        return {"windowId": window.id, "window": window.to_dict(), "sanitizeIssues": issues}


class DeleteWindowTool(WindowTool):
    name = "deleteWindow"
    description = "Close and delete a window"
    parameters = (WINDOW_ID,)

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        await self.windows.delete_window(args["windowId"])
        return {"windowId": args["windowId"], "deleted": True}


class MoveWindowTool(WindowTool):
    name = "moveWindow"
    description = "Move a window to a new position on the canvas"
    parameters = (
        WINDOW_ID,
        ToolParameter("x", "number", "New X coordinate", required=True),
        ToolParameter("y", "number", "New Y coordinate", required=True),
    )

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        window = await self.windows.move_window(args["windowId"], {"x": args["x"], "y": args["y"]})
        return window.to_dict()


class ResizeWindowTool(WindowTool):
    name = "resizeWindow"
    description = "Resize a window"
    parameters = (
        WINDOW_ID,
        ToolParameter("width", "number", "New width", required=True),
        ToolParameter("height", "number", "New height", required=True),
    )

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        window = await self.windows.resize_window(
            args["windowId"], {"width": args["width"], "height": args["height"]}
        )
        return window.to_dict()


class SetWindowTitleTool(WindowTool):
    name = "setWindowTitle"
    description = "Change the title of a window"
    parameters = (
        WINDOW_ID,
        ToolParameter("title", "string", "New title", required=True),
    )

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        window = await self.windows.set_window_title(args["windowId"], args["title"])
        return window.to_dict()


class WindowStateTool(WindowTool):
    """Single-argument state changes (lock, minimize, raise, ...)."""

    action = ""
    parameters = (WINDOW_ID,)

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        window = await getattr(self.windows, self.action)(args["windowId"])
        return window.to_dict()


class LockWindowTool(WindowStateTool):
    name = "lockWindow"
    description = "Lock a window so it cannot be moved or resized"
    action = "lock_window"


class UnlockWindowTool(WindowStateTool):
    name = "unlockWindow"
    description = "Unlock a window"
    action = "unlock_window"


class MinimizeWindowTool(WindowStateTool):
    name = "minimizeWindow"
    description = "Minimize a window"
    action = "minimize_window"


class RestoreWindowTool(WindowStateTool):
    name = "restoreWindow"
    description = "Restore a minimized window"
    action = "restore_window"


class BringToFrontTool(WindowStateTool):
    name = "bringToFront"
    description = "Bring a window to the front"
    action = "bring_to_front"


class TileWindowsTool(WindowTool):
    name = "tileWindows"
    description = "Arrange multiple windows in a tiled layout"
    parameters = (
        ToolParameter("windowIds", "array", "Array of window IDs", required=True, items="string"),
        ToolParameter(
            "layout", "string", "Layout type", enum=("grid", "horizontal", "vertical")
        ),
    )

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        layout = args.get("layout") or "grid"
        if layout not in ("grid", "horizontal", "vertical"):
            raise ValueError(f"Unknown layout: {layout}")
        windows = await self.windows.tile_windows([str(i) for i in args["windowIds"]], layout)
        return [w.to_dict() for w in windows]


class GetWindowListTool(WindowTool):
    name = "getWindowList"
    description = "Get a list of all windows and their states"
    parameters = ()

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        return [w.to_dict() for w in self.windows.get_all_windows()]


class GetWindowContentTool(WindowTool):
    name = "getWindowContent"
    description = "Get the content of a specific window"
    parameters = (WINDOW_ID,)

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        return self._require(args["windowId"]).to_dict()


class SearchWindowsTool(WindowTool):
    name = "searchWindows"
    description = "Search for windows by title, type, or metadata"
    parameters = (ToolParameter("query", "string", "Search query", required=True),)

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        return [w.to_dict() for w in self.windows.search_windows(args["query"])]


class ExportWindowStateTool(WindowTool):
    name = "exportWindowState"
    description = "Export the complete state of a window"
    parameters = (WINDOW_ID,)

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        return self.windows.export_window_state(args["windowId"])


class GetSystemMetricsTool(WindowTool):
    name = "getSystemMetrics"
    description = "Get window counts and usage metrics"
    parameters = ()

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        return self.windows.get_system_metrics()


class GetCanvasStateTool(WindowTool):
    name = "getCanvasState"
    description = "Get the current canvas viewport and state"
    parameters = ()

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        return {
            "viewport": {"x": 0, "y": 0, "zoom": 1.0},
            "dimensions": dict(CANVAS_DIMENSIONS),
            "windowCount": len(self.windows.get_all_windows()),
        }


class SetWebviewUrlTool(WindowTool):
    name = "setWebviewUrl"
    description = "Set the URL of a webview window"
    parameters = (
        WINDOW_ID,
        ToolParameter("url", "string", "URL to load", required=True),
    )

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        window = self._require(args["windowId"])
        if window.type not in ("webview", "reference-webview"):
            raise ValueError(f"Window {window.id} is not a webview window")
        updated = await self.windows.update_window(window.id, {
            "metadata": {**window.metadata, "url": args["url"], "lastLoaded": _now()},
        })
        return updated.to_dict()


class UpdateMarkdownContentTool(WindowTool):
    name = "updateMarkdownContent"
    description = "Update the content of a markdown editor window"
    parameters = (
        WINDOW_ID,
        ToolParameter("content", "string", "Markdown content", required=True),
    )

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        window = self._require(args["windowId"])
        if window.type != "markdown-editor":
            raise ValueError(f"Window {window.id} is not a markdown editor window")
        updated = await self.windows.update_window(window.id, {
            "metadata": {**window.metadata, "content": args["content"], "lastModified": _now()},
        })
        return updated.to_dict()


class CreateArtifactWindowTool(WindowTool):
    name = "createArtifactWindow"
    description = (
        "Create an interactive app window from complete HTML, CSS and JavaScript. "
        "Use for calculators, timers, games and other small tools."
    )
    parameters = (
        ToolParameter("title", "string", "App title", required=True),
        ToolParameter("description", "string", "Short description of the app"),
        ToolParameter("html", "string", "HTML body markup", required=True),
        ToolParameter("css", "string", "Stylesheet"),
        ToolParameter("javascript", "string", "Script"),
    )

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        issues: list[str] = []
        title = safe_string(args.get("title"), "Untitled App", issues, "title")
        artifact = {
            "title": title,
            "description": safe_string(args.get("description"), "", issues, "description"),
            "html": safe_string(args.get("html"), "", issues, "html"),
            "css": safe_string(args.get("css"), "", issues, "css"),
            "javascript": safe_string(args.get("javascript"), "", issues, "javascript"),
            "data": {},
        }
        if issues:
            logger.warning(f"createArtifactWindow fields coerced: {'; '.join(issues)}")

        config = sanitize_window_config("artifact", {"title": title}, issues)
        config["metadata"] = {"artifact": artifact}
        window = await self.windows.create_window("artifact", config)
        return {"windowId": window.id, "title": title}


WINDOW_TOOLS: tuple[type[WindowTool], ...] = (
    CreateWindowTool,
    DeleteWindowTool,
    MoveWindowTool,
    ResizeWindowTool,
    SetWindowTitleTool,
    LockWindowTool,
    UnlockWindowTool,
    MinimizeWindowTool,
    RestoreWindowTool,
    BringToFrontTool,
    TileWindowsTool,
    GetWindowListTool,
    GetWindowContentTool,
    SearchWindowsTool,
    ExportWindowStateTool,
    GetSystemMetricsTool,
    GetCanvasStateTool,
    SetWebviewUrlTool,
    UpdateMarkdownContentTool,
    CreateArtifactWindowTool,
)
