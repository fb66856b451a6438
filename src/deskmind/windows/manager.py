"""Window manager contract and an in-process implementation."""

from __future__ import annotations

import logging
import math
import uuid
from typing import Any, Protocol

from .models import WINDOW_CONFIGS, Position, Size, Window

logger = logging.getLogger(__name__)

CANVAS_WIDTH = 1400
CANVAS_HEIGHT = 900
TILE_GAP = 20


class WindowNotFoundError(LookupError):
    """Raised when a window id does not exist."""

    def __init__(self, window_id: str) -> None:
        super().__init__(f"Window with id {window_id} not found")
        self.window_id = window_id


class WindowManager(Protocol):
    """Operations the tools and the orchestrator need from the windowing layer."""

    async def create_window(self, window_type: str, config: dict[str, Any]) -> Window: ...

    async def delete_window(self, window_id: str) -> None: ...

    async def update_window(self, window_id: str, updates: dict[str, Any]) -> Window: ...

    async def move_window(self, window_id: str, position: dict[str, Any]) -> Window: ...

    async def resize_window(self, window_id: str, size: dict[str, Any]) -> Window: ...

    async def bring_to_front(self, window_id: str) -> Window: ...

    async def lock_window(self, window_id: str) -> Window: ...

    async def unlock_window(self, window_id: str) -> Window: ...

    async def minimize_window(self, window_id: str) -> Window: ...

    async def restore_window(self, window_id: str) -> Window: ...

    async def set_window_title(self, window_id: str, title: str) -> Window: ...

    async def tile_windows(self, window_ids: list[str], layout: str = "grid") -> list[Window]: ...

    def get_window(self, window_id: str) -> Window | None: ...

    def get_all_windows(self) -> list[Window]: ...

    def get_windows_by_type(self, window_type: str) -> list[Window]: ...

    def search_windows(self, query: str) -> list[Window]: ...

    def export_window_state(self, window_id: str) -> dict[str, Any]: ...

    def get_system_metrics(self) -> dict[str, Any]: ...


class InMemoryWindowManager:
    """Keeps windows in a dict; used by the CLI and in tests."""

    def __init__(self) -> None:
        self._windows: dict[str, Window] = {}
        self._next_z = 1

    def _require(self, window_id: str) -> Window:
        window = self._windows.get(window_id)
        if window is None:
            raise WindowNotFoundError(window_id)
        return window

    def _raise(self, window: Window) -> None:
        window.z_index = self._next_z
        self._next_z += 1

    async def create_window(self, window_type: str, config: dict[str, Any]) -> Window:
        defaults = WINDOW_CONFIGS.get(window_type, WINDOW_CONFIGS["custom"])
        position = config.get("position") or {}
        size = config.get("size") or {}
        window = Window(
            id=f"window_{uuid.uuid4().hex[:12]}",
            type=window_type,
            title=config.get("title") or f"{defaults.name} Window",
            position=Position(position.get("x", 100), position.get("y", 100)),
            size=Size(
                max(size.get("width", defaults.default_width), defaults.min_width),
                max(size.get("height", defaults.default_height), defaults.min_height),
            ),
            metadata=dict(config.get("metadata") or {}),
        )
        self._raise(window)
        self._windows[window.id] = window
        logger.debug(f"Created {window_type} window {window.id}")
        return window

    async def delete_window(self, window_id: str) -> None:
        self._require(window_id)
        del self._windows[window_id]

    async def update_window(self, window_id: str, updates: dict[str, Any]) -> Window:
        window = self._require(window_id)
        if "title" in updates:
            window.title = str(updates["title"])
        if "metadata" in updates and isinstance(updates["metadata"], dict):
            window.metadata = dict(updates["metadata"])
        if isinstance(updates.get("position"), dict):
            await self.move_window(window_id, updates["position"])
        if isinstance(updates.get("size"), dict):
            await self.resize_window(window_id, updates["size"])
        window.touch()
        return window

    async def move_window(self, window_id: str, position: dict[str, Any]) -> Window:
        window = self._require(window_id)
        window.position = Position(
            float(position.get("x", window.position.x)),
            float(position.get("y", window.position.y)),
        )
        window.touch()
        return window

    async def resize_window(self, window_id: str, size: dict[str, Any]) -> Window:
        window = self._require(window_id)
        defaults = WINDOW_CONFIGS.get(window.type, WINDOW_CONFIGS["custom"])
        window.size = Size(
            max(float(size.get("width", window.size.width)), defaults.min_width),
            max(float(size.get("height", window.size.height)), defaults.min_height),
        )
        window.touch()
        return window

    async def bring_to_front(self, window_id: str) -> Window:
        window = self._require(window_id)
        self._raise(window)
        return window

    async def lock_window(self, window_id: str) -> Window:
        window = self._require(window_id)
        window.is_locked = True
        window.touch()
        return window

    async def unlock_window(self, window_id: str) -> Window:
        window = self._require(window_id)
        window.is_locked = False
        window.touch()
        return window

    async def minimize_window(self, window_id: str) -> Window:
        window = self._require(window_id)
        window.is_minimized = True
        window.touch()
        return window

    async def restore_window(self, window_id: str) -> Window:
        window = self._require(window_id)
        window.is_minimized = False
        self._raise(window)
        window.touch()
        return window

    async def set_window_title(self, window_id: str, title: str) -> Window:
        window = self._require(window_id)
        window.title = title
        window.touch()
        return window

    async def tile_windows(self, window_ids: list[str], layout: str = "grid") -> list[Window]:
        windows = [self._require(window_id) for window_id in window_ids]
        if not windows:
            return []

        count = len(windows)
        if layout == "horizontal":
            cols, rows = count, 1
        elif layout == "vertical":
            cols, rows = 1, count
        else:
            cols = math.ceil(math.sqrt(count))
            rows = math.ceil(count / cols)

        cell_w = (CANVAS_WIDTH - TILE_GAP * (cols + 1)) / cols
        cell_h = (CANVAS_HEIGHT - TILE_GAP * (rows + 1)) / rows
        for index, window in enumerate(windows):
            col, row = index % cols, index // cols
            window.position = Position(
                TILE_GAP + col * (cell_w + TILE_GAP),
                TILE_GAP + row * (cell_h + TILE_GAP),
            )
            window.size = Size(cell_w, cell_h)
            window.is_minimized = False
            window.touch()
        return windows

    def get_window(self, window_id: str) -> Window | None:
        return self._windows.get(window_id)

    def get_all_windows(self) -> list[Window]:
        return sorted(self._windows.values(), key=lambda w: w.z_index)

    def get_windows_by_type(self, window_type: str) -> list[Window]:
        return [w for w in self.get_all_windows() if w.type == window_type]

    def search_windows(self, query: str) -> list[Window]:
        needle = query.strip().lower()
        if not needle:
            return []
        matches = []
        for window in self.get_all_windows():
            haystack = " ".join([
                window.title,
                window.type,
                " ".join(str(v) for v in window.metadata.values()),
            ]).lower()
            if needle in haystack:
                matches.append(window)
        return matches

    def export_window_state(self, window_id: str) -> dict[str, Any]:
        window = self._require(window_id)
        return {"window": window.to_dict(), "exportedAt": window.updated_at}

    def get_system_metrics(self) -> dict[str, Any]:
        by_type: dict[str, int] = {}
        for window in self._windows.values():
            by_type[window.type] = by_type.get(window.type, 0) + 1
        return {
            "totalWindows": len(self._windows),
            "minimizedWindows": sum(1 for w in self._windows.values() if w.is_minimized),
            "lockedWindows": sum(1 for w in self._windows.values() if w.is_locked),
            "windowsByType": by_type,
        }

    def clear_all_windows(self) -> None:
        self._windows.clear()
