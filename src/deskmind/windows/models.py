"""Window model and per-type defaults."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class WindowTypeConfig:
    """Default geometry for a window type."""

    name: str
    default_width: int
    default_height: int
    min_width: int
    min_height: int


WINDOW_CONFIGS: dict[str, WindowTypeConfig] = {
    "webview": WindowTypeConfig("Webview", 800, 600, 400, 300),
    "reference-webview": WindowTypeConfig("Reference", 600, 800, 300, 400),
    "markdown-editor": WindowTypeConfig("Markdown", 700, 500, 400, 300),
    "graph": WindowTypeConfig("Graph", 600, 400, 300, 200),
    "chat": WindowTypeConfig("Chat", 400, 600, 300, 400),
    "code-execution": WindowTypeConfig("Code", 800, 600, 500, 450),
    "artifact": WindowTypeConfig("Artifact", 600, 400, 300, 200),
    "file-explorer": WindowTypeConfig("Files", 300, 500, 250, 300),
    "terminal": WindowTypeConfig("Terminal", 700, 400, 400, 200),
    "memory": WindowTypeConfig("Memory", 500, 600, 300, 400),
    "text": WindowTypeConfig("Text", 500, 400, 300, 200),
    "custom": WindowTypeConfig("Custom", 400, 300, 200, 150),
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Position:
    x: float = 100
    y: float = 100


@dataclass
class Size:
    width: float = 400
    height: float = 300


@dataclass
class Window:
    """A window on the canvas.

    Attributes:
        id: Unique window identifier.
        type: One of the WINDOW_CONFIGS keys.
        title: Display title.
        position: Top-left corner on the canvas.
        size: Width and height in canvas units.
        z_index: Stacking order, higher is in front.
        is_locked: Locked windows reject user edits.
        is_minimized: Minimized windows are hidden from the canvas.
        metadata: Type-specific payload (text content, url, label, ...).
    """

    id: str
    type: str
    title: str
    position: Position = field(default_factory=Position)
    size: Size = field(default_factory=Size)
    z_index: int = 0
    is_locked: bool = False
    is_minimized: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)

    def touch(self) -> None:
        self.updated_at = _now()

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the camelCase keys the model sees in tool results."""
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "position": {"x": self.position.x, "y": self.position.y},
            "size": {"width": self.size.width, "height": self.size.height},
            "zIndex": self.z_index,
            "isLocked": self.is_locked,
            "isMinimized": self.is_minimized,
            "metadata": dict(self.metadata),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
