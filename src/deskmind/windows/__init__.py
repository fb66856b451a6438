"""Windowing collaborator: contract, model and in-process manager."""

from .manager import InMemoryWindowManager, WindowManager, WindowNotFoundError
from .models import WINDOW_CONFIGS, Position, Size, Window, WindowTypeConfig

__all__ = [
    "InMemoryWindowManager",
    "Position",
    "Size",
    "WINDOW_CONFIGS",
    "Window",
    "WindowManager",
    "WindowNotFoundError",
    "WindowTypeConfig",
]
