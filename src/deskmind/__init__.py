"""DeskMind - a canvas assistant with tool use and long-term memory."""

__version__ = "0.1.0"
