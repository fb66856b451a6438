"""LLM client boundary."""

from .client import Completion, LLMClient, StreamDelta, ToolCall

__all__ = ["Completion", "LLMClient", "StreamDelta", "ToolCall"]
