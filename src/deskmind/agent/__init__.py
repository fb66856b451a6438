"""Conversation orchestrator and its helpers."""

from .cancellation import CancellationToken
from .loop import ChatResult, ConversationOrchestrator, OrchestratorConfig, TurnState
from .parsing import parse_tool_arguments, parse_xml_function_calls
from .prompt import build_context_message

__all__ = [
    "CancellationToken",
    "ChatResult",
    "ConversationOrchestrator",
    "OrchestratorConfig",
    "TurnState",
    "build_context_message",
    "parse_tool_arguments",
    "parse_xml_function_calls",
]
