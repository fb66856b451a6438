"""Conversation logger for detailed analysis.

Each conversation gets its own JSONL file per day with the requests sent to
the model, the responses, tool calls and results, argument-parsing
fallbacks and turn outcomes.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

MAX_FIELD_CHARS = 2000


def _truncate(value: str | None, limit: int = MAX_FIELD_CHARS) -> str:
    if not value:
        return ""
    if len(value) <= limit:
        return value
    return value[:limit] + f"... [{len(value) - limit} more chars]"


class ConversationLogger:
    """Logs complete conversations for analysis."""

    def __init__(self, log_dir: Path | str | None = None) -> None:
        """Initialize the conversation logger.

        Args:
            log_dir: Directory to store logs. Defaults to ./logs in cwd.
        """
        if log_dir is None:
            log_dir = Path.cwd() / "logs"
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def log_file(self, conversation_id: str) -> Path:
        """Get the log file path for a conversation."""
        date_str = datetime.now().strftime("%Y-%m-%d")
        return self.log_dir / f"{date_str}_{conversation_id}.jsonl"

    def _write(self, conversation_id: str, entry: dict[str, Any]) -> None:
        entry["timestamp"] = datetime.now(timezone.utc).isoformat()
        entry["conversation_id"] = conversation_id

        with open(self.log_file(conversation_id), "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")

    def log_user_message(self, conversation_id: str, content: str) -> None:
        """Log a user message."""
        self._write(conversation_id, {
            "event": "user_message",
            "role": "user",
            "content": content,
        })

    def log_assistant_message(self, conversation_id: str, content: str) -> None:
        """Log the final assistant answer of a turn."""
        self._write(conversation_id, {
            "event": "assistant_message",
            "role": "assistant",
            "content": content,
        })

    def log_llm_request(
        self,
        conversation_id: str,
        model: str,
        messages_count: int,
        tools_count: int,
        iteration: int,
    ) -> None:
        """Log an LLM API request."""
        self._write(conversation_id, {
            "event": "llm_request",
            "model": model,
            "messages_count": messages_count,
            "tools_count": tools_count,
            "iteration": iteration,
        })

    def log_llm_response(
        self,
        conversation_id: str,
        has_content: bool,
        has_reasoning: bool,
        tool_calls_count: int,
        finish_reason: str | None = None,
        usage: dict[str, Any] | None = None,
    ) -> None:
        """Log an LLM API response."""
        entry: dict[str, Any] = {
            "event": "llm_response",
            "has_content": has_content,
            "has_reasoning": has_reasoning,
            "tool_calls_count": tool_calls_count,
            "finish_reason": finish_reason,
        }
        if usage:
            entry["usage"] = usage
        self._write(conversation_id, entry)

    def log_state_transition(self, conversation_id: str, state: str) -> None:
        """Log a turn state-machine transition."""
        self._write(conversation_id, {"event": "state_transition", "state": state})

    def log_tool_call(
        self,
        conversation_id: str,
        tool_name: str,
        tool_args: dict[str, Any],
        tool_call_id: str | None = None,
    ) -> None:
        """Log a tool call from the LLM."""
        self._write(conversation_id, {
            "event": "tool_call",
            "tool_name": tool_name,
            "tool_args": tool_args,
            "tool_call_id": tool_call_id,
        })

    def log_tool_result(
        self,
        conversation_id: str,
        tool_name: str,
        success: bool,
        output: str,
        error: str | None = None,
        tool_call_id: str | None = None,
        duration_ms: float | None = None,
    ) -> None:
        """Log the envelope produced for a tool call."""
        entry: dict[str, Any] = {
            "event": "tool_result",
            "tool_name": tool_name,
            "success": success,
            "output": _truncate(output),
            "tool_call_id": tool_call_id,
        }
        if error:
            entry["error"] = error
        if duration_ms is not None:
            entry["duration_ms"] = duration_ms
        self._write(conversation_id, entry)

    def log_parsing_issue(
        self,
        conversation_id: str,
        tool_name: str,
        raw_arguments: str,
        extracted: dict[str, Any],
        method: str,
    ) -> None:
        """Log a tool-argument recovery attempt."""
        self._write(conversation_id, {
            "event": "parsing_issue",
            "tool_name": tool_name,
            "method": method,
            "raw_arguments": _truncate(raw_arguments),
            "extracted_keys": sorted(extracted),
        })

    def log_reasoning_continuation(self, conversation_id: str, reasoning: str) -> None:
        """Log a reasoning-only response that triggered a continuation."""
        self._write(conversation_id, {
            "event": "reasoning_continuation",
            "reasoning": _truncate(reasoning),
        })

    def log_memory_context(self, conversation_id: str, facts_count: int) -> None:
        """Log that a memory block was injected into the context."""
        self._write(conversation_id, {"event": "memory_context", "facts_count": facts_count})

    def log_error(
        self, conversation_id: str, error: str, context: dict[str, Any] | None = None
    ) -> None:
        """Log an error."""
        entry: dict[str, Any] = {"event": "error", "error": error}
        if context:
            entry["context"] = context
        self._write(conversation_id, entry)

    def log_turn_end(
        self,
        conversation_id: str,
        outcome: str,
        iterations: int,
        tool_calls_total: int,
    ) -> None:
        """Log when a turn finishes, successfully or not."""
        self._write(conversation_id, {
            "event": "turn_end",
            "outcome": outcome,
            "iterations": iterations,
            "tool_calls_total": tool_calls_total,
        })


# Global instance
_conversation_logger: ConversationLogger | None = None


def get_conversation_logger(log_dir: Path | str | None = None) -> ConversationLogger:
    """Get or create the global conversation logger."""
    global _conversation_logger
    if _conversation_logger is None:
        _conversation_logger = ConversationLogger(log_dir=log_dir)
    return _conversation_logger


def reset_conversation_logger() -> None:
    """Reset the global conversation logger (for testing)."""
    global _conversation_logger
    _conversation_logger = None
