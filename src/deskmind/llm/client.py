"""Thin wrapper around the Groq chat-completions API.

Responses are normalized into ``Completion`` so the orchestrator never
touches SDK objects directly; streamed responses are aggregated into the
same shape.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from groq import APIError, AsyncGroq

from ..errors import LLMTransportError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "llama-3.3-70b-versatile"


@dataclass
class ToolCall:
    """A function call requested by the model."""

    id: str
    name: str
    arguments: str = ""

    def to_message(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass
class Completion:
    """One assistant response."""

    content: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    reasoning: str | None = None
    finish_reason: str | None = None
    usage: dict[str, int] = field(default_factory=dict)
    role: str = "assistant"


@dataclass
class StreamDelta:
    """An incremental piece of a streamed response.

    The final item of a stream has ``completion`` set to the aggregate.
    """

    content: str = ""
    tool_call_index: int | None = None
    completion: Completion | None = None


def _usage_dict(usage: Any) -> dict[str, int]:
    if usage is None:
        return {}
    return {
        key: getattr(usage, key)
        for key in ("prompt_tokens", "completion_tokens", "total_tokens")
        if isinstance(getattr(usage, key, None), int)
    }


def _normalize_tool_calls(raw_calls: Any) -> list[ToolCall]:
    calls = []
    for index, tc in enumerate(raw_calls or []):
        function = getattr(tc, "function", None)
        name = getattr(function, "name", None)
        if not name:
            logger.warning(f"Dropping tool call #{index} without a function name")
            continue
        calls.append(ToolCall(
            id=getattr(tc, "id", None) or f"call_{index}",
            name=name,
            arguments=getattr(function, "arguments", None) or "",
        ))
    return calls


class LLMClient:
    """Request/response and streaming access to the chat model."""

    def __init__(
        self,
        client: AsyncGroq | None = None,
        model: str = DEFAULT_MODEL,
        api_key: str | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            client: Existing AsyncGroq client (tests pass a mock here).
            model: Default model for requests that do not name one.
            api_key: Used to build an AsyncGroq client when none is given.
        """
        self._client = client or AsyncGroq(api_key=api_key)
        self._model = model

    @property
    def model(self) -> str:
        """Return the default model."""
        return self._model

    def _payload(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None,
        tool_choice: str | None,
        temperature: float | None,
        max_tokens: int | None,
        model: str | None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": model or self._model,
            "messages": messages,
        }
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = tool_choice or "auto"
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        return payload

    async def create_chat_completion(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = "auto",
        temperature: float | None = None,
        max_tokens: int | None = None,
        model: str | None = None,
    ) -> Completion:
        """Send one chat request and return the first choice.

        Raises:
            LLMTransportError: On API failure or a response without choices.
        """
        payload = self._payload(messages, tools, tool_choice, temperature, max_tokens, model)
        try:
            response = await self._client.chat.completions.create(**payload)
        except APIError as e:
            raise LLMTransportError(f"LLM API error: {e}") from e

        if not response.choices:
            raise LLMTransportError("No response from AI")

        choice = response.choices[0]
        message = choice.message
        reasoning = getattr(message, "reasoning", None)
        return Completion(
            content=message.content,
            tool_calls=_normalize_tool_calls(message.tool_calls),
            reasoning=reasoning if isinstance(reasoning, str) else None,
            finish_reason=choice.finish_reason,
            usage=_usage_dict(getattr(response, "usage", None)),
        )

    async def stream_chat_completion(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = "auto",
        temperature: float | None = None,
        max_tokens: int | None = None,
        model: str | None = None,
    ) -> AsyncIterator[StreamDelta]:
        """Stream a chat request.

        Yields content and tool-call deltas as they arrive, then one final
        ``StreamDelta`` whose ``completion`` holds the aggregated response.
        """
        payload = self._payload(messages, tools, tool_choice, temperature, max_tokens, model)
        content_parts: list[str] = []
        reasoning_parts: list[str] = []
        calls: dict[int, dict[str, str]] = {}
        finish_reason: str | None = None
        usage: dict[str, int] = {}

        try:
            stream = await self._client.chat.completions.create(stream=True, **payload)
            async for chunk in stream:
                chunk_usage = getattr(getattr(chunk, "x_groq", None), "usage", None)
                if chunk_usage is not None:
                    usage = _usage_dict(chunk_usage)
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]
                delta = choice.delta
                if choice.finish_reason:
                    finish_reason = choice.finish_reason

                reasoning = getattr(delta, "reasoning", None)
                if isinstance(reasoning, str) and reasoning:
                    reasoning_parts.append(reasoning)

                if delta.content:
                    content_parts.append(delta.content)
                    yield StreamDelta(content=delta.content)

                for tc in delta.tool_calls or []:
                    slot = calls.setdefault(tc.index, {"id": "", "name": "", "arguments": ""})
                    if tc.id:
                        slot["id"] = tc.id
                    function = tc.function
                    if function is not None:
                        if function.name:
                            slot["name"] += function.name
                        if function.arguments:
                            slot["arguments"] += function.arguments
                    yield StreamDelta(tool_call_index=tc.index)
        except APIError as e:
            raise LLMTransportError(f"LLM API error: {e}") from e

        tool_calls = [
            ToolCall(id=slot["id"] or f"call_{index}", name=slot["name"], arguments=slot["arguments"])
            for index, slot in sorted(calls.items())
            if slot["name"]
        ]
        yield StreamDelta(completion=Completion(
            content="".join(content_parts) or None,
            tool_calls=tool_calls,
            reasoning="".join(reasoning_parts) or None,
            finish_reason=finish_reason,
            usage=usage,
        ))

    async def complete(self, prompt: str, system: str | None = None, model: str | None = None) -> str:
        """Complete a single prompt and return the text response."""
        messages: list[dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        completion = await self.create_chat_completion(
            messages, tools=None, tool_choice=None, temperature=0.1, model=model
        )
        return completion.content or ""
