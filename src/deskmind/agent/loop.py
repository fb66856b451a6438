"""Conversation orchestrator: think, act, observe until the model answers."""

from __future__ import annotations

import inspect
import json
import logging
import random
import string
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..config import Settings
from ..conversation_logger import ConversationLogger, get_conversation_logger
from ..errors import (
    EmptyResponseError,
    LLMTransportError,
    MaxIterationsExceededError,
    NotConfiguredError,
    ToolArgumentsError,
    TurnError,
)
from ..llm import Completion, LLMClient, ToolCall
from ..tools.base import ToolResult
from .cancellation import CancellationToken
from .parsing import (
    XmlCallStreamFilter,
    contains_xml_function_call,
    parse_tool_arguments,
    parse_xml_function_calls,
)
from .prompt import build_context_message, format_tool_result

if TYPE_CHECKING:
    from ..memory import MemoryManager
    from ..tools.registry import ToolRegistry
    from ..windows import WindowManager

logger = logging.getLogger(__name__)

CONTINUATION_PROMPT = "Use a tool call to continue this plan."
INLINE_TOOL = "executeInlineCode"

DeltaCallback = Callable[[str], Awaitable[None] | None]


class TurnState(Enum):
    """States of a single conversation turn."""

    AWAITING_RESPONSE = "awaiting_response"
    EXECUTING_TOOLS = "executing_tools"
    INJECTING_CONTINUATION = "injecting_continuation"
    RETURNING = "returning"
    FAILED = "failed"


@dataclass
class OrchestratorConfig:
    """Configuration for the orchestrator."""

    model: str = "llama-3.3-70b-versatile"
    extraction_model: str | None = None
    temperature: float = 0.2
    max_tokens: int = 8192
    max_iterations: int = 25
    continuation_prompt: str = CONTINUATION_PROMPT

    @classmethod
    def from_settings(cls, settings: Settings) -> OrchestratorConfig:
        return cls(
            model=settings.model,
            extraction_model=settings.extraction_model,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            max_iterations=settings.max_iterations,
        )


@dataclass
class ChatResult:
    """Result of one completed turn."""

    content: str
    iterations: int
    tool_calls: list[dict[str, Any]] = field(default_factory=list)
    inline_execution: dict[str, Any] | None = None


@dataclass
class _Turn:
    conversation_id: str
    transcript: list[dict[str, Any]]
    token: CancellationToken
    iterations: int = 0
    tool_calls: list[dict[str, Any]] = field(default_factory=list)
    inline_execution: dict[str, Any] | None = None


def new_conversation_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"chat_{int(time.time() * 1000)}_{suffix}"


async def _emit(on_delta: DeltaCallback, text: str) -> None:
    if not text:
        return
    result = on_delta(text)
    if inspect.isawaitable(result):
        await result


class ConversationOrchestrator:
    """Drives LLM round-trips and tool dispatch for each conversation.

    Each conversation keeps an in-memory transcript that is replayed to the
    model on every request. Tool calls in one response run one at a time in
    the order the model gave them.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        llm: LLMClient | None,
        window_manager: WindowManager | None = None,
        memory: MemoryManager | None = None,
        config: OrchestratorConfig | None = None,
        conversation_logger: ConversationLogger | None = None,
    ) -> None:
        self.registry = registry.freeze()
        self.llm = llm
        self.windows = window_manager
        self.memory = memory
        self.config = config or OrchestratorConfig()
        self.conv_logger = conversation_logger or get_conversation_logger()
        self._transcripts: dict[str, list[dict[str, Any]]] = {}
        self._tokens: dict[str, CancellationToken] = {}

    # Conversation management

    def create_conversation(self) -> str:
        conversation_id = new_conversation_id()
        self._transcripts[conversation_id] = []
        logger.info(f"Created new conversation: {conversation_id}")
        return conversation_id

    def abort(self, conversation_id: str) -> bool:
        """Cancel the running turn of a conversation, if any."""
        token = self._tokens.get(conversation_id)
        if token is None:
            return False
        logger.info(f"Aborting conversation: {conversation_id}")
        token.cancel("aborted")
        return True

    def get_transcript(self, conversation_id: str) -> list[dict[str, Any]]:
        return [dict(m) for m in self._transcripts.get(conversation_id, [])]

    def list_conversations(self) -> list[str]:
        return list(self._transcripts)

    def clear_conversation(self, conversation_id: str) -> None:
        self._transcripts.pop(conversation_id, None)

    def clear_all_conversations(self) -> None:
        self._transcripts.clear()

    def _load_transcript(self, conversation_id: str) -> list[dict[str, Any]]:
        transcript = self._transcripts.get(conversation_id)
        if transcript is not None:
            return transcript

        transcript = []
        if self.memory is not None:
            for message in self.memory.get_messages_for_conversation(conversation_id):
                if message.role in ("user", "assistant"):
                    transcript.append(message.to_chat())
            if transcript:
                logger.info(
                    f"Hydrated {conversation_id} with {len(transcript)} stored messages"
                )
        self._transcripts[conversation_id] = transcript
        return transcript

    async def _record(self, conversation_id: str, role: str, content: str) -> None:
        if self.memory is None:
            return
        try:
            await self.memory.add_message_to_conversation(conversation_id, role, content)
        except Exception as e:
            logger.warning(f"Failed to record {role} message in memory: {e}")

    # Turn

    async def chat(
        self,
        conversation_id: str,
        text: str,
        token: CancellationToken | None = None,
        on_delta: DeltaCallback | None = None,
    ) -> ChatResult:
        """Run one user turn to completion.

        Args:
            conversation_id: Conversation to continue (created if unknown).
            text: The user message.
            token: Cancellation token; ``abort()`` cancels it too.
            on_delta: When given, responses are streamed and each content
                chunk is passed to this callback.

        Returns:
            ChatResult with the final answer and turn metadata.

        Raises:
            NotConfiguredError: If no LLM client is configured.
            LLMTransportError: If the provider fails.
            TurnError: Empty response, cancellation or too many iterations.
        """
        if self.llm is None:
            raise NotConfiguredError("AI service not configured. Please set an API key.")

        token = token or CancellationToken()
        self._tokens[conversation_id] = token
        turn = _Turn(conversation_id, self._load_transcript(conversation_id), token)

        turn.transcript.append({"role": "user", "content": text})
        self.conv_logger.log_user_message(conversation_id, text)
        await self._record(conversation_id, "user", text)

        try:
            return await self._run(turn, on_delta)
        except (TurnError, LLMTransportError) as e:
            self._transition(turn, TurnState.FAILED)
            self.conv_logger.log_error(conversation_id, str(e), {"type": type(e).__name__})
            self.conv_logger.log_turn_end(
                conversation_id,
                outcome=type(e).__name__,
                iterations=turn.iterations,
                tool_calls_total=len(turn.tool_calls),
            )
            raise
        finally:
            if self._tokens.get(conversation_id) is token:
                del self._tokens[conversation_id]

    def _transition(self, turn: _Turn, state: TurnState) -> None:
        logger.debug(f"{turn.conversation_id}: {state.value}")
        self.conv_logger.log_state_transition(turn.conversation_id, state.value)

    async def _run(self, turn: _Turn, on_delta: DeltaCallback | None) -> ChatResult:
        tools = self.registry.get_tool_definitions()

        while turn.iterations < self.config.max_iterations:
            turn.token.raise_if_cancelled()
            turn.iterations += 1
            self._transition(turn, TurnState.AWAITING_RESPONSE)

            messages = [
                {"role": "system", "content": await self._build_context(turn, tools)},
                *turn.transcript,
            ]
            self.conv_logger.log_llm_request(
                turn.conversation_id,
                model=self.config.model,
                messages_count=len(messages),
                tools_count=len(tools),
                iteration=turn.iterations,
            )
            completion = await self._request(messages, tools, on_delta)
            self.conv_logger.log_llm_response(
                turn.conversation_id,
                has_content=bool(completion.content),
                has_reasoning=bool(completion.reasoning),
                tool_calls_count=len(completion.tool_calls),
                finish_reason=completion.finish_reason,
                usage=completion.usage,
            )
            turn.token.raise_if_cancelled()

            tool_calls = completion.tool_calls
            content = completion.content
            if contains_xml_function_call(content):
                xml_calls = parse_xml_function_calls(
                    content, id_prefix=f"xml_call_{len(turn.transcript)}"
                )
                if xml_calls:
                    logger.warning(
                        f"Model wrote {len(xml_calls)} tool call(s) as inline XML; converting"
                    )
                    for call in xml_calls:
                        self.conv_logger.log_parsing_issue(
                            turn.conversation_id,
                            tool_name=call.name,
                            raw_arguments=content,
                            extracted=json.loads(call.arguments),
                            method="xml_function_call",
                        )
                    tool_calls = xml_calls
                    content = None

            if tool_calls:
                self._transition(turn, TurnState.EXECUTING_TOOLS)
                await self._execute_tool_calls(turn, content, tool_calls)
                continue

            if content and content.strip():
                self._transition(turn, TurnState.RETURNING)
                turn.transcript.append({"role": "assistant", "content": content})
                self.conv_logger.log_assistant_message(turn.conversation_id, content)
                await self._record(turn.conversation_id, "assistant", content)
                self.conv_logger.log_turn_end(
                    turn.conversation_id,
                    outcome="complete",
                    iterations=turn.iterations,
                    tool_calls_total=len(turn.tool_calls),
                )
                return ChatResult(
                    content=content,
                    iterations=turn.iterations,
                    tool_calls=turn.tool_calls,
                    inline_execution=turn.inline_execution,
                )

            if completion.reasoning and completion.reasoning.strip():
                self._transition(turn, TurnState.INJECTING_CONTINUATION)
                self.conv_logger.log_reasoning_continuation(
                    turn.conversation_id, completion.reasoning
                )
                turn.transcript.append({"role": "assistant", "content": completion.reasoning})
                turn.transcript.append(
                    {"role": "user", "content": self.config.continuation_prompt}
                )
                continue

            raise EmptyResponseError()

        raise MaxIterationsExceededError(self.config.max_iterations)

    async def _request(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        on_delta: DeltaCallback | None,
    ) -> Completion:
        options = {
            "tools": tools or None,
            "tool_choice": "auto" if tools else None,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "model": self.config.model,
        }
        if on_delta is None:
            return await self.llm.create_chat_completion(messages, **options)

        completion: Completion | None = None
        xml_filter = XmlCallStreamFilter()
        async for delta in self.llm.stream_chat_completion(messages, **options):
            if delta.completion is not None:
                completion = delta.completion
            elif delta.content:
                await _emit(on_delta, xml_filter.feed(delta.content))
        await _emit(on_delta, xml_filter.flush())
        if completion is None:
            raise LLMTransportError("Stream ended without a response")
        return completion

    async def _build_context(self, turn: _Turn, tools: list[dict[str, Any]]) -> str:
        windows = self.windows.get_all_windows() if self.windows is not None else []

        memory_block = None
        if self.memory is not None:
            recent = [
                m["content"]
                for m in turn.transcript
                if m["role"] == "user" and m["content"] != self.config.continuation_prompt
            ]
            memory_block = await self.memory.build_memory_context(recent[-3:])
            if memory_block:
                self.conv_logger.log_memory_context(
                    turn.conversation_id,
                    facts_count=sum(1 for line in memory_block.splitlines() if line[:1].isdigit()),
                )

        return build_context_message(windows, memory_block, tools)

    async def _execute_tool_calls(
        self, turn: _Turn, content: str | None, tool_calls: list[ToolCall]
    ) -> None:
        checkpoint = len(turn.transcript)
        turn.transcript.append({
            "role": "assistant",
            "content": content,
            "tool_calls": [call.to_message() for call in tool_calls],
        })

        try:
            for call in tool_calls:
                turn.token.raise_if_cancelled()
                result = await self._dispatch(turn, call)
                turn.token.raise_if_cancelled()

                turn.transcript.append({
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": format_tool_result(result),
                })
                if call.name == INLINE_TOOL and result.success:
                    turn.inline_execution = result.to_dict()
        except BaseException:
            # the transcript must not keep tool calls without results
            del turn.transcript[checkpoint:]
            raise

    async def _dispatch(self, turn: _Turn, call: ToolCall) -> ToolResult:
        try:
            parsed = parse_tool_arguments(call.arguments, call.name)
        except ToolArgumentsError as e:
            self.conv_logger.log_tool_call(turn.conversation_id, call.name, {}, call.id)
            result = ToolResult.fail(f"Invalid arguments for {call.name}: {e}")
            self._log_result(turn, call, result, 0.0)
            turn.tool_calls.append({"name": call.name, "args": {}, "success": False})
            return result

        if parsed.recovered:
            self.conv_logger.log_parsing_issue(
                turn.conversation_id,
                tool_name=call.name,
                raw_arguments=call.arguments,
                extracted=parsed.args,
                method=parsed.method,
            )

        self.conv_logger.log_tool_call(turn.conversation_id, call.name, parsed.args, call.id)
        start_time = time.time()
        result = await self.registry.execute(call.name, parsed.args)
        self._log_result(turn, call, result, (time.time() - start_time) * 1000)
        turn.tool_calls.append({"name": call.name, "args": parsed.args, "success": result.success})
        return result

    def _log_result(self, turn: _Turn, call: ToolCall, result: ToolResult, duration_ms: float) -> None:
        self.conv_logger.log_tool_result(
            turn.conversation_id,
            tool_name=call.name,
            success=result.success,
            output=json.dumps(result.data, default=str) if result.data is not None else "",
            error=result.error,
            tool_call_id=call.id,
            duration_ms=duration_ms,
        )

    async def process_prompt(self, prompt: str, model: str | None = None) -> str:
        """Single-shot completion without tools or transcript."""
        if self.llm is None:
            raise NotConfiguredError("AI service not configured. Please set an API key.")
        completion = await self.llm.create_chat_completion(
            [{"role": "user", "content": prompt}],
            tools=None,
            tool_choice=None,
            model=model or self.config.extraction_model or self.config.model,
        )
        return completion.content or ""
