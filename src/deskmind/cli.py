"""Interactive command-line interface for DeskMind."""

import logging

from docker.errors import DockerException

from .agent import ConversationOrchestrator, OrchestratorConfig
from .config import Settings
from .conversation_logger import get_conversation_logger
from .errors import DeskmindError
from .llm import LLMClient
from .memory import EmbeddingService, FactExtractor, MemoryManager, MemoryStore
from .sandbox import DockerCodeSandbox, SandboxConfig
from .tools import build_default_registry
from .windows import InMemoryWindowManager

logger = logging.getLogger(__name__)

BANNER = """
DeskMind - canvas assistant

Commands:
  /exit, /quit  - Exit the CLI
  /new          - Start a new conversation
  /facts        - List what I remember about you
  /help         - Show this help

Type your message and press Enter.
"""


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_sandbox(settings: Settings) -> DockerCodeSandbox | None:
    config = SandboxConfig(timeout=settings.sandbox_timeout, memory_limit=settings.sandbox_memory)
    config.images["python"] = settings.sandbox_image
    try:
        return DockerCodeSandbox(config)
    except DockerException as e:
        logger.warning(f"Docker unavailable, code execution disabled: {e}")
        return None


class CLI:
    """Interactive command-line interface."""

    def __init__(
        self,
        orchestrator: ConversationOrchestrator,
        memory: MemoryManager | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.memory = memory
        self.conversation_id = orchestrator.create_conversation()

    def _format_facts(self) -> str:
        if self.memory is None or not self.memory.facts_available:
            return "Memory is not available."
        facts = self.memory.list_facts()
        if not facts:
            return "I don't remember anything about you yet."
        return "\n".join(
            f"  [{fact.id}] {fact.content} ({fact.category.value}, confidence: {fact.confidence:.1f})"
            for fact in facts
        )

    async def _process_message(self, message: str) -> None:
        """Process a user message through the orchestrator."""
        print()
        streamed = False

        def on_delta(chunk: str) -> None:
            nonlocal streamed
            streamed = True
            print(chunk, end="", flush=True)

        try:
            result = await self.orchestrator.chat(self.conversation_id, message, on_delta=on_delta)
        except DeskmindError as e:
            print(f"\nError: {e}")
            return

        if not streamed:
            print(result.content, end="")
        print()
        if result.inline_execution:
            data = result.inline_execution.get("data") or {}
            print(f"[inline {data.get('language', 'code')}] {data.get('output', '').strip()}")
        if result.tool_calls:
            print(f"({len(result.tool_calls)} tool call(s), {result.iterations} round-trip(s))")

    async def _handle_command(self, command: str) -> bool:
        """Handle a special command. Returns True if should continue, False to exit."""
        cmd = command.lower().strip()

        if cmd in ("/exit", "/quit", "exit", "quit"):
            print("\nGoodbye!")
            return False

        if cmd == "/new":
            self.conversation_id = self.orchestrator.create_conversation()
            print(f"\nNew conversation: {self.conversation_id}")
            return True

        if cmd == "/facts":
            print(self._format_facts())
            return True

        if cmd == "/help":
            print(BANNER)
            return True

        print(f"Unknown command: {command}")
        return True

    async def run(self) -> None:
        """Run the interactive CLI."""
        print(BANNER)
        print(f"Conversation: {self.conversation_id}\n")

        while True:
            try:
                user_input = input("you> ").strip()
            except (KeyboardInterrupt, EOFError):
                print("\nGoodbye!")
                break

            if not user_input:
                continue
            if user_input.startswith("/") or user_input.lower() in ("exit", "quit"):
                if not await self._handle_command(user_input):
                    break
                continue

            try:
                await self._process_message(user_input)
            except KeyboardInterrupt:
                self.orchestrator.abort(self.conversation_id)
                print("\nInterrupted")


async def run_cli(settings: Settings | None = None) -> None:
    """Wire up all components from settings and run the REPL."""
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    if not settings.api_key:
        print("Error: GROQ_API_KEY environment variable not set")
        print("Please set it in your .env file or environment")
        return

    llm = LLMClient(model=settings.model, api_key=settings.api_key)
    windows = InMemoryWindowManager()
    sandbox = _build_sandbox(settings)

    embedder = EmbeddingService(settings.embedding_model, settings.embedding_dim)
    store = MemoryStore(settings.memory_db_path, embedder=embedder)
    extractor = FactExtractor(llm, store, model=settings.extraction_model)
    memory = MemoryManager(store, extractor=extractor, embedder=embedder)
    await memory.initialize()

    registry = build_default_registry(windows, sandbox=sandbox, memory=memory)
    orchestrator = ConversationOrchestrator(
        registry,
        llm,
        window_manager=windows,
        memory=memory,
        config=OrchestratorConfig.from_settings(settings),
        conversation_logger=get_conversation_logger(settings.log_dir),
    )

    try:
        await CLI(orchestrator, memory).run()
    finally:
        await memory.close()
