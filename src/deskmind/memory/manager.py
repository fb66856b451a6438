"""Memory service: message recording, context retrieval and extraction scheduling."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from ..errors import MemoryUnavailableError
from .embedding import EmbeddingService
from .extractor import FactExtractor
from .models import Fact, FactCategory, MemoryContextEntry, Message, ScoredFact
from .store import MemoryStore

logger = logging.getLogger(__name__)

CONTEXT_USER_MESSAGES = 3
CONTEXT_SEARCH_LIMIT = 8
CONTEXT_MAX_DISTANCE = 0.7
CONTEXT_TOP_K = 5
RECENCY_WINDOW_DAYS = 30
RECENCY_FLOOR = 0.5

EXTRACTION_EVERY = 3
EXTRACTION_WINDOW = 6


def should_extract(message_count: int) -> bool:
    """Extraction runs on every third message, starting at the third."""
    return message_count > 2 and message_count % EXTRACTION_EVERY == 0


def recency_multiplier(updated_at: str | None, now: datetime | None = None) -> float:
    """Linear decay over 30 days with a floor of 0.5."""
    if not updated_at:
        return RECENCY_FLOOR
    try:
        updated = datetime.fromisoformat(updated_at)
    except ValueError:
        return RECENCY_FLOOR
    if updated.tzinfo is None:
        updated = updated.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    age_days = (now - updated).total_seconds() / 86400
    return max(RECENCY_FLOOR, 1 - age_days / RECENCY_WINDOW_DAYS)


def rank_facts(hits: list[ScoredFact], now: datetime | None = None) -> list[MemoryContextEntry]:
    """Filter hits by distance and order them by relevance, best first."""
    entries = [
        MemoryContextEntry(
            fact_content=hit.fact.content,
            category=hit.fact.category.value,
            confidence=hit.fact.confidence,
            relevance_score=(1 - hit.distance)
            * recency_multiplier(hit.fact.updated_at, now)
            * hit.fact.confidence,
        )
        for hit in hits
        if hit.distance < CONTEXT_MAX_DISTANCE
    ]
    entries.sort(key=lambda e: e.relevance_score, reverse=True)
    return entries[:CONTEXT_TOP_K]


def format_memory_context(entries: list[MemoryContextEntry]) -> str | None:
    if not entries:
        return None
    lines = [
        "USER MEMORY CONTEXT:",
        "The following information about the user may be relevant to this conversation:",
        "",
    ]
    lines.extend(
        f"{index}. {entry.fact_content} ({entry.category}, confidence: {entry.confidence:.1f})"
        for index, entry in enumerate(entries, start=1)
    )
    lines.append("")
    lines.append(
        "Use this information appropriately to provide more personalized and contextual responses."
    )
    return "\n".join(lines)


class MemoryManager:
    """Coordinates the store, the embedder and the fact extractor.

    Nothing here raises into a conversation turn: store failures are logged
    and turn into empty results.
    """

    def __init__(
        self,
        store: MemoryStore,
        extractor: FactExtractor | None = None,
        embedder: EmbeddingService | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            store: The MemoryStore for persistence.
            extractor: Optional FactExtractor for automatic extraction.
            embedder: Embedding service to warm up; defaults to the store's.
        """
        self.store = store
        self.extractor = extractor
        self.embedder = embedder or store.embedder
        self.available = False
        self._workers: dict[str, asyncio.Task] = {}
        self._pending: set[str] = set()

    async def initialize(self) -> None:
        """Open the database and load the embedding model, degrading on failure."""
        try:
            self.store.init_db()
            self.available = True
        except MemoryUnavailableError as e:
            logger.error(f"Memory disabled: {e}")
            self.available = False
            return

        if self.embedder is not None:
            try:
                await self.embedder.initialize()
            except Exception as e:
                logger.warning(f"Embedding model failed to load, facts disabled: {e}")

        if not self.store.facts_available:
            logger.warning("Running without fact memory")

    @property
    def facts_available(self) -> bool:
        return self.available and self.store.facts_available

    # Conversations

    async def add_message_to_conversation(
        self, conversation_id: str, role: str, content: str
    ) -> Message | None:
        """Store a message and schedule extraction when the cadence says so."""
        if not self.available:
            return None
        try:
            message = self.store.add_message(conversation_id, role, content)
            conversation = self.store.get_conversation(conversation_id)
            if conversation is not None and conversation.message_count == 1 and role == "user":
                self.store.update_conversation(conversation_id, title=_title_from(content))
        except Exception as e:
            logger.warning(f"Failed to store message for {conversation_id}: {e}")
            return None

        if conversation is not None and should_extract(conversation.message_count):
            self._schedule_extraction(conversation_id)
        return message

    def get_messages_for_conversation(self, conversation_id: str) -> list[Message]:
        if not self.available:
            return []
        try:
            return self.store.get_messages(conversation_id)
        except Exception as e:
            logger.warning(f"Failed to load messages for {conversation_id}: {e}")
            return []

    # Context

    async def get_memory_context_entries(self, recent_user_messages: list[str]) -> list[MemoryContextEntry]:
        query = " ".join(m for m in recent_user_messages[-CONTEXT_USER_MESSAGES:] if m)
        if not query.strip() or not self.facts_available:
            return []
        hits = await self.search_facts(query, CONTEXT_SEARCH_LIMIT)
        return rank_facts(hits)

    async def build_memory_context(self, recent_user_messages: list[str]) -> str | None:
        """Render the most relevant facts for the last user messages.

        Returns None when nothing clears the distance threshold or memory is
        unavailable.
        """
        try:
            entries = await self.get_memory_context_entries(recent_user_messages)
        except Exception as e:
            logger.warning(f"Error building memory context: {e}")
            return None
        return format_memory_context(entries)

    # Facts

    async def search_facts(self, query: str, limit: int = CONTEXT_SEARCH_LIMIT) -> list[ScoredFact]:
        if not self.facts_available:
            return []
        try:
            return await self.store.search(query, limit)
        except Exception as e:
            logger.warning(f"Fact search failed: {e}")
            return []

    async def add_fact(
        self,
        content: str,
        category: FactCategory | str = FactCategory.PERSONAL,
        source_conversation_id: str | None = None,
    ) -> Fact | None:
        if not self.facts_available:
            return None
        return await self.store.add_fact(
            content, category, source_conversation_id=source_conversation_id
        )

    async def update_fact(self, fact_id: int, **changes) -> Fact | None:
        if not self.facts_available:
            return None
        return await self.store.update_fact(fact_id, **changes)

    def delete_fact(self, fact_id: int) -> bool:
        if not self.available:
            return False
        return self.store.delete_fact(fact_id)

    def list_facts(self, category: FactCategory | str | None = None) -> list[Fact]:
        if not self.available:
            return []
        return self.store.list_facts(category)

    # Extraction scheduling

    def maybe_extract_facts(self, conversation_id: str) -> bool:
        """Schedule extraction if the conversation's message count is on the cadence."""
        if not self.available or self.extractor is None:
            return False
        conversation = self.store.get_conversation(conversation_id)
        if conversation is None or not should_extract(conversation.message_count):
            return False
        self._schedule_extraction(conversation_id)
        return True

    def _schedule_extraction(self, conversation_id: str) -> None:
        if self.extractor is None:
            return
        worker = self._workers.get(conversation_id)
        if worker is not None and not worker.done():
            # coalesce into one follow-up run
            self._pending.add(conversation_id)
            return
        self._workers[conversation_id] = asyncio.create_task(
            self._extraction_worker(conversation_id),
            name=f"extract-{conversation_id}",
        )

    async def _extraction_worker(self, conversation_id: str) -> None:
        try:
            while True:
                self._pending.discard(conversation_id)
                try:
                    messages = self.store.get_messages(conversation_id, limit=EXTRACTION_WINDOW)
                    await self.extractor.extract_facts(messages, conversation_id)
                except Exception as e:
                    logger.warning(f"Extraction run for {conversation_id} failed: {e}")
                if conversation_id not in self._pending:
                    break
        finally:
            self._workers.pop(conversation_id, None)

    async def wait_idle(self) -> None:
        """Wait until no extraction work is queued or running."""
        while self._workers:
            await asyncio.gather(*list(self._workers.values()), return_exceptions=True)

    async def close(self) -> None:
        await self.wait_idle()
        self.store.close()
        self.available = False


def _title_from(content: str) -> str:
    text = " ".join(content.split())
    return text[:50] + ("..." if len(text) > 50 else "") or "New Conversation"
