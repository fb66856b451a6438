"""Long-term memory: conversations, messages and semantically searchable facts."""

from .embedding import EmbeddingService
from .extractor import FactExtractor
from .manager import MemoryManager, format_memory_context, rank_facts, should_extract
from .models import (
    Conversation,
    Fact,
    FactCategory,
    MemoryContextEntry,
    Message,
    ScoredFact,
)
from .store import MemoryStore

__all__ = [
    "Conversation",
    "EmbeddingService",
    "Fact",
    "FactCategory",
    "FactExtractor",
    "MemoryContextEntry",
    "MemoryManager",
    "MemoryStore",
    "Message",
    "ScoredFact",
    "format_memory_context",
    "rank_facts",
    "should_extract",
]
