"""Data models for the memory system."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

MAX_CONFIDENCE = 2.0
CONFIDENCE_STEP = 0.1


class FactCategory(str, Enum):
    """Fixed taxonomy for facts about the user."""

    PERSONAL = "personal"
    PREFERENCES = "preferences"
    PROFESSIONAL = "professional"
    INTERESTS = "interests"

    @classmethod
    def parse(cls, value: Any) -> "FactCategory | None":
        """Return the category for ``value``, or None if it is not one."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


def reinforced_confidence(confidence: float) -> float:
    """Confidence after one reinforcement, capped at ``MAX_CONFIDENCE``."""
    return min(round(confidence + CONFIDENCE_STEP, 6), MAX_CONFIDENCE)


@dataclass
class Fact:
    """A statement about the user backed by one vector row.

    Attributes:
        content: The fact text.
        category: One of the FactCategory values.
        confidence: 1.0 when created, raised by reinforcement up to 2.0.
        id: Database ID, None for new facts.
        source_conversation_id: Conversation the fact was learned in.
        project_id: Optional project scope.
        vector_ref: Rowid of the paired vector row.
        created_at: ISO timestamp when created.
        updated_at: ISO timestamp when last updated.
    """

    content: str
    category: FactCategory
    confidence: float = 1.0
    id: int | None = None
    source_conversation_id: str | None = None
    project_id: str | None = None
    vector_ref: int | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "category": self.category.value,
            "confidence": self.confidence,
            "sourceConversationId": self.source_conversation_id,
            "projectId": self.project_id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class ScoredFact:
    """A search hit: the fact and its L2 distance to the query."""

    fact: Fact
    distance: float

    def to_dict(self) -> dict[str, Any]:
        return {**self.fact.to_dict(), "distance": self.distance}


@dataclass
class Conversation:
    id: str
    title: str
    project_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    message_count: int = 0


@dataclass
class Message:
    """A stored conversation message. Only ``processed_for_facts`` ever changes."""

    id: int
    conversation_id: str
    role: str
    content: str
    timestamp: str
    processed_for_facts: bool = False

    def to_chat(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class MemoryContextEntry:
    """A fact ranked for the current query. Never persisted."""

    fact_content: str
    category: str
    confidence: float
    relevance_score: float
