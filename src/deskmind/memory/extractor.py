"""Fact extraction from conversations using the LLM."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .models import Fact, FactCategory, Message
from .store import MemoryStore

if TYPE_CHECKING:
    from ..llm import LLMClient

logger = logging.getLogger(__name__)

DUPLICATE_DISTANCE = 0.3
DUPLICATE_SEARCH_LIMIT = 3

EXTRACTION_PROMPT = """Extract key factual information about the user from this conversation.
Return ONLY a JSON array of facts with categories:
- personal (relationships, family, pets, location)
- preferences (technologies, approaches, styles)
- professional (job, skills, projects)
- interests (hobbies, topics)

Format: [{"content": "fact text", "category": "personal|preferences|professional|interests"}]
If there is nothing worth remembering, return [].

Context:
"""

CATEGORY_KEYWORDS: tuple[tuple[FactCategory, tuple[str, ...]], ...] = (
    (FactCategory.PROFESSIONAL, ("work", "job", "skill")),
    (FactCategory.PREFERENCES, ("like", "prefer", "use")),
    (FactCategory.PERSONAL, ("family", "pet", "live")),
)

FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
LIST_MARKER_RE = re.compile(r"^\s*(?:[-•*]|\d+[.)])\s*")


@dataclass(frozen=True)
class CandidateFact:
    content: str
    category: FactCategory


def categorize_line(line: str) -> FactCategory:
    """Guess a category from keywords, defaulting to interests."""
    lowered = line.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return FactCategory.INTERESTS


def extract_from_lines(text: str) -> list[CandidateFact]:
    """Line-based fallback for responses that are not valid JSON."""
    candidates = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not any(delimiter in line for delimiter in (":", "-", "•")):
            continue
        if not 10 <= len(line) <= 200:
            continue
        content = LIST_MARKER_RE.sub("", line).strip()
        if content:
            candidates.append(CandidateFact(content, categorize_line(content)))
    return candidates


def _strip_fences(text: str) -> str:
    match = FENCE_RE.search(text)
    return match.group(1).strip() if match else text.strip()


def parse_extraction_response(response: str) -> list[CandidateFact]:
    """Parse the model's answer into candidate facts.

    Items without content or with a category outside the taxonomy are
    dropped. Unparseable responses go through the line heuristic.
    """
    text = _strip_fences(response)
    start, end = text.find("["), text.rfind("]")
    if start != -1 and end > start:
        text = text[start:end + 1]

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"Extraction response is not JSON ({e}), using line heuristics")
        return extract_from_lines(response)

    if not isinstance(data, list):
        logger.warning("Extraction response is not a JSON array, using line heuristics")
        return extract_from_lines(response)

    candidates = []
    for item in data:
        if not isinstance(item, dict):
            continue
        content = item.get("content")
        category = FactCategory.parse(item.get("category"))
        if not isinstance(content, str) or not content.strip() or category is None:
            logger.debug(f"Skipping invalid fact item: {item}")
            continue
        candidates.append(CandidateFact(content.strip(), category))
    return candidates


def format_transcript(messages: list[Message]) -> str:
    return "\n".join(f"{m.role}: {m.content}" for m in messages)


class FactExtractor:
    """Extracts facts from conversation messages and stores them with dedup."""

    def __init__(
        self,
        llm: LLMClient,
        store: MemoryStore,
        model: str | None = None,
    ) -> None:
        """Initialize the extractor.

        Args:
            llm: Client used for the extraction prompt.
            store: Store the facts are written to.
            model: Model for extraction; the client's default if None.
        """
        self.llm = llm
        self.store = store
        self.model = model

    async def _store_candidate(self, candidate: CandidateFact, conversation_id: str) -> Fact | None:
        similar = await self.store.search(candidate.content, DUPLICATE_SEARCH_LIMIT)
        if similar and similar[0].distance < DUPLICATE_DISTANCE:
            logger.debug(
                f"Reinforcing fact {similar[0].fact.id} "
                f"(distance {similar[0].distance:.3f}): {candidate.content}"
            )
            return await self.store.reinforce_fact(similar[0].fact.id)
        return await self.store.add_fact(
            candidate.content,
            candidate.category,
            confidence=1.0,
            source_conversation_id=conversation_id,
        )

    async def extract_facts(self, messages: list[Message], conversation_id: str) -> list[Fact]:
        """Extract, deduplicate and store facts from ``messages``.

        Never raises; failures are logged and the batch is skipped.

        Returns:
            Facts that were inserted or reinforced.
        """
        if not messages:
            return []

        try:
            response = await self.llm.complete(
                EXTRACTION_PROMPT + format_transcript(messages), model=self.model
            )
        except Exception as e:
            logger.warning(f"Fact extraction failed for {conversation_id}: {e}")
            return []

        if not self.store.facts_available:
            logger.warning("Memory store unavailable, skipping fact extraction")
            return []

        stored: list[Fact] = []
        for candidate in parse_extraction_response(response):
            try:
                fact = await self._store_candidate(candidate, conversation_id)
            except Exception as e:
                logger.warning(f"Failed to process fact {candidate.content!r}: {e}")
                continue
            if fact is not None:
                stored.append(fact)

        try:
            self.store.mark_messages_processed([m.id for m in messages])
        except Exception as e:
            logger.warning(f"Failed to mark messages as processed: {e}")

        logger.info(f"Extracted {len(stored)} facts from {conversation_id}")
        return stored
