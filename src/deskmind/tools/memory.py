"""Memory tools for explicit fact management."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..memory.models import FactCategory
from .base import Tool, ToolParameter

if TYPE_CHECKING:
    from ..memory import MemoryManager

CATEGORIES = tuple(c.value for c in FactCategory)


class MemoryTool(Tool):
    def __init__(self, memory: MemoryManager) -> None:
        self.memory = memory

    def _require_facts(self) -> None:
        if not self.memory.facts_available:
            raise RuntimeError("Memory is not available")


class RememberTool(MemoryTool):
    """Tool for saving explicit facts about the user."""

    name = "remember"
    description = (
        "Save a fact about the user for future reference. "
        "Use when the user explicitly asks to remember something."
    )
    parameters = (
        ToolParameter(
            "content", "string",
            "The fact to remember, in third person (e.g., 'works at Google')",
            required=True,
        ),
        ToolParameter("category", "string", "Category of the fact", enum=CATEGORIES),
    )

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        self._require_facts()
        content = args["content"].strip()
        if not content:
            raise ValueError("'content' must not be empty")

        raw_category = args.get("category")
        category = FactCategory.parse(raw_category) if raw_category else FactCategory.PERSONAL
        if category is None:
            raise ValueError(
                f"Invalid category '{raw_category}'. Use one of {', '.join(CATEGORIES)}"
            )

        fact = await self.memory.add_fact(content, category)
        if fact is None:
            raise RuntimeError("Fact could not be stored")
        return {"remembered": fact.to_dict()}


class ForgetTool(MemoryTool):
    """Tool for removing a fact about the user."""

    name = "forget"
    description = (
        "Remove a stored fact about the user by id. "
        "Use searchMemory first to find the id."
    )
    parameters = (ToolParameter("factId", "integer", "ID of the fact to forget", required=True),)

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        self._require_facts()
        fact_id = args["factId"]
        if not self.memory.delete_fact(fact_id):
            raise LookupError(f"No fact with id {fact_id}")
        return {"forgotten": fact_id}


class SearchMemoryTool(MemoryTool):
    name = "searchMemory"
    description = "Search stored facts about the user by meaning"
    parameters = (
        ToolParameter("query", "string", "What to look for", required=True),
        ToolParameter("limit", "integer", "Maximum number of results (default 5)"),
    )

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        self._require_facts()
        limit = args.get("limit") or 5
        hits = await self.memory.search_facts(args["query"], max(1, min(limit, 20)))
        return [hit.to_dict() for hit in hits]


MEMORY_TOOLS = (RememberTool, ForgetTool, SearchMemoryTool)
