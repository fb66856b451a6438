"""Tests for MemoryStore."""

import sqlite3
from pathlib import Path

import pytest

from deskmind.errors import MemoryUnavailableError
from deskmind.memory import EmbeddingService, FactCategory, MemoryStore


class TestMemoryStoreInit:
    """Tests for MemoryStore initialization."""

    def test_creates_db_directory(self, tmp_path: Path):
        """Store creates parent directories if they don't exist."""
        nested_path = tmp_path / "nested" / "dir" / "memory.db"
        store = MemoryStore(nested_path)
        store.init_db()
        assert nested_path.exists()
        store.close()

    @pytest.mark.parametrize(
        "table", ["conversations", "conversation_messages", "facts", "user_profile"]
    )
    def test_creates_tables(self, store: MemoryStore, table: str):
        """init_db creates every relational table."""
        conn = store._get_connection()
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,)
        )
        assert cursor.fetchone() is not None

    def test_init_db_idempotent(self, store: MemoryStore):
        """init_db can be called multiple times."""
        store.init_db()
        store.init_db()

    def test_unopenable_path(self, tmp_path: Path):
        """A path that cannot be created raises MemoryUnavailableError."""
        blocker = tmp_path / "file"
        blocker.write_text("x")
        store = MemoryStore(blocker / "memory.db")
        with pytest.raises(MemoryUnavailableError):
            store.init_db()

    def test_in_memory_database(self, embedder: EmbeddingService):
        """``:memory:`` databases skip WAL and still work."""
        store = MemoryStore(":memory:", embedder=embedder)
        store.init_db()
        store.add_message("c1", "user", "hello")
        assert len(store.get_messages("c1")) == 1
        store.close()


class TestConversations:
    def test_create_and_get(self, store: MemoryStore):
        conversation = store.create_conversation("c1", title="Planning")
        assert conversation.id == "c1"
        assert conversation.title == "Planning"
        assert conversation.message_count == 0
        assert store.get_conversation("missing") is None

    def test_create_is_idempotent(self, store: MemoryStore):
        """Creating an existing conversation keeps the original row."""
        store.create_conversation("c1", title="First")
        again = store.create_conversation("c1", title="Second")
        assert again.title == "First"

    def test_update_title(self, store: MemoryStore):
        store.create_conversation("c1")
        updated = store.update_conversation("c1", title="Renamed")
        assert updated.title == "Renamed"

    def test_list_most_recent_first(self, store: MemoryStore):
        store.create_conversation("old")
        store.create_conversation("new")
        store.add_message("old", "user", "bump")
        assert [c.id for c in store.list_conversations()][0] == "old"

    def test_delete_removes_messages(self, store: MemoryStore):
        store.add_message("c1", "user", "hello")
        assert store.delete_conversation("c1") is True
        assert store.get_messages("c1") == []
        assert store.delete_conversation("c1") is False


class TestMessages:
    def test_add_message_creates_conversation_and_counts(self, store: MemoryStore):
        """add_message upserts the conversation and bumps message_count."""
        store.add_message("c1", "user", "one")
        store.add_message("c1", "assistant", "two")

        conversation = store.get_conversation("c1")
        assert conversation.message_count == 2
        assert conversation.title == "New Conversation"

    def test_messages_in_insertion_order(self, store: MemoryStore):
        for i in range(5):
            store.add_message("c1", "user", f"m{i}")
        assert [m.content for m in store.get_messages("c1")] == ["m0", "m1", "m2", "m3", "m4"]

    def test_limit_keeps_most_recent(self, store: MemoryStore):
        for i in range(5):
            store.add_message("c1", "user", f"m{i}")
        assert [m.content for m in store.get_messages("c1", limit=2)] == ["m3", "m4"]

    def test_invalid_role(self, store: MemoryStore):
        with pytest.raises(ValueError, match="Invalid message role"):
            store.add_message("c1", "narrator", "x")

    def test_mark_processed(self, store: MemoryStore):
        first = store.add_message("c1", "user", "a")
        store.add_message("c1", "user", "b")

        assert store.mark_messages_processed([first.id]) == 1
        flags = [m.processed_for_facts for m in store.get_messages("c1")]
        assert flags == [True, False]

    def test_mark_processed_empty(self, store: MemoryStore):
        assert store.mark_messages_processed([]) == 0


class TestFacts:
    """Fact writes keep facts and vectors paired one to one."""

    @pytest.mark.asyncio
    async def test_add_fact(self, vec_store: MemoryStore):
        fact = await vec_store.add_fact(
            "User works at Acme", "professional", source_conversation_id="c1"
        )
        assert fact.id is not None
        assert fact.category is FactCategory.PROFESSIONAL
        assert fact.confidence == 1.0
        assert fact.source_conversation_id == "c1"
        assert vec_store.count_facts() == vec_store.count_vectors() == 1

    @pytest.mark.asyncio
    async def test_invalid_category(self, vec_store: MemoryStore):
        with pytest.raises(ValueError, match="Invalid fact category"):
            await vec_store.add_fact("x", "hobbies")

    @pytest.mark.asyncio
    async def test_failed_write_leaves_no_orphan_vector(self, vec_store: MemoryStore):
        """A fact row that violates a constraint rolls back its vector row too."""
        result = await vec_store.add_fact("User likes tea", "preferences", confidence=3.0)

        assert result is None
        assert vec_store.count_facts() == 0
        assert vec_store.count_vectors() == 0

    @pytest.mark.asyncio
    async def test_delete_removes_both_rows(self, vec_store: MemoryStore):
        fact = await vec_store.add_fact("User likes tea", "preferences")
        await vec_store.add_fact("User has a cat", "personal")

        assert vec_store.delete_fact(fact.id) is True
        assert vec_store.get_fact(fact.id) is None
        assert vec_store.count_facts() == vec_store.count_vectors() == 1
        assert vec_store.delete_fact(fact.id) is False

    @pytest.mark.asyncio
    async def test_search_orders_by_distance(self, vec_store: MemoryStore):
        await vec_store.add_fact("User works at Acme Corp as an engineer", "professional")
        await vec_store.add_fact("User likes green tea", "preferences")
        await vec_store.add_fact("User has a dog named Rex", "personal")

        hits = await vec_store.search("green tea", limit=3)

        assert hits[0].fact.content == "User likes green tea"
        distances = [h.distance for h in hits]
        assert distances == sorted(distances)

    @pytest.mark.asyncio
    async def test_search_limit(self, vec_store: MemoryStore):
        for i in range(4):
            await vec_store.add_fact(f"fact number {i}", "interests")
        assert len(await vec_store.search("fact", limit=2)) == 2
        assert await vec_store.search("fact", limit=0) == []

    @pytest.mark.asyncio
    async def test_update_content_reembeds(self, vec_store: MemoryStore):
        """Changing content moves the fact in vector space."""
        fact = await vec_store.add_fact("User likes green tea", "preferences")
        await vec_store.add_fact("User plays chess on weekends", "interests")

        updated = await vec_store.update_fact(fact.id, content="User enjoys hiking mountains")
        assert updated.content == "User enjoys hiking mountains"

        hits = await vec_store.search("hiking mountains", limit=1)
        assert hits[0].fact.id == fact.id
        assert vec_store.count_vectors() == 2

    @pytest.mark.asyncio
    async def test_reinforce_caps_confidence(self, vec_store: MemoryStore):
        fact = await vec_store.add_fact("User likes tea", "preferences", confidence=1.95)
        reinforced = await vec_store.reinforce_fact(fact.id)
        assert reinforced.confidence == 2.0
        again = await vec_store.reinforce_fact(fact.id)
        assert again.confidence == 2.0

    @pytest.mark.asyncio
    async def test_list_by_category(self, vec_store: MemoryStore):
        await vec_store.add_fact("User likes tea", "preferences")
        await vec_store.add_fact("User has a cat", "personal")
        assert [f.content for f in vec_store.list_facts("personal")] == ["User has a cat"]
        assert vec_store.list_facts("bogus") == []

    def test_confidence_check_constraint(self, store: MemoryStore):
        """The schema itself rejects out-of-range confidence."""
        conn = store._get_connection()
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute(
                "INSERT INTO facts (content, category, confidence, created_at, updated_at, vector_ref) "
                "VALUES ('x', 'personal', 2.5, 'now', 'now', 1)"
            )


class TestDegradedMode:
    """Without a ready embedder, fact operations are no-ops."""

    @pytest.fixture
    def degraded(self, tmp_path: Path) -> MemoryStore:
        store = MemoryStore(tmp_path / "memory.db", embedder=EmbeddingService(dimension=384))
        store.init_db()
        yield store
        store.close()

    @pytest.mark.asyncio
    async def test_fact_writes_return_none(self, degraded: MemoryStore):
        assert degraded.facts_available is False
        assert await degraded.add_fact("User likes tea", "preferences") is None
        assert await degraded.update_fact(1, content="x") is None
        assert await degraded.search("tea") == []

    def test_messages_still_work(self, degraded: MemoryStore):
        degraded.add_message("c1", "user", "hello")
        assert degraded.get_messages("c1")[0].content == "hello"


class BrokenModel:
    def encode(self, text, convert_to_numpy=True, normalize_embeddings=True):
        raise RuntimeError("embedding backend down")


class TestEmbeddingFailure:
    """An embedder that fails after startup degrades fact operations."""

    @pytest.mark.asyncio
    async def test_fact_operations_degrade(self, vec_store: MemoryStore):
        fact = await vec_store.add_fact("Likes green tea", "preferences")
        vec_store.embedder = EmbeddingService(dimension=384, model=BrokenModel())

        assert await vec_store.add_fact("Likes coffee", "preferences") is None
        assert await vec_store.search("tea", 3) == []
        assert await vec_store.update_fact(fact.id, content="Likes black tea") is None

        assert vec_store.count_facts() == 1
        assert vec_store.count_vectors() == 1
        assert vec_store.get_fact(fact.id).content == "Likes green tea"

    @pytest.mark.asyncio
    async def test_non_content_updates_still_apply(self, vec_store: MemoryStore):
        fact = await vec_store.add_fact("Likes green tea", "preferences")
        vec_store.embedder = EmbeddingService(dimension=384, model=BrokenModel())

        updated = await vec_store.update_fact(fact.id, confidence=1.5)

        assert updated.confidence == 1.5


class TestProfile:
    def test_set_and_get(self, store: MemoryStore):
        store.set_profile_value("name", "Ana")
        store.set_profile_value("name", "Ana Maria")
        assert store.get_profile() == {"name": "Ana Maria"}
