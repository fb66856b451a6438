"""Shared fixtures: a deterministic embedder and temporary stores."""

import hashlib
import re
from pathlib import Path

import numpy as np
import pytest

from deskmind.conversation_logger import ConversationLogger
from deskmind.memory import EmbeddingService, MemoryStore

DIM = 384


class HashingModel:
    """Bag-of-words hashing stand-in for a sentence-transformers model.

    Identical texts embed identically and texts sharing most words land
    close together, which is all the store and extractor tests rely on.
    """

    def encode(self, text, convert_to_numpy=True, normalize_embeddings=True):
        vector = np.zeros(DIM, dtype=np.float32)
        for token in re.findall(r"\w+", text.lower()):
            index = int(hashlib.md5(token.encode()).hexdigest(), 16) % DIM
            vector[index] += 1.0
        norm = np.linalg.norm(vector)
        if normalize_embeddings and norm:
            vector = vector / norm
        return vector


@pytest.fixture
def embedder() -> EmbeddingService:
    return EmbeddingService(dimension=DIM, model=HashingModel())


@pytest.fixture
def store(tmp_path: Path, embedder: EmbeddingService) -> MemoryStore:
    """MemoryStore on a temporary database, vector extension loaded if possible."""
    store = MemoryStore(tmp_path / "memory.db", embedder=embedder)
    store.init_db()
    yield store
    store.close()


@pytest.fixture
def vec_store(store: MemoryStore) -> MemoryStore:
    """Like ``store`` but skips the test when sqlite-vec cannot be loaded."""
    if not store.vector_enabled:
        pytest.skip("sqlite-vec extension not loadable")
    return store


@pytest.fixture
def conversation_logger(tmp_path: Path) -> ConversationLogger:
    return ConversationLogger(tmp_path / "logs")
