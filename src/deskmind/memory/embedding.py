"""Text embeddings with sentence-transformers."""

import asyncio
import logging
from typing import Any

import numpy as np

from ..errors import EmbeddingNotReadyError

logger = logging.getLogger(__name__)


class EmbeddingService:
    """Turns text into fixed-length, L2-normalized vectors.

    The model is loaded once by ``initialize()`` in a worker thread; encoding
    also runs off the event loop.
    """

    def __init__(
        self,
        model_name: str = "sentence-transformers/all-MiniLM-L6-v2",
        dimension: int = 384,
        model: Any = None,
    ) -> None:
        """Initialize the service.

        Args:
            model_name: sentence-transformers model to load.
            dimension: Expected vector length; checked against the model.
            model: Preloaded model exposing ``encode`` (skips loading).
        """
        self.model_name = model_name
        self._dimension = dimension
        self._model = model
        self._lock = asyncio.Lock()

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def is_ready(self) -> bool:
        return self._model is not None

    def _load(self) -> Any:
        from sentence_transformers import SentenceTransformer

        logger.info(f"Loading embedding model {self.model_name}")
        model = SentenceTransformer(self.model_name)
        model_dim = model.get_sentence_embedding_dimension()
        if model_dim is not None and model_dim != self._dimension:
            raise ValueError(
                f"Embedding model {self.model_name} produces {model_dim} dimensions, "
                f"expected {self._dimension}"
            )
        return model

    async def initialize(self) -> None:
        """Load the model if it is not loaded yet. Safe to call repeatedly."""
        if self._model is not None:
            return
        async with self._lock:
            if self._model is None:
                self._model = await asyncio.to_thread(self._load)

    def _encode(self, text: str) -> list[float]:
        vector = np.asarray(
            self._model.encode(text, convert_to_numpy=True, normalize_embeddings=True),
            dtype=np.float32,
        ).reshape(-1)
        if vector.shape[0] != self._dimension:
            raise ValueError(
                f"Embedding has {vector.shape[0]} dimensions, expected {self._dimension}"
            )
        norm = float(np.linalg.norm(vector))
        if norm > 0:
            vector = vector / norm
        return vector.tolist()

    async def embed(self, text: str) -> list[float]:
        """Embed one text.

        Raises:
            EmbeddingNotReadyError: If ``initialize()`` has not completed.
        """
        if self._model is None:
            raise EmbeddingNotReadyError("Embedding model is not initialized")
        return await asyncio.to_thread(self._encode, text)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed(text) for text in texts]
