"""Runtime settings loaded from environment variables.

The entry point loads a ``.env`` file (if any) before ``Settings.from_env``
is called, so every value here can come from either source.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "llama-3.3-70b-versatile"
DEFAULT_EMBEDDING_MODEL = "sentence-transformers/all-MiniLM-L6-v2"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}={raw!r}, using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid number for {name}={raw!r}, using {default}")
        return default


@dataclass
class Settings:
    """Application settings.

    Attributes:
        api_key: Groq API key, None when chat is not configured.
        model: Model used for conversation turns.
        extraction_model: Model used for fact extraction (defaults to ``model``).
        temperature: Sampling temperature for conversation turns.
        max_tokens: Completion token cap per LLM call.
        max_iterations: Cap on LLM round-trips within one turn.
        home_dir: Base data directory.
        memory_db_path: SQLite file for conversations, messages and facts.
        embedding_model: sentence-transformers model name.
        embedding_dim: Vector dimension; must match the model.
        log_dir: Directory for conversation JSONL logs.
        log_level: Level name for the root logger.
        sandbox_image: Docker image used for code execution.
        sandbox_timeout: Seconds before a code execution is abandoned.
        sandbox_memory: Docker memory limit for the sandbox container.
    """

    api_key: str | None = None
    model: str = DEFAULT_MODEL
    extraction_model: str | None = None
    temperature: float = 0.2
    max_tokens: int = 8192
    max_iterations: int = 25
    home_dir: Path | None = None
    memory_db_path: Path | None = None
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    embedding_dim: int = 384
    log_dir: Path | None = None
    log_level: str = "WARNING"
    sandbox_image: str = "python:3.12-slim"
    sandbox_timeout: int = 30
    sandbox_memory: str = "512m"

    def __post_init__(self) -> None:
        if self.home_dir is None:
            self.home_dir = Path.home() / ".deskmind"
        if self.memory_db_path is None:
            self.memory_db_path = self.home_dir / "memory" / "user_memory.db"
        if self.log_dir is None:
            self.log_dir = self.home_dir / "logs"
        if self.extraction_model is None:
            self.extraction_model = self.model
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if self.embedding_dim < 1:
            raise ValueError("embedding_dim must be at least 1")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ``DESKMIND_*`` and ``GROQ_API_KEY`` variables."""
        home = os.getenv("DESKMIND_HOME")
        db_path = os.getenv("DESKMIND_MEMORY_DB")
        log_dir = os.getenv("DESKMIND_LOG_DIR")
        return cls(
            api_key=os.getenv("GROQ_API_KEY") or None,
            model=os.getenv("DESKMIND_MODEL", DEFAULT_MODEL),
            extraction_model=os.getenv("DESKMIND_EXTRACTION_MODEL") or None,
            temperature=_env_float("DESKMIND_TEMPERATURE", 0.2),
            max_tokens=_env_int("DESKMIND_MAX_TOKENS", 8192),
            max_iterations=max(1, _env_int("DESKMIND_MAX_ITERATIONS", 25)),
            home_dir=Path(home).expanduser() if home else None,
            memory_db_path=Path(db_path).expanduser() if db_path else None,
            embedding_model=os.getenv("DESKMIND_EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL),
            embedding_dim=max(1, _env_int("DESKMIND_EMBEDDING_DIM", 384)),
            log_dir=Path(log_dir).expanduser() if log_dir else None,
            log_level=os.getenv("DESKMIND_LOG_LEVEL", "WARNING").upper(),
            sandbox_image=os.getenv("DESKMIND_SANDBOX_IMAGE", "python:3.12-slim"),
            sandbox_timeout=_env_int("DESKMIND_SANDBOX_TIMEOUT", 30),
            sandbox_memory=os.getenv("DESKMIND_SANDBOX_MEMORY", "512m"),
        )
