"""Tests for settings."""

from pathlib import Path

import pytest

from deskmind.agent import OrchestratorConfig
from deskmind.config import DEFAULT_MODEL, Settings

ENV_VARS = [
    "GROQ_API_KEY",
    "DESKMIND_HOME",
    "DESKMIND_MODEL",
    "DESKMIND_EXTRACTION_MODEL",
    "DESKMIND_MAX_ITERATIONS",
    "DESKMIND_TEMPERATURE",
    "DESKMIND_LOG_LEVEL",
    "DESKMIND_MEMORY_DB",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(tmp_path: Path) -> None:
    settings = Settings(home_dir=tmp_path)
    assert settings.model == DEFAULT_MODEL
    assert settings.extraction_model == DEFAULT_MODEL
    assert settings.max_iterations == 25
    assert settings.memory_db_path == tmp_path / "memory" / "user_memory.db"
    assert settings.log_dir == tmp_path / "logs"


def test_from_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("GROQ_API_KEY", "test-key")
    monkeypatch.setenv("DESKMIND_HOME", str(tmp_path))
    monkeypatch.setenv("DESKMIND_MODEL", "big-model")
    monkeypatch.setenv("DESKMIND_EXTRACTION_MODEL", "small-model")
    monkeypatch.setenv("DESKMIND_MAX_ITERATIONS", "10")
    monkeypatch.setenv("DESKMIND_LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.api_key == "test-key"
    assert settings.home_dir == tmp_path
    assert settings.model == "big-model"
    assert settings.extraction_model == "small-model"
    assert settings.max_iterations == 10
    assert settings.log_level == "DEBUG"


def test_invalid_numbers_fall_back(monkeypatch) -> None:
    monkeypatch.setenv("DESKMIND_MAX_ITERATIONS", "lots")
    monkeypatch.setenv("DESKMIND_TEMPERATURE", "warm")

    settings = Settings.from_env()

    assert settings.max_iterations == 25
    assert settings.temperature == 0.2


def test_empty_api_key_is_none(monkeypatch) -> None:
    monkeypatch.setenv("GROQ_API_KEY", "")
    assert Settings.from_env().api_key is None


def test_rejects_zero_iterations(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="max_iterations"):
        Settings(home_dir=tmp_path, max_iterations=0)


def test_orchestrator_config_from_settings(tmp_path: Path) -> None:
    settings = Settings(home_dir=tmp_path, model="m", max_iterations=7, temperature=0.5)
    config = OrchestratorConfig.from_settings(settings)
    assert config.model == "m"
    assert config.extraction_model == "m"
    assert config.max_iterations == 7
    assert config.temperature == 0.5
