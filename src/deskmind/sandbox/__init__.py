"""Sandboxed code execution."""

from .manager import (
    SUPPORTED_LANGUAGES,
    CodeExecutionResult,
    CodeExecutionSandbox,
    DockerCodeSandbox,
    SandboxConfig,
    normalize_language,
)

__all__ = [
    "CodeExecutionResult",
    "CodeExecutionSandbox",
    "DockerCodeSandbox",
    "SUPPORTED_LANGUAGES",
    "SandboxConfig",
    "normalize_language",
]
