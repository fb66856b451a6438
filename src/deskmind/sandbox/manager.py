"""Docker sandbox for running model-written code."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Protocol

import docker
from docker.errors import APIError, DockerException, NotFound
from docker.models.containers import Container

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = ("python", "javascript")
LANGUAGE_ALIASES = {"js": "javascript", "node": "javascript", "py": "python"}


def normalize_language(language: str) -> str:
    """Map aliases such as ``js`` to their canonical language name."""
    lowered = language.strip().lower()
    return LANGUAGE_ALIASES.get(lowered, lowered)


@dataclass
class CodeExecutionResult:
    """Outcome of a code execution."""

    success: bool
    output: str
    error: str | None = None
    execution_time: float = 0.0
    truncated: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "output": self.output,
            "error": self.error,
            "executionTime": self.execution_time,
        }


class CodeExecutionSandbox(Protocol):
    """Executes untrusted code and reports the outcome."""

    async def execute_code(
        self, language: str, code: str, timeout: int | None = None
    ) -> CodeExecutionResult: ...


@dataclass
class SandboxConfig:
    """Configuration for sandbox containers."""

    images: dict[str, str] = field(default_factory=lambda: {
        "python": "python:3.12-slim",
        "javascript": "node:20-slim",
    })
    memory_limit: str = "512m"
    cpu_limit: float = 1.0
    pids_limit: int = 128
    timeout: int = 30
    max_output_bytes: int = 100_000


class DockerCodeSandbox:
    """Runs code inside one long-lived, locked-down container per language."""

    CONTAINER_PREFIX = "deskmind-sandbox"

    def __init__(
        self,
        config: SandboxConfig | None = None,
        client: docker.DockerClient | None = None,
    ) -> None:
        self.config = config or SandboxConfig()
        self.client = client or docker.from_env()
        self._containers: dict[str, Container] = {}

    def _container_name(self, language: str) -> str:
        return f"{self.CONTAINER_PREFIX}-{language}"

    def _command(self, language: str, code: str) -> list[str]:
        if language == "python":
            return ["python", "-c", code]
        return ["node", "-e", code]

    def get_container(self, language: str) -> Container | None:
        """Get the running container for a language, or None."""
        cached = self._containers.get(language)
        if cached is not None:
            try:
                cached.reload()
                if cached.status == "running":
                    return cached
            except NotFound:
                pass
            del self._containers[language]

        try:
            container = self.client.containers.get(self._container_name(language))
        except NotFound:
            return None
        if container.status != "running":
            return None
        self._containers[language] = container
        return container

    def create_container(self, language: str) -> Container:
        """Start a fresh sandbox container for a language."""
        name = self._container_name(language)
        try:
            self.client.containers.get(name).remove(force=True)
        except NotFound:
            pass

        container = self.client.containers.run(
            self.config.images[language],
            name=name,
            command="sleep infinity",
            detach=True,
            read_only=True,
            cap_drop=["ALL"],
            security_opt=["no-new-privileges"],
            pids_limit=self.config.pids_limit,
            mem_limit=self.config.memory_limit,
            nano_cpus=int(self.config.cpu_limit * 1e9),
            network_mode="none",
            user="1000:1000",
            working_dir="/tmp",
            tmpfs={"/tmp": "size=64M,mode=1777"},
        )
        self._containers[language] = container
        logger.info(f"Started sandbox container {name}")
        return container

    def ensure_container(self, language: str) -> Container:
        container = self.get_container(language)
        if container is None:
            container = self.create_container(language)
        return container

    def _decode(self, raw: bytes | None) -> tuple[str, bool]:
        text = (raw or b"").decode("utf-8", errors="replace")
        if len(text) > self.config.max_output_bytes:
            return text[: self.config.max_output_bytes] + "\n... [truncated]", True
        return text, False

    async def execute_code(
        self, language: str, code: str, timeout: int | None = None
    ) -> CodeExecutionResult:
        """Execute code and return its output.

        Failures (unsupported language, timeout, Docker errors, non-zero
        exit) are reported in the result, never raised.
        """
        language = normalize_language(language)
        timeout = timeout or self.config.timeout
        start = time.monotonic()

        if language not in SUPPORTED_LANGUAGES:
            return CodeExecutionResult(
                success=False,
                output="",
                error=f"Unsupported language: {language}",
            )

        try:
            container = await asyncio.to_thread(self.ensure_container, language)
            exit_code, (stdout, stderr) = await asyncio.wait_for(
                asyncio.to_thread(
                    container.exec_run,
                    self._command(language, code),
                    user="1000:1000",
                    workdir="/tmp",
                    demux=True,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            return CodeExecutionResult(
                success=False,
                output="",
                error=f"Execution timed out after {timeout}s",
                execution_time=(time.monotonic() - start) * 1000,
            )
        except (APIError, DockerException) as e:
            logger.warning(f"Sandbox execution failed: {e}")
            return CodeExecutionResult(
                success=False,
                output="",
                error=f"Execution failed: {e}",
                execution_time=(time.monotonic() - start) * 1000,
            )

        output, out_truncated = self._decode(stdout)
        errors, err_truncated = self._decode(stderr)
        return CodeExecutionResult(
            success=exit_code == 0,
            output=output,
            error=errors or (None if exit_code == 0 else f"Exited with code {exit_code}"),
            execution_time=(time.monotonic() - start) * 1000,
            truncated=out_truncated or err_truncated,
        )

    def cleanup_all(self) -> int:
        """Remove all sandbox containers. Returns count of removed containers."""
        count = 0
        for container in self.client.containers.list(all=True):
            if container.name.startswith(self.CONTAINER_PREFIX):
                container.remove(force=True)
                count += 1
        self._containers.clear()
        return count
