"""Code execution tools backed by the sandbox."""

import logging
from typing import Any

from ..sandbox import SUPPORTED_LANGUAGES, CodeExecutionSandbox, normalize_language
from ..windows import WindowManager
from .base import ToolParameter
from .sanitize import sanitize_window_config
from .windows import WindowTool

logger = logging.getLogger(__name__)

LANGUAGE = ToolParameter(
    "language", "string", "Programming language", enum=SUPPORTED_LANGUAGES
)
CODE = ToolParameter("code", "string", "Source code to execute", required=True)


def _language(args: dict[str, Any]) -> str:
    language = normalize_language(args.get("language") or "python")
    if language not in SUPPORTED_LANGUAGES:
        raise ValueError(
            f"Unsupported language: {language}. Use one of {', '.join(SUPPORTED_LANGUAGES)}"
        )
    return language


class ExecuteCodeTool(WindowTool):
    name = "executeCode"
    description = (
        "Run code in a code-execution window. Use for multi-step programs or code "
        "the user wants to keep; pass windowId to rerun in an existing window."
    )
    parameters = (
        LANGUAGE,
        CODE,
        ToolParameter("title", "string", "Title for a new code window"),
        ToolParameter("windowId", "string", "Existing code-execution window to reuse"),
    )

    def __init__(self, windows: WindowManager, sandbox: CodeExecutionSandbox) -> None:
        super().__init__(windows)
        self.sandbox = sandbox

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        language = _language(args)
        target = args.get("windowId") or window_id
        if target:
            window = self._require(target)
            if window.type != "code-execution":
                raise ValueError(f"Window {target} is not a code-execution window")
        else:
            issues: list[str] = []
            config = sanitize_window_config(
                "code-execution", {"title": args.get("title") or f"{language.title()} Code"}, issues
            )
            config["metadata"] = {"language": language, "code": args["code"]}
            window = await self.windows.create_window("code-execution", config)

        result = await self.sandbox.execute_code(language, args["code"])
        if not result.success:
            logger.info(f"Code in window {window.id} failed: {result.error}")

        await self.windows.update_window(window.id, {
            "metadata": {
                **window.metadata,
                "language": language,
                "code": args["code"],
                "lastResult": result.to_dict(),
            },
        })
        return {"windowId": window.id, "language": language, **result.to_dict()}


class ExecuteInlineCodeTool(WindowTool):
    name = "executeInlineCode"
    description = (
        "Run a short snippet without opening a window, for calculations, "
        "conversions and quick computations. The output is shown inline."
    )
    parameters = (LANGUAGE, CODE)

    def __init__(self, windows: WindowManager, sandbox: CodeExecutionSandbox) -> None:
        super().__init__(windows)
        self.sandbox = sandbox

    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        language = _language(args)
        result = await self.sandbox.execute_code(language, args["code"])
        return {"language": language, "code": args["code"], **result.to_dict()}


CODE_TOOLS = (ExecuteCodeTool, ExecuteInlineCodeTool)
