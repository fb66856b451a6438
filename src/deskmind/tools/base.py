"""Base tool interface, parameter schema and result envelope."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

JSON_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "object": (dict,),
    "array": (list, tuple),
}


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ToolParameter:
    """One parameter of a tool.

    This is the single definition used both to validate incoming arguments
    and to render the JSON schema sent to the model.
    """

    name: str
    type: str
    description: str
    required: bool = False
    enum: tuple[str, ...] | None = None
    items: str | None = None
    # the tool coerces this value itself, so dispatch skips the type check
    sanitized: bool = False

    def __post_init__(self) -> None:
        if self.type not in JSON_TYPES:
            raise ValueError(f"Unsupported parameter type '{self.type}' for '{self.name}'")

    def json_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": self.type, "description": self.description}
        if self.enum:
            schema["enum"] = list(self.enum)
        if self.type == "array":
            schema["items"] = {"type": self.items or "string"}
        return schema

    def accepts(self, value: Any) -> bool:
        if value is None:
            return not self.required
        if self.sanitized:
            return True
        # bool is a subclass of int; keep them apart
        if isinstance(value, bool) and self.type in ("integer", "number"):
            return False
        return isinstance(value, JSON_TYPES[self.type])


@dataclass
class ToolResult:
    """Uniform envelope for every tool execution."""

    success: bool
    data: Any = None
    error: str | None = None
    timestamp: str = field(default_factory=utc_timestamp)
    window_id: str | None = None

    @classmethod
    def ok(cls, data: Any, window_id: str | None = None) -> "ToolResult":
        return cls(success=True, data=data, window_id=window_id)

    @classmethod
    def fail(cls, error: str, window_id: str | None = None) -> "ToolResult":
        return cls(success=False, error=error, window_id=window_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "data": self.data,
            "error": self.error,
            "timestamp": self.timestamp,
            "windowId": self.window_id,
        }


class Tool(ABC):
    """Base interface for all tools.

    Subclasses may provide ``name``, ``description`` and ``parameters`` as
    plain class attributes.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique tool name."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Tool description for LLM."""
        ...

    @property
    @abstractmethod
    def parameters(self) -> tuple[ToolParameter, ...]:
        """Declared parameters."""
        ...

    @abstractmethod
    async def execute(self, args: dict[str, Any], window_id: str | None = None) -> Any:
        """Run the tool and return JSON-friendly data; raise on failure."""
        ...

    def json_schema(self) -> dict[str, Any]:
        """Render the parameters as a JSON schema object."""
        return {
            "type": "object",
            "properties": {p.name: p.json_schema() for p in self.parameters},
            "required": [p.name for p in self.parameters if p.required],
        }

    def get_schema(self) -> dict[str, Any]:
        """Get tool schema for LLM function calling."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.json_schema(),
            },
        }

    def validate_args(self, args: dict[str, Any]) -> tuple[bool, str | None]:
        """Validate arguments against the parameters. Returns (valid, error_message)."""
        for param in self.parameters:
            if param.required and args.get(param.name) is None:
                return False, f"Missing required argument: {param.name}"

        for param in self.parameters:
            if param.name in args and not param.accepts(args[param.name]):
                return False, f"Argument '{param.name}' must be of type {param.type}"

        return True, None
