"""Exception types shared across the package."""


class DeskmindError(Exception):
    """Base class for all package errors."""


class NotConfiguredError(DeskmindError):
    """Raised when a chat is attempted without a configured LLM client."""


class LLMTransportError(DeskmindError):
    """The LLM provider failed or returned an unusable response."""


class TurnError(DeskmindError):
    """A conversation turn could not be completed."""


class EmptyResponseError(TurnError):
    """The model returned no content, no reasoning and no tool calls."""

    def __init__(self, message: str = "AI returned an empty response") -> None:
        super().__init__(message)


class TurnCancelledError(TurnError):
    """The turn was cancelled through its cancellation token."""

    def __init__(self, message: str = "Request aborted") -> None:
        super().__init__(message)


class MaxIterationsExceededError(TurnError):
    """The tool loop ran past the configured iteration cap."""

    def __init__(self, max_iterations: int) -> None:
        self.max_iterations = max_iterations
        super().__init__(f"Max tool calls exceeded ({max_iterations} iterations)")


class ToolArgumentsError(DeskmindError):
    """Tool arguments could not be recovered into a mapping."""


class MemoryUnavailableError(DeskmindError):
    """The memory database could not be opened."""


class EmbeddingNotReadyError(DeskmindError):
    """An embedding was requested before the model was initialized."""
