"""Cooperative cancellation for conversation turns."""

from ..errors import TurnCancelledError


class CancellationToken:
    """Flag checked by the orchestrator between LLM calls and tool dispatches.

    Cancelling does not interrupt work already in flight; the turn stops at
    the next check.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str | None = None) -> None:
        self._cancelled = True
        self.reason = reason

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise TurnCancelledError()
