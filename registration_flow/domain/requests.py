"""Request bookkeeping for step network calls: results and last-request-wins cancellation"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class StepResult(Generic[T]):
    """Outcome of a step action that touched the network"""

    value: Optional[T] = None
    error: Optional[str] = None
    superseded: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.superseded

    @classmethod
    def success(cls, value: Optional[T] = None) -> "StepResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "StepResult[T]":
        return cls(error=error)

    @classmethod
    def discarded(cls) -> "StepResult[T]":
        return cls(superseded=True)


class CancellationToken:
    """Cooperative cancellation flag checked by the caller before applying a response"""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class RequestGuard:
    """
    Tracks the in-flight request for one resource.

    Starting a new request cancels the previous token, so a slow response
    for a superseded request is discarded instead of applied (last request wins).
    """

    def __init__(self):
        self._current: Optional[CancellationToken] = None

    def begin(self) -> CancellationToken:
        self.cancel()
        self._current = CancellationToken()
        return self._current

    def cancel(self) -> None:
        if self._current is not None:
            self._current.cancel()
            self._current = None

    @property
    def in_flight(self) -> bool:
        return self._current is not None

    def finish(self, token: CancellationToken) -> None:
        if self._current is token:
            self._current = None
