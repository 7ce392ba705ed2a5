"""Outcome: value-or-typed-error return convention used inside the pipeline."""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from quizapi.exceptions import QuizAPIError

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Immutable result of an operation that may fail with a typed error.

    Components that detect failures (token decoding, rate-limit evaluation)
    return an Outcome; handlers turn it into a raised error with `unwrap()`
    at the HTTP boundary.

    Attributes:
        value:  The produced value when the operation succeeded.
        error:  The typed error when it failed.
    """

    value: Optional[T] = None
    error: Optional[QuizAPIError] = None

    # ── Factory helpers ──────────────────────────────────────

    @staticmethod
    def success(value: T) -> "Outcome[T]":
        return Outcome(value=value)

    @staticmethod
    def failure(error: QuizAPIError) -> "Outcome[T]":
        return Outcome(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
