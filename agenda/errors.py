"""Scheduling failures and the success/failure result returned by fallible operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class SchedulingError(Exception):
    """Base class for failures reported by the booking engine."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConflictError(SchedulingError):
    """The candidate interval overlaps an active reservation on the same resource."""

    def __init__(
        self,
        message: str = "Time slot unavailable",
        conflicting_ids: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.conflicting_ids = conflicting_ids or []


class ValidationError(SchedulingError):
    """Malformed interval (start >= end) or duration below the minimum."""


class NotFoundError(SchedulingError):
    """The reservation being updated no longer exists."""


@dataclass(frozen=True)
class Result(Generic[T]):
    value: T | None = None
    error: SchedulingError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: SchedulingError) -> Result[T]:
        return cls(error=error)

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value
