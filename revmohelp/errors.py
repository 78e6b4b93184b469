"""
Error types and the result-with-error shape returned by repositories.
"""
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class BackendError(Exception):
    """A query or mutation against the backend failed."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RowNotFoundError(BackendError):
    """A mutation targeted a row that does not exist."""


@dataclass(frozen=True)
class ErrorInfo:
    """Error object carried in a Result, e.g. {"message": "Doctor not found"}."""
    message: str

    def to_dict(self) -> dict:
        return {"message": self.message}


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Data plus an optional error.

    Repositories return this instead of raising for expected backend
    failures so callers can render a fallback state.
    """
    data: Optional[T] = None
    error: Optional[ErrorInfo] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any) -> "Result":
        return cls(data=data, error=None)

    @classmethod
    def failure(cls, message: str, data: Any = None) -> "Result":
        return cls(data=data, error=ErrorInfo(message))


def is_ok(result: Result) -> bool:
    """cache_if predicate: only successful results are cached."""
    return result.ok
