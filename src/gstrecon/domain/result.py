"""Structured success/failure results for outward-facing operations."""

import functools
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from gstrecon.domain.errors import DomainError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a service operation.

    Expected failures (not found, conflict, validation) are carried in
    ``error`` instead of being raised, so callers always get a structured
    answer.
    """

    value: Optional[T] = None
    error: Optional[DomainError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: DomainError) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value, or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def returns_result(func: Callable[..., Any]) -> Callable[..., Result]:
    """Wrap a service method so DomainErrors become failed Results.

    Any other exception is a genuine fault and propagates unchanged.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Result:
        try:
            value = func(*args, **kwargs)
        except DomainError as exc:
            return Result.failure(exc)
        if isinstance(value, Result):
            return value
        return Result.success(value)

    return wrapper
