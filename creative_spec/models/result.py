"""Gateway result types: every remote call returns Ok, Unreachable or Rejected."""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    method: str | None = None  # Server-reported method tag, if any


@dataclass(frozen=True)
class Unreachable:
    """Service could not be contacted."""
    detail: str = "Unable to reach API server"


@dataclass(frozen=True)
class Rejected:
    """Service answered and declined the request."""
    reason: str
    status: int | None = None
    payload: Any = None


Result = Union[Ok[T], Unreachable, Rejected]


def failure_message(result: "Unreachable | Rejected") -> str:
    if isinstance(result, Unreachable):
        return result.detail
    return result.reason
