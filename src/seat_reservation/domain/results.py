from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, TypeVar

from seat_reservation.domain.exceptions import ErrorKind, ReservationEngineError

T = TypeVar("T")


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: ReservationEngineError) -> "Failure":
        return cls(kind=exc.kind, message=exc.message, details=dict(exc.details))


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of one engine operation.
    Exactly one of `value` / `error` is meaningful; callers branch on
    `error.kind` rather than on exception types or messages.
    """

    value: Optional[T] = None
    error: Optional[Failure] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, exc: ReservationEngineError) -> "Result[T]":
        return cls(error=Failure.from_exception(exc))

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise ValueError(f"{self.error.kind.value}: {self.error.message}")
        return self.value
