from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    SEAT_NOT_FOUND = "seat_not_found"
    SEAT_UNAVAILABLE = "seat_unavailable"
    INVALID_STATE = "invalid_state"
    ALREADY_CANCELLED = "already_cancelled"
    FORBIDDEN = "forbidden"
    INVALID_REQUEST = "invalid_request"
    TRANSIENT = "transient"


class ReservationEngineError(Exception):
    """
    Base exception for all domain-level errors
    inside the seat reservation engine.
    """

    kind: ErrorKind = ErrorKind.INVALID_STATE

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFoundError(ReservationEngineError):
    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        resource: str,
        identifier: Any,
        message: Optional[str] = None,
    ):
        super().__init__(
            message or f"{resource} {identifier} not found",
            details={"resource": resource, "id": identifier},
        )


class SeatNotFoundError(NotFoundError):
    """Raised when requested show seats do not exist for the event."""

    kind = ErrorKind.SEAT_NOT_FOUND

    def __init__(self, event_id: int, seat_ids: list[int]):
        super().__init__(
            "ShowSeat",
            seat_ids,
            message=f"Seats {seat_ids} do not exist for event {event_id}",
        )
        self.details["event_id"] = event_id


class SeatUnavailableError(ReservationEngineError):
    """Raised when a requested seat is not Available at lock time."""

    kind = ErrorKind.SEAT_UNAVAILABLE

    def __init__(self, seat_ids: list[int]):
        super().__init__(
            "One or more selected seats are no longer available",
            details={"unavailable_seats": seat_ids},
        )


class InvalidStateTransitionError(ReservationEngineError):
    """
    Raised when an illegal booking or seat state transition is attempted.
    """

    kind = ErrorKind.INVALID_STATE

    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state

        message = (
            f"Illegal state transition attempted: "
            f"{from_state} -> {to_state}"
        )
        super().__init__(
            message,
            details={"from_state": from_state, "to_state": to_state},
        )


class AlreadyCancelledError(ReservationEngineError):
    kind = ErrorKind.ALREADY_CANCELLED

    def __init__(self, booking_id: int):
        super().__init__(
            f"Booking {booking_id} has already been cancelled",
            details={"booking_id": booking_id},
        )


class ForbiddenError(ReservationEngineError):
    """Raised when a user acts on a booking they do not own."""

    kind = ErrorKind.FORBIDDEN

    def __init__(self, booking_id: int):
        super().__init__(
            f"Booking {booking_id} belongs to another user",
            details={"booking_id": booking_id},
        )


class InvalidRequestError(ReservationEngineError):
    kind = ErrorKind.INVALID_REQUEST


class TransientStoreError(ReservationEngineError):
    """
    Lock-wait timeout, deadlock victim or store unavailability.
    Nothing was committed; the caller may re-issue the same operation.
    """

    kind = ErrorKind.TRANSIENT


class LockOrderViolation(RuntimeError):
    """Raised when code tries to take row locks out of hierarchy order."""
