# src/seat_reservation/domain/state_machine.py

from enum import Enum
from typing import ClassVar, Dict, Set, Type

from seat_reservation.domain.exceptions import InvalidStateTransitionError


class SeatStatus(str, Enum):
    AVAILABLE = "Available"
    LOCKED = "Locked"
    BOOKED = "Booked"


class BookingStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"


class CancelReason(str, Enum):
    USER = "user"
    EXPIRED = "expired"


class _TransitionTable:
    """
    Shared lookup logic for the lifecycle controllers below.
    Subclasses only declare their status enum and the legal edges.
    """

    _STATUS_TYPE: ClassVar[Type[Enum]]
    _ALLOWED_TRANSITIONS: ClassVar[Dict[Enum, Set[Enum]]]

    @classmethod
    def can_transition(cls, from_status, to_status) -> bool:
        """
        Returns True if transition is allowed.
        """
        cls._ensure_valid_status(from_status)
        cls._ensure_valid_status(to_status)

        return to_status in cls._ALLOWED_TRANSITIONS.get(from_status, set())

    @classmethod
    def validate_transition(cls, from_status, to_status) -> None:
        """
        Raises InvalidStateTransitionError if transition is illegal.
        """
        if not cls.can_transition(from_status, to_status):
            raise InvalidStateTransitionError(
                from_state=from_status.value,
                to_state=to_status.value,
            )

    @classmethod
    def is_terminal(cls, status) -> bool:
        cls._ensure_valid_status(status)
        return len(cls._ALLOWED_TRANSITIONS.get(status, set())) == 0

    @classmethod
    def get_allowed_transitions(cls, status) -> Set:
        cls._ensure_valid_status(status)
        return set(cls._ALLOWED_TRANSITIONS.get(status, set()))

    @classmethod
    def _ensure_valid_status(cls, status) -> None:
        if not isinstance(status, cls._STATUS_TYPE):
            raise TypeError(
                f"Expected {cls._STATUS_TYPE.__name__}, got {type(status)}"
            )


class SeatStateMachine(_TransitionTable):
    """
    Lifecycle of a ShowSeat.

    Every seat leaves Available only through Locked, which is written by the
    atomic reservation protocol. Locked and Booked both fall back to
    Available on cancellation or expiry.
    """

    _STATUS_TYPE = SeatStatus
    _ALLOWED_TRANSITIONS: ClassVar[Dict[SeatStatus, Set[SeatStatus]]] = {
        SeatStatus.AVAILABLE: {
            SeatStatus.LOCKED,
        },
        SeatStatus.LOCKED: {
            SeatStatus.BOOKED,
            SeatStatus.AVAILABLE,
        },
        SeatStatus.BOOKED: {
            SeatStatus.AVAILABLE,
        },
    }


class BookingStateMachine(_TransitionTable):
    """
    Central lifecycle controller for booking transitions.
    Pending resolves to Confirmed or Cancelled; a Confirmed booking may
    still be cancelled by its owner. Cancelled is terminal.
    """

    _STATUS_TYPE = BookingStatus
    _ALLOWED_TRANSITIONS: ClassVar[Dict[BookingStatus, Set[BookingStatus]]] = {
        BookingStatus.PENDING: {
            BookingStatus.CONFIRMED,
            BookingStatus.CANCELLED,
        },
        BookingStatus.CONFIRMED: {
            BookingStatus.CANCELLED,
        },
        BookingStatus.CANCELLED: set(),
    }
