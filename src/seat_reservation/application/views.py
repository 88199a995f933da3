from dataclasses import dataclass
from datetime import datetime

from seat_reservation.domain.state_machine import BookingStatus, SeatStatus
from seat_reservation.infrastructure.db.models import Booking, ShowSeat


@dataclass(frozen=True)
class ReservationReceipt:
    booking_id: int
    total_amount: int
    status: BookingStatus
    expires_at: datetime


@dataclass(frozen=True)
class BookingSummary:
    booking_id: int
    status: BookingStatus


@dataclass(frozen=True)
class EventSummary:
    id: int
    title: str
    starts_at: datetime


@dataclass(frozen=True)
class BookingView:
    booking_id: int
    user_id: str
    event: EventSummary
    seats: list[str]
    status: BookingStatus
    amount: int
    created_at: datetime

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingView":
        return cls(
            booking_id=booking.id,
            user_id=booking.user_id,
            event=EventSummary(
                id=booking.event.id,
                title=booking.event.title,
                starts_at=booking.event.starts_at,
            ),
            seats=[detail.show_seat.seat.label for detail in booking.details],
            status=booking.status,
            amount=booking.total_amount,
            created_at=booking.created_at,
        )


@dataclass(frozen=True)
class ShowSeatView:
    show_seat_id: int
    label: str
    category: str
    price: int
    status: SeatStatus

    @classmethod
    def from_show_seat(cls, show_seat: ShowSeat) -> "ShowSeatView":
        return cls(
            show_seat_id=show_seat.id,
            label=show_seat.seat.label,
            category=show_seat.seat.category,
            price=show_seat.price,
            status=show_seat.status,
        )
