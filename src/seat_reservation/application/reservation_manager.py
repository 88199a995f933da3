import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable

from seat_reservation.application.views import (
    BookingSummary,
    BookingView,
    ReservationReceipt,
    ShowSeatView,
)
from seat_reservation.domain.exceptions import (
    AlreadyCancelledError,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
    ReservationEngineError,
    SeatNotFoundError,
    SeatUnavailableError,
)
from seat_reservation.domain.results import Result
from seat_reservation.domain.state_machine import (
    BookingStateMachine,
    BookingStatus,
    CancelReason,
    SeatStatus,
)
from seat_reservation.infrastructure.db.models import Booking
from seat_reservation.infrastructure.db.store import ReservationStore, StoreTransaction


logger = logging.getLogger(__name__)

DEFAULT_RESERVATION_TTL = timedelta(minutes=10)
DEFAULT_PAYMENT_METHOD = "Card"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReservationManager:
    """
    Creates, confirms and cancels bookings as single transactions.

    Every public operation returns a Result. Domain rejections roll the
    transaction back and come back as `Result.error`; nothing is committed
    unless the whole operation succeeds.
    """

    def __init__(
        self,
        store: ReservationStore,
        reservation_ttl: timedelta = DEFAULT_RESERVATION_TTL,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.reservation_ttl = reservation_ttl
        self.clock = clock

    # -----------------------------
    # Commands
    # -----------------------------
    def create_reservation(
        self,
        event_id: int,
        seat_ids: Iterable[int],
        user_id: str,
    ) -> Result[ReservationReceipt]:
        return self._run("create_reservation", self._create, event_id, list(seat_ids), user_id)

    def confirm_reservation(
        self,
        booking_id: int,
        user_id: str,
        payment_method: str | None = None,
    ) -> Result[BookingSummary]:
        return self._run(
            "confirm_reservation",
            self._confirm,
            booking_id,
            user_id,
            payment_method or DEFAULT_PAYMENT_METHOD,
        )

    def cancel_reservation(
        self,
        booking_id: int,
        user_id: str,
    ) -> Result[BookingSummary]:
        return self._run("cancel_reservation", self._cancel, booking_id, user_id)

    # -----------------------------
    # Queries (no row locks)
    # -----------------------------
    def list_user_bookings(self, user_id: str) -> Result[list[BookingView]]:
        return self._run("list_user_bookings", self._list_user_bookings, user_id)

    def list_bookings(self) -> Result[list[BookingView]]:
        """Every booking, newest first. Callers gate this to operators."""
        return self._run("list_bookings", self._list_bookings)

    def get_booking(
        self,
        booking_id: int,
        user_id: str | None = None,
    ) -> Result[BookingView]:
        return self._run("get_booking", self._get_booking, booking_id, user_id)

    def list_event_seats(self, event_id: int) -> Result[list[ShowSeatView]]:
        return self._run("list_event_seats", self._list_event_seats, event_id)

    # -----------------------------
    # Implementation
    # -----------------------------
    def _run(self, operation: str, func, *args) -> Result:
        try:
            value = func(*args)
        except ReservationEngineError as exc:
            logger.warning(
                "%s rejected (%s): %s",
                operation,
                exc.kind.value,
                exc.message,
            )
            return Result.failure(exc)
        return Result.success(value)

    def _create(
        self,
        event_id: int,
        seat_ids: list[int],
        user_id: str,
    ) -> ReservationReceipt:
        if not seat_ids:
            raise InvalidRequestError("At least one seat must be requested")
        if len(set(seat_ids)) != len(seat_ids):
            raise InvalidRequestError(
                "Seat ids must be distinct",
                details={"seat_ids": seat_ids},
            )

        now = self.clock()
        with self.store.transaction() as tx:
            if tx.seats.get_event(event_id) is None:
                raise NotFoundError("Event", event_id)

            seats = tx.seats.lock_event_seats(event_id, seat_ids)

            missing = sorted(set(seat_ids) - {seat.id for seat in seats})
            if missing:
                raise SeatNotFoundError(event_id, missing)

            unavailable = [seat.id for seat in seats if seat.status != SeatStatus.AVAILABLE]
            if unavailable:
                raise SeatUnavailableError(unavailable)

            booking = tx.bookings.create_booking(
                user_id=user_id,
                event_id=event_id,
                seats=seats,
                created_at=now,
            )
            tx.seats.transition(seats, SeatStatus.LOCKED)

            receipt = ReservationReceipt(
                booking_id=booking.id,
                total_amount=booking.total_amount,
                status=booking.status,
                expires_at=now + self.reservation_ttl,
            )

        logger.info(
            "Reservation %s created for user %s: event %s, seats %s, total %s",
            receipt.booking_id,
            user_id,
            event_id,
            sorted(seat_ids),
            receipt.total_amount,
        )
        return receipt

    def _confirm(
        self,
        booking_id: int,
        user_id: str,
        payment_method: str,
    ) -> BookingSummary:
        now = self.clock()
        with self.store.transaction() as tx:
            booking = self._lock_owned_booking(tx, booking_id, user_id)
            BookingStateMachine.validate_transition(booking.status, BookingStatus.CONFIRMED)

            seats = tx.seats.lock_booking_seats([booking.id])
            tx.seats.transition(seats, SeatStatus.BOOKED)
            tx.bookings.update_status(booking, BookingStatus.CONFIRMED, now)
            tx.bookings.add_payment(booking, payment_method, now)

            summary = BookingSummary(booking_id=booking.id, status=booking.status)

        logger.info(
            "Reservation %s confirmed for user %s via %s",
            booking_id,
            user_id,
            payment_method,
        )
        return summary

    def _cancel(self, booking_id: int, user_id: str) -> BookingSummary:
        now = self.clock()
        with self.store.transaction() as tx:
            booking = self._lock_owned_booking(tx, booking_id, user_id)
            if booking.status == BookingStatus.CANCELLED:
                raise AlreadyCancelledError(booking_id)
            BookingStateMachine.validate_transition(booking.status, BookingStatus.CANCELLED)

            seats = tx.seats.lock_booking_seats([booking.id])
            released = tx.seats.release(seats)
            tx.bookings.update_status(
                booking,
                BookingStatus.CANCELLED,
                now,
                reason=CancelReason.USER,
            )

            summary = BookingSummary(booking_id=booking.id, status=booking.status)

        logger.info(
            "Reservation %s cancelled by user %s, %s seat(s) released",
            booking_id,
            user_id,
            released,
        )
        return summary

    def _lock_owned_booking(
        self,
        tx: StoreTransaction,
        booking_id: int,
        user_id: str,
    ) -> Booking:
        booking = tx.bookings.lock_by_id(booking_id)
        if booking is None:
            raise NotFoundError("Booking", booking_id)
        if booking.user_id != user_id:
            raise ForbiddenError(booking_id)
        return booking

    def _list_user_bookings(self, user_id: str) -> list[BookingView]:
        with self.store.read() as tx:
            return [
                BookingView.from_booking(booking)
                for booking in tx.bookings.list_for_user(user_id)
            ]

    def _list_bookings(self) -> list[BookingView]:
        with self.store.read() as tx:
            return [BookingView.from_booking(booking) for booking in tx.bookings.list_all()]

    def _get_booking(self, booking_id: int, user_id: str | None) -> BookingView:
        with self.store.read() as tx:
            booking = tx.bookings.get_view(booking_id)
            if booking is None:
                raise NotFoundError("Booking", booking_id)
            if user_id is not None and booking.user_id != user_id:
                raise ForbiddenError(booking_id)
            return BookingView.from_booking(booking)

    def _list_event_seats(self, event_id: int) -> list[ShowSeatView]:
        with self.store.read() as tx:
            if tx.seats.get_event(event_id) is None:
                raise NotFoundError("Event", event_id)
            return [
                ShowSeatView.from_show_seat(show_seat)
                for show_seat in tx.seats.list_for_event(event_id)
            ]
