# src/seat_reservation/infrastructure/repositories/booking_repository.py

from datetime import datetime

from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy import select, update

from seat_reservation.domain.state_machine import BookingStatus, CancelReason
from seat_reservation.infrastructure.db.models import (
    Booking,
    BookingDetail,
    PaymentRecord,
    ShowSeat,
)


class BookingRepository:

    def __init__(self, db: Session, locks):
        self.db = db
        self.locks = locks

    def lock_by_id(
        self,
        booking_id: int,
    ) -> Booking | None:
        """
        SELECT ... FOR UPDATE on one booking row.
        Confirm, cancel and the reaper all serialise on this lock.
        """
        self.locks.claim_bookings([booking_id])

        stmt = (
            select(Booking)
            .where(Booking.id == booking_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def lock_pending(self, booking_ids: list[int]) -> list[Booking]:
        ordered = self.locks.claim_bookings(booking_ids)
        if not ordered:
            return []

        stmt = (
            select(Booking)
            .where(Booking.id.in_(ordered))
            .where(Booking.status == BookingStatus.PENDING)
            .order_by(Booking.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(self.db.execute(stmt).scalars().all())

    def expired_pending_ids(self, deadline: datetime, limit: int) -> list[int]:
        stmt = (
            select(Booking.id)
            .where(Booking.status == BookingStatus.PENDING)
            .where(Booking.created_at < deadline)
            .order_by(Booking.id)
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def create_booking(
        self,
        user_id: str,
        event_id: int,
        seats: list[ShowSeat],
        created_at: datetime,
    ) -> Booking:
        # Prices are snapshotted here; later price edits never touch the total.
        booking = Booking(
            user_id=user_id,
            event_id=event_id,
            total_amount=sum(seat.price for seat in seats),
            status=BookingStatus.PENDING,
            created_at=created_at,
        )
        self.db.add(booking)
        self.db.flush()

        for seat in seats:
            self.db.add(BookingDetail(booking_id=booking.id, show_seat_id=seat.id))

        return booking

    def add_payment(
        self,
        booking: Booking,
        payment_method: str,
        paid_at: datetime,
    ) -> PaymentRecord:
        payment = PaymentRecord(
            booking_id=booking.id,
            amount=booking.total_amount,
            payment_method=payment_method,
            payment_status="Completed",
            created_at=paid_at,
        )
        self.db.add(payment)
        return payment

    def update_status(
        self,
        booking: Booking,
        new_status: BookingStatus,
        at: datetime,
        reason: CancelReason | None = None,
    ) -> None:

        booking.status = new_status
        if new_status == BookingStatus.CONFIRMED:
            booking.confirmed_at = at
        elif new_status == BookingStatus.CANCELLED:
            booking.cancelled_at = at
            booking.cancel_reason = reason

    def cancel_pending(
        self,
        booking_ids: list[int],
        at: datetime,
        reason: CancelReason,
    ) -> int:
        """
        Scoped by id and status, so a booking that stopped being Pending
        is left untouched. Returns the number of rows cancelled.
        """
        if not booking_ids:
            return 0

        stmt = (
            update(Booking)
            .where(Booking.id.in_(booking_ids))
            .where(Booking.status == BookingStatus.PENDING)
            .values(
                status=BookingStatus.CANCELLED,
                cancelled_at=at,
                cancel_reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def _with_view_options(self, stmt):
        return stmt.options(
            joinedload(Booking.event),
            selectinload(Booking.details)
            .joinedload(BookingDetail.show_seat)
            .joinedload(ShowSeat.seat),
        )

    def get_view(self, booking_id: int) -> Booking | None:
        stmt = self._with_view_options(select(Booking).where(Booking.id == booking_id))
        return self.db.execute(stmt).unique().scalar_one_or_none()

    def list_all(self) -> list[Booking]:
        stmt = self._with_view_options(
            select(Booking).order_by(Booking.created_at.desc(), Booking.id.desc())
        )
        return list(self.db.execute(stmt).unique().scalars().all())

    def list_for_user(self, user_id: str) -> list[Booking]:
        stmt = self._with_view_options(
            select(Booking)
            .where(Booking.user_id == user_id)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
        )
        return list(self.db.execute(stmt).unique().scalars().all())
