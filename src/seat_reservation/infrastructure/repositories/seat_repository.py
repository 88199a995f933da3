# src/seat_reservation/infrastructure/repositories/seat_repository.py

from sqlalchemy.orm import Session, joinedload
from sqlalchemy import select

from seat_reservation.domain.state_machine import SeatStateMachine, SeatStatus
from seat_reservation.infrastructure.db.models import BookingDetail, Event, Seat, ShowSeat


class ShowSeatRepository:

    def __init__(self, db: Session, locks):
        self.db = db
        self.locks = locks

    def get_event(self, event_id: int) -> Event | None:
        return self.db.get(Event, event_id)

    def lock_event_seats(
        self,
        event_id: int,
        seat_ids: list[int],
    ) -> list[ShowSeat]:
        """
        SELECT ... FOR UPDATE on exactly the requested rows, ascending id.
        Rows that do not belong to the event are simply not returned.
        """
        ordered = self.locks.claim_seats(seat_ids)

        stmt = (
            select(ShowSeat)
            .where(ShowSeat.event_id == event_id)
            .where(ShowSeat.id.in_(ordered))
            .order_by(ShowSeat.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(self.db.execute(stmt).scalars().all())

    def lock_booking_seats(self, booking_ids: list[int]) -> list[ShowSeat]:
        if not booking_ids:
            return []

        # BookingDetail rows are never mutated, so reading them unlocked is safe.
        seat_ids = self.db.execute(
            select(BookingDetail.show_seat_id)
            .where(BookingDetail.booking_id.in_(booking_ids))
        ).scalars().all()
        ordered = self.locks.claim_seats(seat_ids)
        if not ordered:
            return []

        stmt = (
            select(ShowSeat)
            .where(ShowSeat.id.in_(ordered))
            .order_by(ShowSeat.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(self.db.execute(stmt).scalars().all())

    def transition(
        self,
        seats: list[ShowSeat],
        to_status: SeatStatus,
    ) -> None:
        for seat in seats:
            SeatStateMachine.validate_transition(seat.status, to_status)
        for seat in seats:
            seat.status = to_status

    def release(self, seats: list[ShowSeat]) -> int:
        """
        Put Locked or Booked seats back to Available.
        Returns how many rows actually changed.
        """
        held = [seat for seat in seats if seat.status != SeatStatus.AVAILABLE]
        self.transition(held, SeatStatus.AVAILABLE)
        return len(held)

    def list_for_event(self, event_id: int) -> list[ShowSeat]:
        stmt = (
            select(ShowSeat)
            .join(Seat, ShowSeat.seat_id == Seat.id)
            .options(joinedload(ShowSeat.seat))
            .where(ShowSeat.event_id == event_id)
            .order_by(Seat.label, ShowSeat.id)
        )
        return list(self.db.execute(stmt).scalars().all())
