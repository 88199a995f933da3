# src/seat_reservation/infrastructure/db/models.py

from sqlalchemy import (
    String,
    Integer,
    DateTime,
    Enum,
    UniqueConstraint,
    CheckConstraint,
    ForeignKey,
    Index,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from typing import Optional

from seat_reservation.infrastructure.db.session import Base
from seat_reservation.domain.state_machine import (
    BookingStatus,
    CancelReason,
    SeatStatus,
)


# Enum columns store the status value ("Available", "Pending", ...).
def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Venue(Base):
    __tablename__ = "venues"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    location: Mapped[str | None] = mapped_column(String(128), nullable=True)

    seats: Mapped[list["Seat"]] = relationship(back_populates="venue")


class Event(Base):
    """
    A scheduled show at a venue. Owned by the catalog; the engine only
    checks that it exists.
    """

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    venue_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("venues.id"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    venue: Mapped[Venue] = relationship()


class Seat(Base):
    __tablename__ = "seats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    venue_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("venues.id"),
        nullable=False,
    )
    label: Mapped[str] = mapped_column(String(16), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, default="Standard")

    venue: Mapped[Venue] = relationship(back_populates="seats")

    __table_args__ = (
        UniqueConstraint("venue_id", "label", name="uq_venue_seat_label"),
    )


class ShowSeat(Base):
    """
    The reservable unit: one venue seat bound to one event.
    Status is mutated only by the reservation manager and the expiry reaper.
    """

    __tablename__ = "show_seats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("events.id"),
        nullable=False,
    )
    seat_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("seats.id"),
        nullable=False,
    )
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[SeatStatus] = mapped_column(
        Enum(SeatStatus, name="show_seat_status", values_callable=_enum_values),
        nullable=False,
        default=SeatStatus.AVAILABLE,
    )

    seat: Mapped[Seat] = relationship()

    __table_args__ = (
        UniqueConstraint("event_id", "seat_id", name="uq_show_seat_event_seat"),
        CheckConstraint("price >= 0", name="ck_show_seat_price_nonnegative"),
        Index("ix_show_seats_event_status", "event_id", "status"),
    )


class Booking(Base):
    """
    Booking table reflecting domain state.
    Domain controls transitions.
    DB stores current state safely.
    """

    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    event_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("events.id"),
        nullable=False,
    )
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, name="booking_status", values_callable=_enum_values),
        nullable=False,
        default=BookingStatus.PENDING,
    )
    # Written from the engine clock so the expiry deadline and the
    # creation time come from the same source.
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancel_reason: Mapped[CancelReason | None] = mapped_column(
        Enum(CancelReason, name="booking_cancel_reason", values_callable=_enum_values),
        nullable=True,
    )

    event: Mapped[Event] = relationship()
    details: Mapped[list["BookingDetail"]] = relationship(
        back_populates="booking",
        order_by="BookingDetail.show_seat_id",
    )
    payment: Mapped[Optional["PaymentRecord"]] = relationship(back_populates="booking")

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_booking_total_nonnegative"),
        Index("ix_bookings_status_created_at", "status", "created_at"),
    )


class BookingDetail(Base):
    __tablename__ = "booking_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    booking_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("bookings.id"),
        nullable=False,
        index=True,
    )
    show_seat_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("show_seats.id"),
        nullable=False,
        index=True,
    )

    booking: Mapped[Booking] = relationship(back_populates="details")
    show_seat: Mapped[ShowSeat] = relationship()

    __table_args__ = (
        UniqueConstraint("booking_id", "show_seat_id", name="uq_booking_detail_seat"),
    )


class PaymentRecord(Base):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    booking_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("bookings.id"),
        nullable=False,
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(32), nullable=False)
    payment_status: Mapped[str] = mapped_column(String(16), nullable=False, default="Completed")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    booking: Mapped[Booking] = relationship(back_populates="payment")

    __table_args__ = (
        UniqueConstraint("booking_id", name="uq_payment_booking"),
    )
