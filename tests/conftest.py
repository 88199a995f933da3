"""
Shared fixtures: a throwaway store per test, a small seeded catalog,
a controllable clock, and the manager / reaper / HTTP client built on them.

Tests run against a file-backed SQLite database by default. Set
TEST_DATABASE_URL to run the same suite against PostgreSQL.
"""

import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from seat_reservation.application.expiry_reaper import ExpiryReaper
from seat_reservation.application.reservation_manager import ReservationManager
from seat_reservation.infrastructure.db.models import (
    Booking,
    Event,
    Seat,
    ShowSeat,
    Venue,
)
from seat_reservation.infrastructure.db.session import Base, build_engine
from seat_reservation.infrastructure.db.store import ReservationStore
from seat_reservation.main import create_app


RESERVATION_TTL = timedelta(minutes=10)


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@dataclass
class Catalog:
    event_id: int
    # S1 and S2 cost 10, S3 costs 25
    seat_ids: list[int]
    other_event_id: int
    other_event_seat_ids: list[int]


@pytest.fixture
def store(tmp_path):
    url = os.getenv("TEST_DATABASE_URL") or f"sqlite:///{tmp_path / 'reservations.db'}"
    store = ReservationStore(build_engine(url))
    Base.metadata.drop_all(bind=store.engine)
    store.create_schema()
    yield store
    store.dispose()


@pytest.fixture
def catalog(store) -> Catalog:
    starts_at = datetime(2026, 12, 1, 19, 30, tzinfo=timezone.utc)

    with store.transaction() as tx:
        db = tx.session
        venue = Venue(name="Test Arena", location="Hall 1")
        db.add(venue)
        db.flush()

        seats = [
            Seat(venue_id=venue.id, label="S1"),
            Seat(venue_id=venue.id, label="S2"),
            Seat(venue_id=venue.id, label="S3", category="VIP"),
        ]
        db.add_all(seats)

        event = Event(venue_id=venue.id, title="Test Concert", starts_at=starts_at)
        other = Event(venue_id=venue.id, title="Matinee", starts_at=starts_at)
        db.add_all([event, other])
        db.flush()

        show_seats = [
            ShowSeat(event_id=event.id, seat_id=seats[0].id, price=10),
            ShowSeat(event_id=event.id, seat_id=seats[1].id, price=10),
            ShowSeat(event_id=event.id, seat_id=seats[2].id, price=25),
        ]
        other_show_seats = [
            ShowSeat(event_id=other.id, seat_id=seat.id, price=5) for seat in seats
        ]
        db.add_all(show_seats + other_show_seats)
        db.flush()

        return Catalog(
            event_id=event.id,
            seat_ids=[show_seat.id for show_seat in show_seats],
            other_event_id=other.id,
            other_event_seat_ids=[show_seat.id for show_seat in other_show_seats],
        )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def manager(store, clock) -> ReservationManager:
    return ReservationManager(store, reservation_ttl=RESERVATION_TTL, clock=clock)


@pytest.fixture
def reaper(store, clock) -> ExpiryReaper:
    return ExpiryReaper(
        store,
        ttl=RESERVATION_TTL,
        interval=timedelta(seconds=60),
        clock=clock,
    )


@pytest.fixture
def seat_statuses(store):
    """Current status value of each given show seat, in the given order."""

    def read(seat_ids: list[int]) -> list[str]:
        with store.read() as tx:
            rows = tx.session.execute(
                select(ShowSeat.id, ShowSeat.status).where(ShowSeat.id.in_(seat_ids))
            ).all()
        by_id = {row.id: row.status.value for row in rows}
        return [by_id[seat_id] for seat_id in seat_ids]

    return read


@pytest.fixture
def load_booking(store):
    def read(booking_id: int) -> Booking:
        with store.read() as tx:
            return tx.session.get(Booking, booking_id)

    return read


@pytest.fixture
def client(store, catalog):
    app = create_app(store=store, start_reaper=False)
    with TestClient(app) as test_client:
        yield test_client
