from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from seat_reservation.infrastructure.db.models import Event, Seat, ShowSeat, Venue
from seat_reservation.infrastructure.db.session import build_engine
from seat_reservation.infrastructure.db.store import ReservationStore


def _dt(days_from_now: int, hour: int, minute: int) -> datetime:
    ist = timezone(timedelta(hours=5, minutes=30))
    now_ist = datetime.now(ist)
    target = now_ist + timedelta(days=days_from_now)
    return target.replace(hour=hour, minute=minute, second=0, microsecond=0)


VENUE = {
    "name": "Indira Gandhi Arena",
    "location": "New Delhi",
    "rows": {
        # row letter -> (category, seats in row, price)
        "A": ("VIP", 8, 4500),
        "B": ("VIP", 8, 4500),
        "C": ("Regular", 12, 1800),
        "D": ("Regular", 12, 1800),
    },
}

EVENTS = [
    {"title": "Sunidhi Chauhan Live Concert", "starts_at": _dt(10, 19, 30)},
    {"title": "Holi Festival 2026", "starts_at": _dt(15, 11, 0)},
]


def seed_venue(db) -> tuple[Venue, dict[str, int]]:
    venue = db.execute(
        select(Venue).where(Venue.name == VENUE["name"])
    ).scalar_one_or_none()
    if venue is None:
        venue = Venue(name=VENUE["name"], location=VENUE["location"])
        db.add(venue)
        db.flush()

    existing = {
        seat.label: seat
        for seat in db.execute(select(Seat).where(Seat.venue_id == venue.id)).scalars()
    }
    prices: dict[str, int] = {}
    for row, (category, count, price) in VENUE["rows"].items():
        for number in range(1, count + 1):
            label = f"{row}{number}"
            prices[label] = price
            if label not in existing:
                db.add(Seat(venue_id=venue.id, label=label, category=category))
    db.flush()
    return venue, prices


def seed_events(db, venue: Venue, prices: dict[str, int]) -> None:
    seats = db.execute(select(Seat).where(Seat.venue_id == venue.id)).scalars().all()

    for item in EVENTS:
        event = db.execute(
            select(Event).where(Event.title == item["title"])
        ).scalar_one_or_none()
        if event is None:
            event = Event(venue_id=venue.id, title=item["title"], starts_at=item["starts_at"])
            db.add(event)
            db.flush()
        else:
            event.starts_at = item["starts_at"]

        # Existing show seats keep their status; only missing ones are added.
        present = set(
            db.execute(
                select(ShowSeat.seat_id).where(ShowSeat.event_id == event.id)
            ).scalars()
        )
        for seat in seats:
            if seat.id in present:
                continue
            db.add(ShowSeat(event_id=event.id, seat_id=seat.id, price=prices[seat.label]))


def main() -> None:
    store = ReservationStore(build_engine())
    store.create_schema()
    try:
        with store.transaction() as tx:
            venue, prices = seed_venue(tx.session)
            seed_events(tx.session, venue, prices)
        print(f"Seed complete: {VENUE['name']} with {len(prices)} seats, {len(EVENTS)} events.")
    finally:
        store.dispose()


if __name__ == "__main__":
    main()
