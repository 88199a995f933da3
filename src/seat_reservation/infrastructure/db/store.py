# src/seat_reservation/infrastructure/db/store.py

import logging
from contextlib import contextmanager
from typing import Iterable, Iterator

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, TimeoutError as SQLAlchemyTimeoutError
from sqlalchemy.orm import Session

from seat_reservation.domain.exceptions import LockOrderViolation, TransientStoreError
from seat_reservation.infrastructure.db import models  # noqa: F401  registers tables on Base
from seat_reservation.infrastructure.db.session import Base, build_session_factory
from seat_reservation.infrastructure.repositories.booking_repository import BookingRepository
from seat_reservation.infrastructure.repositories.seat_repository import ShowSeatRepository


logger = logging.getLogger(__name__)


class LockLedger:
    """
    Row locks taken by one transaction.

    Lock hierarchy: booking rows first, then show seat rows, each kind in
    ascending id order. Re-locking a row already held is allowed.
    """

    def __init__(self) -> None:
        self.booking_ids: set[int] = set()
        self.seat_ids: set[int] = set()

    def claim_bookings(self, booking_ids: Iterable[int]) -> list[int]:
        if self.seat_ids:
            raise LockOrderViolation(
                "Booking rows must be locked before any show seat rows"
            )
        return self._claim(self.booking_ids, booking_ids, "booking")

    def claim_seats(self, seat_ids: Iterable[int]) -> list[int]:
        return self._claim(self.seat_ids, seat_ids, "show seat")

    @staticmethod
    def _claim(held: set[int], requested: Iterable[int], label: str) -> list[int]:
        ordered = sorted(set(requested))
        fresh = [row_id for row_id in ordered if row_id not in held]
        if fresh and held and fresh[0] < max(held):
            raise LockOrderViolation(
                f"{label} row {fresh[0]} requested after {label} row {max(held)}"
            )
        held.update(fresh)
        return ordered


class StoreTransaction:
    """One open transaction plus the repositories bound to it."""

    def __init__(self, session: Session):
        self.session = session
        self.locks = LockLedger()
        self.bookings = BookingRepository(session, self.locks)
        self.seats = ShowSeatRepository(session, self.locks)


class ReservationStore:
    """
    Explicit handle on the durable store.

    Built once at process start, passed to the reservation manager and the
    expiry reaper, disposed at shutdown.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = build_session_factory(engine)

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """
        Commit on clean exit, roll back on any error.
        Lock waits that time out, deadlock victims and lost connections are
        re-raised as TransientStoreError.
        """
        session = self._session_factory()
        try:
            yield StoreTransaction(session)
            session.commit()
        except (OperationalError, SQLAlchemyTimeoutError) as exc:
            session.rollback()
            logger.warning("Transaction aborted by the store: %s", exc.__class__.__name__)
            raise TransientStoreError(
                "The store could not complete the operation; it is safe to retry",
                details={"cause": exc.__class__.__name__},
            ) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # Reads go through the same path; they simply never take locks.
    read = transaction

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()
