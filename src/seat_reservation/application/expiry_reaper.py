import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from seat_reservation.application.reservation_manager import DEFAULT_RESERVATION_TTL, utc_now
from seat_reservation.domain.state_machine import CancelReason
from seat_reservation.infrastructure.db.store import ReservationStore


logger = logging.getLogger(__name__)

DEFAULT_REAPER_INTERVAL = timedelta(minutes=1)
DEFAULT_REAPER_BATCH_SIZE = 500


@dataclass(frozen=True)
class ReapReport:
    deadline: datetime
    candidates: int
    cancelled_booking_ids: list[int] = field(default_factory=list)
    seats_released: int = 0


class ExpiryReaper:
    """
    Cancels Pending bookings older than the reservation TTL.

    Each run is one transaction: booking rows are locked first (ascending),
    then their seats, so a concurrent confirm either commits before the run
    sees the booking or finds it already Cancelled. A failed run rolls back
    completely and the next tick re-evaluates the same deadline.

    At most one run is in flight at a time, whether triggered by the
    background thread or by a direct `run_once()` call.
    """

    def __init__(
        self,
        store: ReservationStore,
        ttl: timedelta = DEFAULT_RESERVATION_TTL,
        interval: timedelta = DEFAULT_REAPER_INTERVAL,
        batch_size: int = DEFAULT_REAPER_BATCH_SIZE,
        clock: Callable[[], datetime] = utc_now,
    ):
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        self.store = store
        self.ttl = ttl
        self.interval = interval
        self.batch_size = batch_size
        self.clock = clock

        self._run_guard = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            raise RuntimeError("Expiry reaper is already running")

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop,
            name="expiry-reaper",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "Expiry reaper started (interval %ss, ttl %ss)",
            self.interval.total_seconds(),
            self.ttl.total_seconds(),
        )

    def stop(self, timeout: float | None = 10.0) -> None:
        """
        If the loop is still mid-run after `timeout`, the thread is kept and
        `is_running` stays True; `start()` is refused until it has exited.
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Expiry reaper did not stop within %ss", timeout)
                return
            self._thread = None
        logger.info("Expiry reaper stopped")

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval.total_seconds()):
            self.tick()

    def tick(self) -> ReapReport | None:
        """
        One scheduled firing. Errors are logged, never raised: the next
        tick is the retry.
        """
        try:
            return self.run_once()
        except Exception:
            logger.exception("Expiry reaper run failed; will retry on next tick")
            return None

    def run_once(self) -> ReapReport | None:
        """
        Returns None when another run is still in flight.
        """
        if not self._run_guard.acquire(blocking=False):
            logger.warning("Expiry reaper run skipped: previous run still in progress")
            return None
        try:
            return self._reap()
        finally:
            self._run_guard.release()

    def _reap(self) -> ReapReport:
        now = self.clock()
        deadline = now - self.ttl

        with self.store.transaction() as tx:
            candidates = tx.bookings.expired_pending_ids(deadline, self.batch_size)

            # Re-checked under lock: anything confirmed or cancelled since the
            # select above drops out here.
            pending = tx.bookings.lock_pending(candidates)
            pending_ids = [booking.id for booking in pending]

            seats = tx.seats.lock_booking_seats(pending_ids)
            released = tx.seats.release(seats)
            cancelled = tx.bookings.cancel_pending(pending_ids, now, CancelReason.EXPIRED)

            if cancelled != len(pending_ids):
                raise RuntimeError(
                    f"Expected to cancel {len(pending_ids)} bookings, cancelled {cancelled}"
                )

        report = ReapReport(
            deadline=deadline,
            candidates=len(candidates),
            cancelled_booking_ids=pending_ids,
            seats_released=released,
        )
        if pending_ids:
            logger.info(
                "Expired %s booking(s) %s, released %s seat(s)",
                len(pending_ids),
                pending_ids,
                released,
            )
        else:
            logger.debug("Expiry reaper found nothing to cancel (deadline %s)", deadline)
        return report
