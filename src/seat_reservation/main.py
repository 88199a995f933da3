import logging
import os
import time
from datetime import timedelta

from fastapi import FastAPI
from sqlalchemy.exc import OperationalError

from seat_reservation.api.routes.routes import router
from seat_reservation.application.expiry_reaper import (
    DEFAULT_REAPER_BATCH_SIZE,
    DEFAULT_REAPER_INTERVAL,
    ExpiryReaper,
)
from seat_reservation.application.reservation_manager import (
    DEFAULT_RESERVATION_TTL,
    ReservationManager,
)
from seat_reservation.infrastructure.db.session import build_engine
from seat_reservation.infrastructure.db.store import ReservationStore

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_seconds(name: str, default: timedelta) -> timedelta:
    return timedelta(seconds=float(os.getenv(name, str(default.total_seconds()))))


def _wait_for_db(store: ReservationStore) -> None:
    # Handles the common case where API starts before Postgres is ready.
    max_retries = int(os.getenv("DB_CONNECT_MAX_RETRIES", "30"))
    retry_delay_seconds = float(os.getenv("DB_CONNECT_RETRY_DELAY", "1.5"))

    for attempt in range(1, max_retries + 1):
        try:
            store.ping()
            logger.info("Database is reachable.")
            return
        except OperationalError:
            if attempt == max_retries:
                logger.exception(
                    "Database not reachable after %s attempts. Check DATABASE_URL.",
                    max_retries,
                )
                raise
            logger.warning(
                "Database not ready (attempt %s/%s). Retrying in %.1f seconds...",
                attempt,
                max_retries,
                retry_delay_seconds,
            )
            time.sleep(retry_delay_seconds)


def create_app(
    store: ReservationStore | None = None,
    start_reaper: bool | None = None,
) -> FastAPI:
    """
    Wire the store, manager and reaper onto a FastAPI app.

    A store passed in is used as-is and left open at shutdown; otherwise one
    is built from DATABASE_URL and disposed with the app.
    """
    app = FastAPI(title="Seat Reservation Engine")
    app.include_router(router)

    owns_store = store is None
    if start_reaper is None:
        start_reaper = _env_flag("REAPER_ENABLED", True)

    ttl = _env_seconds("RESERVATION_TTL_SECONDS", DEFAULT_RESERVATION_TTL)

    @app.on_event("startup")
    def on_startup() -> None:
        active_store = store or ReservationStore(build_engine())
        _wait_for_db(active_store)
        active_store.create_schema()

        reaper = ExpiryReaper(
            active_store,
            ttl=ttl,
            interval=_env_seconds("REAPER_INTERVAL_SECONDS", DEFAULT_REAPER_INTERVAL),
            batch_size=int(os.getenv("REAPER_BATCH_SIZE", str(DEFAULT_REAPER_BATCH_SIZE))),
        )
        app.state.store = active_store
        app.state.reservation_manager = ReservationManager(active_store, reservation_ttl=ttl)
        app.state.expiry_reaper = reaper

        if start_reaper:
            reaper.start()

    @app.on_event("shutdown")
    def on_shutdown() -> None:
        reaper = app.state.expiry_reaper
        if reaper.is_running:
            reaper.stop()
        if owns_store:
            app.state.store.dispose()

    return app


configure_logging()
app = create_app()
