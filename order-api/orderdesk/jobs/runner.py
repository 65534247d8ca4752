from __future__ import annotations

import logging
import time
from typing import Callable

from sqlalchemy.orm import Session

from orderdesk.core.clock import Clock, SystemClock
from orderdesk.core.config import settings
from orderdesk.core.logs import setup_logging
from orderdesk.db.session import SessionLocal
from orderdesk.jobs.notify_printed_orders import notify_printed_orders
from orderdesk.jobs.purge_old_orders import purge_old_orders
from orderdesk.jobs.recover_stuck_orders import recover_stuck_orders
from orderdesk.services.messaging import EvolutionGateway, MessagingError, MessagingGateway

logger = logging.getLogger(__name__)

TICK_S = 1.0


def build_sweeps(gateway: MessagingGateway | None) -> list[tuple[str, float, Callable[[Session, Clock], object]]]:
    """(name, interval seconds, fn(db, clock)) for each periodic sweep."""
    sweeps: list[tuple[str, float, Callable[[Session, Clock], object]]] = [
        (
            "recover_stuck_orders",
            settings.RECOVER_INTERVAL_S,
            lambda db, clock: recover_stuck_orders(
                db, clock.now(), threshold_minutes=settings.STUCK_ORDER_THRESHOLD_MINUTES
            ),
        ),
        (
            "purge_old_orders",
            settings.PURGE_INTERVAL_S,
            lambda db, clock: purge_old_orders(
                db, clock.now(), retention_days=settings.ORDER_RETENTION_DAYS
            ),
        ),
    ]
    if gateway is not None:
        sweeps.append(
            (
                "notify_printed_orders",
                settings.NOTIFY_INTERVAL_S,
                lambda db, clock: notify_printed_orders(
                    db,
                    gateway,
                    clock.now(),
                    lookback_days=settings.NOTIFY_LOOKBACK_DAYS,
                    batch_size=settings.NOTIFY_BATCH_SIZE,
                    lease_seconds=settings.NOTIFY_LEASE_SECONDS,
                ),
            )
        )
    return sweeps


def run_sweeps(
    *,
    once: bool = False,
    gateway: MessagingGateway | None = None,
    clock: Clock | None = None,
    session_factory: Callable[[], Session] = SessionLocal,
) -> None:
    """Fixed-interval loop over the sweeps.

    Each sweep runs in its own session; a failing sweep is logged and the loop
    carries on. With ``once=True`` every sweep runs a single time.
    """
    clock = clock or SystemClock()
    sweeps = build_sweeps(gateway)
    last_run: dict[str, float] = {}

    while True:
        tick = time.monotonic()
        for name, interval_s, fn in sweeps:
            if name in last_run and tick - last_run[name] < interval_s:
                continue
            last_run[name] = tick

            db = session_factory()
            try:
                fn(db, clock)
            except Exception:
                db.rollback()
                logger.exception(f"{name}: sweep failed")
            finally:
                db.close()

        if once:
            return
        time.sleep(TICK_S)


def main() -> None:
    setup_logging()

    gateway: MessagingGateway | None
    try:
        gateway = EvolutionGateway()
    except MessagingError as e:
        logger.warning(f"notify_printed_orders disabled: {e}")
        gateway = None

    run_sweeps(gateway=gateway)


if __name__ == "__main__":
    main()
