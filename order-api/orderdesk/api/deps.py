from collections.abc import Generator

from sqlalchemy.orm import Session

from orderdesk.core.clock import Clock, SystemClock
from orderdesk.db.session import SessionLocal
from orderdesk.services.messaging import EvolutionGateway, MessagingError, MessagingGateway

_system_clock = SystemClock()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_clock() -> Clock:
    return _system_clock


def get_gateway() -> MessagingGateway | None:
    # None when the Evolution API is not configured; notifications then stay
    # pending for the sweep runner
    try:
        return EvolutionGateway()
    except MessagingError:
        return None
