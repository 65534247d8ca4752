import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from orderdesk.core.config import settings

def _int_env(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default

# Conservative pool defaults: the API and the sweep runner share one database
POOL_SIZE = _int_env("DB_POOL_SIZE", 5)
MAX_OVERFLOW = _int_env("DB_MAX_OVERFLOW", 2)
POOL_RECYCLE = _int_env("DB_POOL_RECYCLE", 1800)  # seconds


def build_engine(url: str):
    if url.startswith("sqlite"):
        # local/dev only; SQLite pools don't take size options
        return create_engine(url, connect_args={"check_same_thread": False})

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_recycle=POOL_RECYCLE,
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
