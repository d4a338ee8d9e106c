"""Database engine, session factory and request dependency."""
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from hrm_authz.core.config import settings

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Provide a session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Postgres SQLSTATEs for serialization failure and deadlock victim
LOCK_CONFLICT_SQLSTATES = frozenset({"40001", "40P01"})


def is_lock_conflict(exc: OperationalError) -> bool:
    """True when the database aborted the transaction to resolve a lock conflict."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    return code in LOCK_CONFLICT_SQLSTATES
