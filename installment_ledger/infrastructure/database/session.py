"""Database session management with connection pooling"""

import logging
from typing import Callable, Generator, TypeVar
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.orm.exc import StaleDataError
from installment_ledger.config import settings
from installment_ledger.domain.exceptions import ConcurrencyConflict
from installment_ledger.infrastructure.observability.metrics import concurrency_conflict_counter

T = TypeVar("T")

# Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,  # Verify connections before using
    pool_size=10,
    max_overflow=10,
    pool_recycle=3600,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency injection for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def run_in_transaction(db: Session, unit_of_work: Callable[[], T], max_attempts: int | None = None) -> T:
    """
    Run a unit of work as one all-or-nothing transaction.

    A lost optimistic-lock race (StaleDataError) rolls back and re-runs the
    whole unit of work against fresh state; when attempts are exhausted it
    surfaces as ConcurrencyConflict. Any other failure rolls back and propagates.
    """
    attempts = max_attempts or settings.max_write_attempts
    for attempt in range(1, attempts + 1):
        try:
            result = unit_of_work()
            db.commit()
            return result
        except StaleDataError as e:
            db.rollback()
            concurrency_conflict_counter.inc()
            logging.warning("Optimistic lock conflict", extra={"attempt": attempt, "error": str(e)})
            if attempt >= attempts:
                raise ConcurrencyConflict(
                    "Concurrent update detected, please resubmit",
                    attempts=attempts,
                ) from e
        except Exception:
            db.rollback()
            raise
    raise ConcurrencyConflict("Concurrent update detected, please resubmit", attempts=attempts)
