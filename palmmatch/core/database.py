"""
SQLAlchemy Core persistence for palmmatch.

One lazily built engine per process (QueuePool against Postgres, a single
shared connection for SQLite), short-lived sessions, and the three tables the
durable stores write to. Store calls are blocking; run_bounded() moves them
off the event loop and caps how long a request waits on the database.
"""
import asyncio
import logging
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import lru_cache
from typing import Iterator, Optional

from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, Boolean, JSON, Text, Index
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from palmmatch.core.config import settings
from palmmatch.core.errors import DurableStoreUnavailable
from palmmatch.core.logging import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

metadata = MetaData()

_engine: Optional[Engine] = None


def get_database_url() -> Optional[str]:
    """TEST_DATABASE_URL wins over DATABASE_URL so test runs never touch the real database."""
    return os.getenv("TEST_DATABASE_URL") or settings.DATABASE_URL


def is_configured() -> bool:
    return bool(get_database_url())


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # In-memory SQLite lives and dies with its connection; share exactly one
        return create_engine(url, poolclass=StaticPool, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        url = get_database_url()
        if not url:
            raise ValueError("DATABASE_URL is not configured; palmmatch is running on in-memory stores")
        _engine = build_engine(url)
        logger.info(f"[database] engine ready ({url.split(':', 1)[0]})")
    return _engine


def dispose_engine() -> None:
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory.cache_clear()


@lru_cache(maxsize=None)
def _session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@contextmanager
def get_db_session(engine: Optional[Engine] = None) -> Iterator[Session]:
    """
    One unit of work: commit on success, roll back on any error.

        with get_db_session(engine) as session:
            session.execute(update(...))
    """
    session = _session_factory(engine or get_engine())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables(engine: Optional[Engine] = None) -> None:
    """Idempotent: existing tables are left alone."""
    metadata.create_all(bind=engine or get_engine())


async def run_bounded(fn, *args, timeout: float, label: str = "store"):
    """
    Run a blocking DB call in a worker thread, bounded by `timeout` seconds.

    Timeouts and driver errors become DurableStoreUnavailable. IntegrityError
    passes through so callers can map unique-key violations.
    """
    try:
        return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise DurableStoreUnavailable(f"{label} timed out after {timeout}s") from exc
    except IntegrityError:
        raise
    except SQLAlchemyError as exc:
        raise DurableStoreUnavailable(f"{label} error: {exc.__class__.__name__}") from exc


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Re-attach UTC to datetimes read back from drivers that drop tzinfo."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Compatibility codes (code broker)
compatibility_codes = Table(
    'compatibility_codes',
    metadata,
    Column('code', String(12), primary_key=True),
    Column('issuer_name', Text, nullable=False),
    Column('reading_snapshot', JSON, nullable=False),
    Column('issued_at', DateTime(timezone=True), nullable=False),
    Column('expires_at', DateTime(timezone=True), nullable=False),
    Column('active', Boolean, nullable=False, default=True),
    Column('uses', Integer, nullable=False, default=0),
    Index('idx_compatibility_codes_expires_at', 'expires_at'),
)

# Match invitations
match_invitations = Table(
    'match_invitations',
    metadata,
    Column('invite_code', String(12), primary_key=True),
    Column('from_party', String(100), nullable=False),
    Column('to_party', String(100), nullable=True),
    Column('match_type', String(20), nullable=False),
    Column('message', Text, nullable=True),
    Column('status', String(20), nullable=False, default='pending'),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Column('expires_at', DateTime(timezone=True), nullable=False),
    Column('accepted_at', DateTime(timezone=True), nullable=True),
    # list_sent_invitations pattern: (from_party, created_at)
    Index('idx_match_invitations_from_created', 'from_party', 'created_at'),
)

# Compatibility matches
compatibility_matches = Table(
    'compatibility_matches',
    metadata,
    Column('match_id', String(100), primary_key=True),
    Column('party_a_id', String(100), nullable=False, index=True),
    Column('party_a_name', Text, nullable=False),
    Column('party_b_id', String(100), nullable=False, index=True),
    Column('party_b_name', Text, nullable=False),
    Column('match_type', String(20), nullable=False),
    Column('status', String(20), nullable=False, default='pending'),
    Column('scores', JSON, nullable=True),
    Column('analysis', JSON, nullable=True),
    Column('is_public', Boolean, nullable=False, default=False),
    Column('share_count', Integer, nullable=False, default=0),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Column('completed_at', DateTime(timezone=True), nullable=True),
    Column('shared_at', DateTime(timezone=True), nullable=True),
    # Public feed: (is_public, shared_at)
    Index('idx_compatibility_matches_public_shared', 'is_public', 'shared_at'),
)
