"""
palmmatch/features/codes/store_sql.py

SQL-backed code store (SQLAlchemy Core over compatibility_codes).

Maintains the same interface as InMemoryCodeStore. Every call runs in a
worker thread bounded by STORE_TIMEOUT_SECONDS; timeouts and driver errors
surface as DurableStoreUnavailable so the broker can degrade.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError

from palmmatch.core.config import settings
from palmmatch.core.database import as_utc, compatibility_codes, get_db_session, get_engine, run_bounded
from palmmatch.core.errors import CodeCollisionError
from palmmatch.core.logging import code_hint
from palmmatch.models.codes import CompatibilityCode
from palmmatch.models.reading import ReadingSnapshot


def _row_to_record(row) -> CompatibilityCode:
    return CompatibilityCode(
        code=row.code,
        issuer_name=row.issuer_name,
        reading_snapshot=ReadingSnapshot.model_validate(row.reading_snapshot),
        issued_at=as_utc(row.issued_at),
        expires_at=as_utc(row.expires_at),
        active=bool(row.active),
        uses=int(row.uses or 0),
        durable=True,
    )


class SqlCodeStore:
    """Durable code store."""

    def __init__(self, engine=None, timeout: Optional[float] = None):
        self._engine = engine
        self.timeout = settings.STORE_TIMEOUT_SECONDS if timeout is None else timeout

    @property
    def engine(self):
        return self._engine if self._engine is not None else get_engine()

    async def _run(self, fn, *args):
        return await run_bounded(fn, *args, timeout=self.timeout, label="Code store")

    async def put(self, record: CompatibilityCode) -> bool:
        try:
            await self._run(self._put_sync, record)
        except IntegrityError as exc:
            raise CodeCollisionError(f"Code already exists: {code_hint(record.code)}") from exc
        return True

    def _put_sync(self, record: CompatibilityCode) -> None:
        with get_db_session(self.engine) as session:
            session.execute(
                insert(compatibility_codes).values(
                    code=record.code,
                    issuer_name=record.issuer_name,
                    reading_snapshot=record.reading_snapshot.model_dump(mode="json"),
                    issued_at=as_utc(record.issued_at),
                    expires_at=as_utc(record.expires_at),
                    active=record.active,
                    uses=record.uses,
                )
            )

    async def get(self, code: str) -> Optional[CompatibilityCode]:
        return await self._run(self._get_sync, code)

    def _get_sync(self, code: str) -> Optional[CompatibilityCode]:
        with get_db_session(self.engine) as session:
            row = session.execute(
                select(compatibility_codes).where(compatibility_codes.c.code == code)
            ).first()
        return _row_to_record(row) if row else None

    async def increment_uses(self, code: str) -> bool:
        return await self._run(self._increment_sync, code)

    def _increment_sync(self, code: str) -> bool:
        with get_db_session(self.engine) as session:
            result = session.execute(
                update(compatibility_codes)
                .where(compatibility_codes.c.code == code)
                .values(uses=compatibility_codes.c.uses + 1)
            )
            return result.rowcount > 0

    async def set_active(self, code: str, active: bool) -> bool:
        return await self._run(self._set_active_sync, code, active)

    def _set_active_sync(self, code: str, active: bool) -> bool:
        with get_db_session(self.engine) as session:
            result = session.execute(
                update(compatibility_codes)
                .where(compatibility_codes.c.code == code)
                .values(active=active)
            )
            return result.rowcount > 0

    async def delete(self, code: str) -> bool:
        return await self._run(self._delete_sync, code)

    def _delete_sync(self, code: str) -> bool:
        with get_db_session(self.engine) as session:
            result = session.execute(
                delete(compatibility_codes).where(compatibility_codes.c.code == code)
            )
            return result.rowcount > 0

    async def delete_expired(self, now: datetime) -> int:
        return await self._run(self._delete_expired_sync, now)

    def _delete_expired_sync(self, now: datetime) -> int:
        with get_db_session(self.engine) as session:
            result = session.execute(
                delete(compatibility_codes).where(compatibility_codes.c.expires_at <= as_utc(now))
            )
            return result.rowcount or 0
