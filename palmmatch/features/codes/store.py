"""
Code stores.

CodeStore is the narrow interface the broker talks to. InMemoryCodeStore is
the local cache (and the dev store when no DATABASE_URL is set).
FallbackCodeStore decorates a durable store with a local cache that takes
over while the durable store is unavailable.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, Optional, Protocol

from palmmatch.core.errors import CodeCollisionError, DurableStoreUnavailable
from palmmatch.core.logging import code_hint, log_event
from palmmatch.core.metrics import local_cache_codes, store_fallback_total
from palmmatch.models.codes import CompatibilityCode

logger = logging.getLogger("palmmatch")


class CodeStore(Protocol):
    async def put(self, record: CompatibilityCode) -> bool:
        """Insert a new record. Returns True when written durably."""
        ...

    async def get(self, code: str) -> Optional[CompatibilityCode]:
        ...

    async def increment_uses(self, code: str) -> bool:
        ...

    async def set_active(self, code: str, active: bool) -> bool:
        ...

    async def delete(self, code: str) -> bool:
        ...

    async def delete_expired(self, now: datetime) -> int:
        ...


class InMemoryCodeStore:
    """Dict-backed store guarded by a lock."""

    def __init__(self, durable: bool = True):
        self.durable = durable
        self._records: Dict[str, CompatibilityCode] = {}
        self._lock = threading.Lock()

    async def put(self, record: CompatibilityCode) -> bool:
        with self._lock:
            if record.code in self._records:
                raise CodeCollisionError(f"Code already exists: {code_hint(record.code)}")
            self._records[record.code] = record.model_copy(update={"durable": self.durable})
        return self.durable

    async def get(self, code: str) -> Optional[CompatibilityCode]:
        with self._lock:
            return self._records.get(code)

    async def increment_uses(self, code: str) -> bool:
        with self._lock:
            record = self._records.get(code)
            if record is None:
                return False
            self._records[code] = record.model_copy(update={"uses": record.uses + 1})
            return True

    async def set_active(self, code: str, active: bool) -> bool:
        with self._lock:
            record = self._records.get(code)
            if record is None:
                return False
            self._records[code] = record.model_copy(update={"active": active})
            return True

    async def delete(self, code: str) -> bool:
        with self._lock:
            return self._records.pop(code, None) is not None

    async def delete_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [code for code, record in self._records.items() if now >= record.expires_at]
            for code in expired:
                del self._records[code]
            return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


class FallbackCodeStore:
    """
    Durable store with a local-cache fallback.

    - Writes go to the primary; on DurableStoreUnavailable they land in the
      fallback and report durable=False.
    - Reads try the primary first. A primary miss or outage consults the
      fallback, whose records come back marked durable=False.
    """

    def __init__(self, primary: CodeStore, fallback: Optional[InMemoryCodeStore] = None):
        self.primary = primary
        self.fallback = fallback if fallback is not None else InMemoryCodeStore(durable=False)

    def _degraded(self, operation: str, exc: Exception) -> None:
        store_fallback_total.inc(labels={"operation": operation})
        log_event(
            "warning",
            "codes.degraded",
            event_type="codes.degraded",
            error_code="durable_store_unavailable",
            extra={"operation": operation, "reason": str(exc)},
        )

    async def put(self, record: CompatibilityCode) -> bool:
        try:
            return await self.primary.put(record)
        except DurableStoreUnavailable as exc:
            self._degraded("put", exc)
        await self.fallback.put(record)
        local_cache_codes.set(len(self.fallback))
        return False

    async def get(self, code: str) -> Optional[CompatibilityCode]:
        try:
            record = await self.primary.get(code)
            if record is not None:
                return record
        except DurableStoreUnavailable as exc:
            self._degraded("get", exc)
        local = await self.fallback.get(code)
        if local is None:
            return None
        return local.model_copy(update={"durable": False})

    async def increment_uses(self, code: str) -> bool:
        try:
            if await self.primary.increment_uses(code):
                return True
        except DurableStoreUnavailable as exc:
            self._degraded("increment_uses", exc)
        return await self.fallback.increment_uses(code)

    async def set_active(self, code: str, active: bool) -> bool:
        updated = await self.fallback.set_active(code, active)
        try:
            return await self.primary.set_active(code, active) or updated
        except DurableStoreUnavailable as exc:
            self._degraded("set_active", exc)
            if not updated:
                raise
            return updated

    async def delete(self, code: str) -> bool:
        removed = await self.fallback.delete(code)
        local_cache_codes.set(len(self.fallback))
        try:
            return await self.primary.delete(code) or removed
        except DurableStoreUnavailable as exc:
            self._degraded("delete", exc)
            return removed

    async def delete_expired(self, now: datetime) -> int:
        deleted = await self.fallback.delete_expired(now)
        local_cache_codes.set(len(self.fallback))
        try:
            deleted += await self.primary.delete_expired(now)
        except DurableStoreUnavailable as exc:
            self._degraded("delete_expired", exc)
        return deleted
