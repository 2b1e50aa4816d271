"""
Code Broker: issue, resolve, sweep and retire compatibility codes.

Codes are the only way two strangers find each other's readings. Issue and
resolve keep working while the durable store is down (local cache, reported
as durable=False); sweep is best-effort and never raises.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from palmmatch.core.config import settings
from palmmatch.core.database import is_configured
from palmmatch.core.errors import (
    CodeCollisionError,
    CodeExpiredError,
    CodeNotFoundError,
    ConflictError,
    DurableStoreUnavailable,
    ValidationError,
)
from palmmatch.core.logging import log_event
from palmmatch.core.metrics import codes_issued_total, codes_resolved_total
from palmmatch.features.codes.generator import generate_compatibility_code, is_well_formed, normalize_code
from palmmatch.features.codes.store import CodeStore, FallbackCodeStore, InMemoryCodeStore
from palmmatch.models.codes import CompatibilityCode, IssuedCode
from palmmatch.models.reading import ReadingSnapshot

logger = logging.getLogger("palmmatch")


class CodeBroker:
    MAX_ISSUE_ATTEMPTS = 5

    def __init__(self, store: CodeStore, ttl_days: Optional[int] = None):
        self.store = store
        self.ttl_days = settings.CODE_TTL_DAYS if ttl_days is None else ttl_days

    async def issue(self, snapshot: ReadingSnapshot, now: Optional[datetime] = None) -> IssuedCode:
        """
        Store a reading snapshot and hand back a shareable code.

        Raises:
            ConflictError: no unique code after MAX_ISSUE_ATTEMPTS
            DurableStoreUnavailable: only when the store has no local fallback
        """
        now = now or datetime.now(timezone.utc)
        expires_at = now + timedelta(days=self.ttl_days)

        for attempt in range(1, self.MAX_ISSUE_ATTEMPTS + 1):
            record = CompatibilityCode(
                code=generate_compatibility_code(snapshot.profile.name, now),
                issuer_name=snapshot.profile.name,
                reading_snapshot=snapshot,
                issued_at=now,
                expires_at=expires_at,
            )
            try:
                durable = await self.store.put(record)
            except CodeCollisionError:
                logger.info(f"[codes] collision on attempt {attempt}, regenerating")
                continue

            codes_issued_total.inc(labels={"durable": str(durable).lower()})
            log_event(
                "info" if durable else "warning",
                "codes.issued" if durable else "codes.degraded",
                event_type="codes.issued",
                extra={"code": record.code, "durable": durable},
            )
            return IssuedCode(code=record.code, durable=durable, expires_at=expires_at)

        raise ConflictError("Could not allocate a unique compatibility code")

    async def resolve(self, code: str, now: Optional[datetime] = None) -> CompatibilityCode:
        """
        Look up a code and count the use.

        Raises:
            ValidationError: empty code
            CodeNotFoundError: unknown or malformed code
            CodeExpiredError: deactivated or past expires_at (inclusive)
        """
        normalized = normalize_code(code)
        if not normalized:
            raise ValidationError("Code is required")
        if not is_well_formed(normalized):
            codes_resolved_total.inc(labels={"outcome": "not_found"})
            raise CodeNotFoundError("Compatibility code not found")

        now = now or datetime.now(timezone.utc)
        record = await self.store.get(normalized)
        if record is None:
            codes_resolved_total.inc(labels={"outcome": "not_found"})
            raise CodeNotFoundError("Compatibility code not found")

        if record.is_expired(now):
            if not record.durable:
                await self.store.delete(normalized)
            codes_resolved_total.inc(labels={"outcome": "expired"})
            log_event(
                "info",
                "codes.expired",
                event_type="codes.expired",
                extra={"code": normalized, "durable": record.durable},
            )
            raise CodeExpiredError("Compatibility code has expired")

        # A lost increment under concurrent resolves is acceptable
        await self.store.increment_uses(normalized)
        codes_resolved_total.inc(labels={"outcome": "ok"})
        log_event(
            "info",
            "codes.resolved",
            event_type="codes.resolved",
            extra={"code": normalized, "durable": record.durable},
        )
        return record.model_copy(update={"uses": record.uses + 1})

    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """Bulk-delete expired codes. Best-effort; never raises."""
        now = now or datetime.now(timezone.utc)
        try:
            deleted = await self.store.delete_expired(now)
        except DurableStoreUnavailable as exc:
            logger.warning(f"[codes] sweep skipped, durable store unavailable: {exc}")
            return 0
        log_event("info", "codes.swept", event_type="codes.swept", extra={"deleted": deleted})
        return deleted

    async def deactivate(self, code: str) -> None:
        normalized = normalize_code(code)
        if not normalized:
            raise ValidationError("Code is required")
        if not is_well_formed(normalized) or not await self.store.set_active(normalized, False):
            raise CodeNotFoundError("Compatibility code not found")
        log_event(
            "info",
            "codes.deactivated",
            event_type="codes.deactivated",
            extra={"code": normalized},
        )


_broker: Optional[CodeBroker] = None


def build_code_store() -> CodeStore:
    """SQL store with a local-cache fallback when DATABASE_URL is set; otherwise in-memory."""
    if is_configured():
        from palmmatch.features.codes.store_sql import SqlCodeStore
        return FallbackCodeStore(SqlCodeStore(), InMemoryCodeStore(durable=False))
    return InMemoryCodeStore()


def get_code_broker() -> CodeBroker:
    global _broker
    if _broker is None:
        _broker = CodeBroker(build_code_store())
    return _broker


def set_code_broker(broker: Optional[CodeBroker]) -> None:
    global _broker
    _broker = broker


def clear_store() -> None:
    """Drop the module-level broker (tests)."""
    set_code_broker(None)
