"""
palmmatch/features/matching/matches.py
Compatibility matches: create, complete (idempotent), publish, share, list.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from palmmatch.core.config import settings
from palmmatch.core.errors import (
    ConflictError,
    NotFoundError,
    NotReadyError,
    PermissionError,
    ValidationError,
)
from palmmatch.core.logging import log_event
from palmmatch.core.metrics import matches_total
from palmmatch.features.matching.store import LifecycleStore, get_lifecycle_store
from palmmatch.models.invitation import MatchType
from palmmatch.models.match import CompatibilityMatch, MatchParty, MatchStatus, ShareSummary
from palmmatch.models.scoring import CompatibilityScores


def to_share_summary(match: CompatibilityMatch) -> ShareSummary:
    return ShareSummary(
        match_id=match.match_id,
        names=(match.party_a.display_name, match.party_b.display_name),
        overall_score=match.scores.overall if match.scores else 0,
        match_type=match.match_type,
        created_at=match.created_at,
        shared_at=match.shared_at,
    )


async def _require_match(store: LifecycleStore, match_id: str) -> CompatibilityMatch:
    match = await store.get_match(match_id)
    if match is None:
        raise NotFoundError(f"Match not found: {match_id}")
    return match


def _same_payload(match: CompatibilityMatch, scores: CompatibilityScores, analysis: Dict[str, Any]) -> bool:
    return match.scores == scores and (match.analysis or {}) == (analysis or {})


async def create_match(
    party_a: MatchParty,
    party_b: MatchParty,
    match_type: MatchType,
    *,
    caller_id: Optional[str] = None,
    now: Optional[datetime] = None,
    store: Optional[LifecycleStore] = None,
) -> CompatibilityMatch:
    """Open a pending match. When caller_id is given it must be one of the two parties."""
    if party_a.party_id == party_b.party_id:
        raise ValidationError("A match needs two different parties")
    if caller_id is not None and caller_id not in (party_a.party_id, party_b.party_id):
        raise PermissionError("You can only open a match you are part of")

    if store is None:
        store = get_lifecycle_store()
    match = CompatibilityMatch(
        match_id=str(uuid4()),
        party_a=party_a,
        party_b=party_b,
        match_type=match_type,
        status=MatchStatus.PENDING,
        created_at=now or datetime.now(timezone.utc),
    )
    await store.insert_match(match)
    matches_total.inc(labels={"event": "created"})
    return match


async def get_match(match_id: str, *, store: Optional[LifecycleStore] = None) -> CompatibilityMatch:
    return await _require_match(store if store is not None else get_lifecycle_store(), match_id)


async def complete_match(
    match_id: str,
    scores: CompatibilityScores,
    analysis: Dict[str, Any],
    *,
    caller_id: Optional[str] = None,
    now: Optional[datetime] = None,
    store: Optional[LifecycleStore] = None,
) -> CompatibilityMatch:
    """
    Attach scores and analysis; pending -> completed.

    Idempotent: repeating the same payload on a completed/shared match
    returns it unchanged.

    Raises:
        NotFoundError: unknown match
        PermissionError: caller_id given and not a party to the match
        ConflictError: a different payload was already recorded
    """
    if store is None:
        store = get_lifecycle_store()
    match = await _require_match(store, match_id)
    if caller_id is not None and not match.has_party(caller_id):
        raise PermissionError("Only a party to the match can complete it")

    if match.status == MatchStatus.PENDING:
        completed_at = now or datetime.now(timezone.utc)
        if await store.complete_pending(match_id, scores, analysis, completed_at):
            matches_total.inc(labels={"event": "completed"})
            log_event(
                "info",
                "match.completed",
                event_type="match.completed",
                extra={"match_id": match_id, "overall": scores.overall},
            )
            return await _require_match(store, match_id)
        # lost the race; fall through to the idempotence check
        match = await _require_match(store, match_id)

    if _same_payload(match, scores, analysis):
        return match
    raise ConflictError("Match was already completed with a different result")


async def publish_match(
    match_id: str,
    caller_id: str,
    *,
    now: Optional[datetime] = None,
    store: Optional[LifecycleStore] = None,
) -> ShareSummary:
    """
    Make a completed match public; completed -> shared.

    Publishing an already shared match returns the same summary.

    Raises:
        NotFoundError: unknown match
        PermissionError: caller is not a party to the match
        NotReadyError: match is still pending
    """
    if store is None:
        store = get_lifecycle_store()
    match = await _require_match(store, match_id)

    if not match.has_party(caller_id):
        raise PermissionError("Only a party to the match can publish it")
    if match.status == MatchStatus.PENDING:
        raise NotReadyError("Match is not completed yet")

    if match.status == MatchStatus.COMPLETED:
        shared_at = now or datetime.now(timezone.utc)
        if await store.share_completed(match_id, shared_at):
            matches_total.inc(labels={"event": "published"})
            log_event(
                "info",
                "match.published",
                party_id=caller_id,
                event_type="match.published",
                extra={"match_id": match_id},
            )
        match = await _require_match(store, match_id)

    return to_share_summary(match)


async def record_share(
    match_id: str,
    caller_id: str,
    platform: str = "link",
    *,
    store: Optional[LifecycleStore] = None,
) -> CompatibilityMatch:
    """Count one outbound share. Public matches may be shared by anyone."""
    if store is None:
        store = get_lifecycle_store()
    match = await _require_match(store, match_id)

    if match.status == MatchStatus.PENDING:
        raise NotReadyError("Match is not completed yet")
    if not match.is_public and not match.has_party(caller_id):
        raise PermissionError("Only a party to the match can share it")

    await store.increment_share_count(match_id)
    matches_total.inc(labels={"event": "shared"})
    log_event(
        "info",
        "match.shared",
        party_id=caller_id,
        event_type="match.shared",
        extra={"match_id": match_id, "platform": platform},
    )
    return await _require_match(store, match_id)


async def list_public_matches(
    limit: Optional[int] = None,
    *,
    store: Optional[LifecycleStore] = None,
) -> List[ShareSummary]:
    if store is None:
        store = get_lifecycle_store()
    limit = settings.PUBLIC_FEED_LIMIT if limit is None else max(1, min(limit, 100))
    return [to_share_summary(m) for m in await store.list_public_matches(limit)]


async def list_matches_for_party(
    party_id: str,
    *,
    store: Optional[LifecycleStore] = None,
) -> List[CompatibilityMatch]:
    if store is None:
        store = get_lifecycle_store()
    return await store.list_matches_for_party(party_id)
