"""
Lifecycle stores for invitations and matches.

Every state transition is a compare-and-set on the current status, so two
concurrent accepts (or completes) can never both win. There is no local-cache
fallback here: lifecycle state needs one durable source of truth.
"""

import threading
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from palmmatch.core.database import is_configured
from palmmatch.core.errors import CodeCollisionError
from palmmatch.models.invitation import InvitationStatus, MatchInvitation
from palmmatch.models.match import CompatibilityMatch, MatchStatus
from palmmatch.models.scoring import CompatibilityScores


class LifecycleStore(Protocol):
    async def insert_invitation(self, invitation: MatchInvitation) -> None: ...

    async def get_invitation(self, invite_code: str) -> Optional[MatchInvitation]: ...

    async def list_invitations_from(self, from_party: str) -> List[MatchInvitation]: ...

    async def accept_pending(self, invite_code: str, to_party: str, accepted_at: datetime) -> bool: ...

    async def expire_pending(self, invite_code: str) -> bool: ...

    async def insert_match(self, match: CompatibilityMatch) -> None: ...

    async def get_match(self, match_id: str) -> Optional[CompatibilityMatch]: ...

    async def complete_pending(
        self,
        match_id: str,
        scores: CompatibilityScores,
        analysis: Dict[str, Any],
        completed_at: datetime,
    ) -> bool: ...

    async def share_completed(self, match_id: str, shared_at: datetime) -> bool: ...

    async def increment_share_count(self, match_id: str) -> bool: ...

    async def list_public_matches(self, limit: int) -> List[CompatibilityMatch]: ...

    async def list_matches_for_party(self, party_id: str) -> List[CompatibilityMatch]: ...


class InMemoryLifecycleStore:
    """Dict-backed lifecycle store; one lock guards every compare-and-set."""

    def __init__(self):
        self._invitations: Dict[str, MatchInvitation] = {}
        self._matches: Dict[str, CompatibilityMatch] = {}
        self._lock = threading.Lock()

    async def insert_invitation(self, invitation: MatchInvitation) -> None:
        with self._lock:
            if invitation.invite_code in self._invitations:
                raise CodeCollisionError("Invite code already exists")
            self._invitations[invitation.invite_code] = invitation

    async def get_invitation(self, invite_code: str) -> Optional[MatchInvitation]:
        with self._lock:
            return self._invitations.get(invite_code)

    async def list_invitations_from(self, from_party: str) -> List[MatchInvitation]:
        with self._lock:
            sent = [inv for inv in self._invitations.values() if inv.from_party == from_party]
        return sorted(sent, key=lambda inv: inv.created_at, reverse=True)

    async def accept_pending(self, invite_code: str, to_party: str, accepted_at: datetime) -> bool:
        with self._lock:
            current = self._invitations.get(invite_code)
            if current is None or current.status != InvitationStatus.PENDING:
                return False
            self._invitations[invite_code] = current.model_copy(update={
                "to_party": to_party,
                "status": InvitationStatus.ACCEPTED,
                "accepted_at": accepted_at,
            })
            return True

    async def expire_pending(self, invite_code: str) -> bool:
        with self._lock:
            current = self._invitations.get(invite_code)
            if current is None or current.status != InvitationStatus.PENDING:
                return False
            self._invitations[invite_code] = current.model_copy(update={"status": InvitationStatus.EXPIRED})
            return True

    async def insert_match(self, match: CompatibilityMatch) -> None:
        with self._lock:
            self._matches[match.match_id] = match

    async def get_match(self, match_id: str) -> Optional[CompatibilityMatch]:
        with self._lock:
            return self._matches.get(match_id)

    async def complete_pending(self, match_id, scores, analysis, completed_at) -> bool:
        with self._lock:
            current = self._matches.get(match_id)
            if current is None or current.status != MatchStatus.PENDING:
                return False
            self._matches[match_id] = current.model_copy(update={
                "status": MatchStatus.COMPLETED,
                "scores": scores,
                "analysis": dict(analysis),
                "completed_at": completed_at,
            })
            return True

    async def share_completed(self, match_id: str, shared_at: datetime) -> bool:
        with self._lock:
            current = self._matches.get(match_id)
            if current is None or current.status != MatchStatus.COMPLETED:
                return False
            self._matches[match_id] = current.model_copy(update={
                "status": MatchStatus.SHARED,
                "is_public": True,
                "shared_at": shared_at,
            })
            return True

    async def increment_share_count(self, match_id: str) -> bool:
        with self._lock:
            current = self._matches.get(match_id)
            if current is None:
                return False
            self._matches[match_id] = current.model_copy(update={"share_count": current.share_count + 1})
            return True

    async def list_public_matches(self, limit: int) -> List[CompatibilityMatch]:
        with self._lock:
            public = [m for m in self._matches.values() if m.is_public]
        public.sort(key=lambda m: m.shared_at or m.created_at, reverse=True)
        return public[:limit]

    async def list_matches_for_party(self, party_id: str) -> List[CompatibilityMatch]:
        with self._lock:
            mine = [m for m in self._matches.values() if m.has_party(party_id)]
        return sorted(mine, key=lambda m: m.created_at, reverse=True)

    def clear(self) -> None:
        with self._lock:
            self._invitations.clear()
            self._matches.clear()


_store: Optional[LifecycleStore] = None


def get_lifecycle_store() -> LifecycleStore:
    """SQL store when DATABASE_URL is set, otherwise in-memory."""
    global _store
    if _store is None:
        if is_configured():
            from palmmatch.features.matching.store_sql import SqlLifecycleStore
            _store = SqlLifecycleStore()
        else:
            _store = InMemoryLifecycleStore()
    return _store


def set_lifecycle_store(store: Optional[LifecycleStore]) -> None:
    global _store
    _store = store


def clear_store() -> None:
    """Reset the module-level store (tests)."""
    global _store
    if isinstance(_store, InMemoryLifecycleStore):
        _store.clear()
    _store = None
