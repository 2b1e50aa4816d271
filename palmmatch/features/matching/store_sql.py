"""
palmmatch/features/matching/store_sql.py

SQL-backed lifecycle store (SQLAlchemy Core over match_invitations and
compatibility_matches).

Transitions are guarded updates (`UPDATE ... WHERE status = :expected`);
rowcount tells the caller whether it won the race.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import insert, select, update, or_
from sqlalchemy.exc import IntegrityError

from palmmatch.core.config import settings
from palmmatch.core.database import (
    as_utc,
    compatibility_matches,
    get_db_session,
    get_engine,
    match_invitations,
    run_bounded,
)
from palmmatch.core.errors import CodeCollisionError
from palmmatch.models.invitation import InvitationStatus, MatchInvitation
from palmmatch.models.match import CompatibilityMatch, MatchParty, MatchStatus
from palmmatch.models.scoring import CompatibilityScores


def _row_to_invitation(row) -> MatchInvitation:
    return MatchInvitation(
        invite_code=row.invite_code,
        from_party=row.from_party,
        to_party=row.to_party,
        match_type=row.match_type,
        message=row.message,
        status=row.status,
        created_at=as_utc(row.created_at),
        expires_at=as_utc(row.expires_at),
        accepted_at=as_utc(row.accepted_at),
    )


def _row_to_match(row) -> CompatibilityMatch:
    return CompatibilityMatch(
        match_id=row.match_id,
        party_a=MatchParty(party_id=row.party_a_id, display_name=row.party_a_name),
        party_b=MatchParty(party_id=row.party_b_id, display_name=row.party_b_name),
        match_type=row.match_type,
        status=row.status,
        scores=CompatibilityScores.model_validate(row.scores) if row.scores else None,
        analysis=row.analysis,
        is_public=bool(row.is_public),
        share_count=int(row.share_count or 0),
        created_at=as_utc(row.created_at),
        completed_at=as_utc(row.completed_at),
        shared_at=as_utc(row.shared_at),
    )


class SqlLifecycleStore:
    """Durable invitation/match store. Maintains the InMemoryLifecycleStore interface."""

    def __init__(self, engine=None, timeout: Optional[float] = None):
        self._engine = engine
        self.timeout = settings.STORE_TIMEOUT_SECONDS if timeout is None else timeout

    @property
    def engine(self):
        return self._engine if self._engine is not None else get_engine()

    async def _run(self, fn, *args):
        return await run_bounded(fn, *args, timeout=self.timeout, label="Lifecycle store")

    # Invitations

    async def insert_invitation(self, invitation: MatchInvitation) -> None:
        try:
            await self._run(self._insert_invitation_sync, invitation)
        except IntegrityError as exc:
            raise CodeCollisionError("Invite code already exists") from exc

    def _insert_invitation_sync(self, invitation: MatchInvitation) -> None:
        with get_db_session(self.engine) as session:
            session.execute(
                insert(match_invitations).values(
                    invite_code=invitation.invite_code,
                    from_party=invitation.from_party,
                    to_party=invitation.to_party,
                    match_type=invitation.match_type.value,
                    message=invitation.message,
                    status=invitation.status.value,
                    created_at=as_utc(invitation.created_at),
                    expires_at=as_utc(invitation.expires_at),
                    accepted_at=as_utc(invitation.accepted_at),
                )
            )

    async def get_invitation(self, invite_code: str) -> Optional[MatchInvitation]:
        return await self._run(self._get_invitation_sync, invite_code)

    def _get_invitation_sync(self, invite_code: str) -> Optional[MatchInvitation]:
        with get_db_session(self.engine) as session:
            row = session.execute(
                select(match_invitations).where(match_invitations.c.invite_code == invite_code)
            ).first()
        return _row_to_invitation(row) if row else None

    async def list_invitations_from(self, from_party: str) -> List[MatchInvitation]:
        return await self._run(self._list_invitations_sync, from_party)

    def _list_invitations_sync(self, from_party: str) -> List[MatchInvitation]:
        with get_db_session(self.engine) as session:
            rows = session.execute(
                select(match_invitations)
                .where(match_invitations.c.from_party == from_party)
                .order_by(match_invitations.c.created_at.desc())
            ).fetchall()
        return [_row_to_invitation(row) for row in rows]

    async def accept_pending(self, invite_code: str, to_party: str, accepted_at: datetime) -> bool:
        return await self._run(self._accept_sync, invite_code, to_party, accepted_at)

    def _accept_sync(self, invite_code: str, to_party: str, accepted_at: datetime) -> bool:
        with get_db_session(self.engine) as session:
            result = session.execute(
                update(match_invitations)
                .where(
                    match_invitations.c.invite_code == invite_code,
                    match_invitations.c.status == InvitationStatus.PENDING.value,
                )
                .values(
                    to_party=to_party,
                    status=InvitationStatus.ACCEPTED.value,
                    accepted_at=as_utc(accepted_at),
                )
            )
            return result.rowcount == 1

    async def expire_pending(self, invite_code: str) -> bool:
        return await self._run(self._expire_sync, invite_code)

    def _expire_sync(self, invite_code: str) -> bool:
        with get_db_session(self.engine) as session:
            result = session.execute(
                update(match_invitations)
                .where(
                    match_invitations.c.invite_code == invite_code,
                    match_invitations.c.status == InvitationStatus.PENDING.value,
                )
                .values(status=InvitationStatus.EXPIRED.value)
            )
            return result.rowcount == 1

    # Matches

    async def insert_match(self, match: CompatibilityMatch) -> None:
        await self._run(self._insert_match_sync, match)

    def _insert_match_sync(self, match: CompatibilityMatch) -> None:
        with get_db_session(self.engine) as session:
            session.execute(
                insert(compatibility_matches).values(
                    match_id=match.match_id,
                    party_a_id=match.party_a.party_id,
                    party_a_name=match.party_a.display_name,
                    party_b_id=match.party_b.party_id,
                    party_b_name=match.party_b.display_name,
                    match_type=match.match_type.value,
                    status=match.status.value,
                    scores=match.scores.model_dump() if match.scores else None,
                    analysis=match.analysis,
                    is_public=match.is_public,
                    share_count=match.share_count,
                    created_at=as_utc(match.created_at),
                    completed_at=as_utc(match.completed_at),
                    shared_at=as_utc(match.shared_at),
                )
            )

    async def get_match(self, match_id: str) -> Optional[CompatibilityMatch]:
        return await self._run(self._get_match_sync, match_id)

    def _get_match_sync(self, match_id: str) -> Optional[CompatibilityMatch]:
        with get_db_session(self.engine) as session:
            row = session.execute(
                select(compatibility_matches).where(compatibility_matches.c.match_id == match_id)
            ).first()
        return _row_to_match(row) if row else None

    async def complete_pending(
        self,
        match_id: str,
        scores: CompatibilityScores,
        analysis: Dict[str, Any],
        completed_at: datetime,
    ) -> bool:
        return await self._run(self._complete_sync, match_id, scores, analysis, completed_at)

    def _complete_sync(self, match_id, scores, analysis, completed_at) -> bool:
        with get_db_session(self.engine) as session:
            result = session.execute(
                update(compatibility_matches)
                .where(
                    compatibility_matches.c.match_id == match_id,
                    compatibility_matches.c.status == MatchStatus.PENDING.value,
                )
                .values(
                    status=MatchStatus.COMPLETED.value,
                    scores=scores.model_dump(),
                    analysis=analysis,
                    completed_at=as_utc(completed_at),
                )
            )
            return result.rowcount == 1

    async def share_completed(self, match_id: str, shared_at: datetime) -> bool:
        return await self._run(self._share_sync, match_id, shared_at)

    def _share_sync(self, match_id: str, shared_at: datetime) -> bool:
        with get_db_session(self.engine) as session:
            result = session.execute(
                update(compatibility_matches)
                .where(
                    compatibility_matches.c.match_id == match_id,
                    compatibility_matches.c.status == MatchStatus.COMPLETED.value,
                )
                .values(
                    status=MatchStatus.SHARED.value,
                    is_public=True,
                    shared_at=as_utc(shared_at),
                )
            )
            return result.rowcount == 1

    async def increment_share_count(self, match_id: str) -> bool:
        return await self._run(self._increment_share_sync, match_id)

    def _increment_share_sync(self, match_id: str) -> bool:
        with get_db_session(self.engine) as session:
            result = session.execute(
                update(compatibility_matches)
                .where(compatibility_matches.c.match_id == match_id)
                .values(share_count=compatibility_matches.c.share_count + 1)
            )
            return result.rowcount == 1

    async def list_public_matches(self, limit: int) -> List[CompatibilityMatch]:
        return await self._run(self._list_public_sync, limit)

    def _list_public_sync(self, limit: int) -> List[CompatibilityMatch]:
        with get_db_session(self.engine) as session:
            rows = session.execute(
                select(compatibility_matches)
                .where(compatibility_matches.c.is_public.is_(True))
                .order_by(compatibility_matches.c.shared_at.desc())
                .limit(limit)
            ).fetchall()
        return [_row_to_match(row) for row in rows]

    async def list_matches_for_party(self, party_id: str) -> List[CompatibilityMatch]:
        return await self._run(self._list_for_party_sync, party_id)

    def _list_for_party_sync(self, party_id: str) -> List[CompatibilityMatch]:
        with get_db_session(self.engine) as session:
            rows = session.execute(
                select(compatibility_matches)
                .where(or_(
                    compatibility_matches.c.party_a_id == party_id,
                    compatibility_matches.c.party_b_id == party_id,
                ))
                .order_by(compatibility_matches.c.created_at.desc())
            ).fetchall()
        return [_row_to_match(row) for row in rows]
