"""
palmmatch/features/matching/invitations.py
Match invitations: create, accept (exactly once), inspect.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from palmmatch.core.config import settings
from palmmatch.core.errors import (
    AlreadyUsedError,
    CodeCollisionError,
    ConflictError,
    InvalidCodeError,
    InvitationExpiredError,
    ValidationError,
)
from palmmatch.core.logging import log_event
from palmmatch.core.metrics import invitations_total
from palmmatch.features.codes.generator import generate_invite_code, normalize_code
from palmmatch.features.matching.store import LifecycleStore, get_lifecycle_store
from palmmatch.models.invitation import (
    MAX_MESSAGE_LENGTH,
    InvitationStatus,
    MatchInvitation,
    MatchType,
)

MAX_CODE_ATTEMPTS = 5


def _compute_status(invitation: MatchInvitation, now: Optional[datetime] = None) -> InvitationStatus:
    """
    Current status, accounting for expiry.

    A pending invitation at or past expires_at reads as expired even before
    anything writes that transition.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if invitation.status == InvitationStatus.PENDING and now >= invitation.expires_at:
        return InvitationStatus.EXPIRED
    return invitation.status


def _with_status(invitation: MatchInvitation, now: Optional[datetime]) -> MatchInvitation:
    status = _compute_status(invitation, now)
    if status == invitation.status:
        return invitation
    return invitation.model_copy(update={"status": status})


async def create_invitation(
    from_party: str,
    match_type: MatchType,
    message: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
    store: Optional[LifecycleStore] = None,
) -> MatchInvitation:
    """
    Create a pending invitation valid for INVITE_TTL_DAYS.

    Raises:
        ValidationError: empty sender or message over 500 characters
        DurableStoreUnavailable: durable store down (no fallback)
    """
    if not from_party or not from_party.strip():
        raise ValidationError("from_party is required")
    if message is not None and len(message) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"message must be at most {MAX_MESSAGE_LENGTH} characters")

    if store is None:
        store = get_lifecycle_store()
    now = now or datetime.now(timezone.utc)
    expires_at = now + timedelta(days=settings.INVITE_TTL_DAYS)

    for _ in range(MAX_CODE_ATTEMPTS):
        invitation = MatchInvitation(
            invite_code=generate_invite_code(now),
            from_party=from_party,
            match_type=match_type,
            message=message,
            status=InvitationStatus.PENDING,
            created_at=now,
            expires_at=expires_at,
        )
        try:
            await store.insert_invitation(invitation)
        except CodeCollisionError:
            continue

        invitations_total.inc(labels={"event": "created"})
        log_event(
            "info",
            "invitation.created",
            party_id=from_party,
            event_type="invitation.created",
            extra={"invite_code": invitation.invite_code, "match_type": match_type.value},
        )
        return invitation

    raise ConflictError("Could not allocate a unique invite code")


async def accept_invitation(
    invite_code: str,
    to_party: str,
    *,
    now: Optional[datetime] = None,
    store: Optional[LifecycleStore] = None,
) -> MatchInvitation:
    """
    Accept a pending invitation. Exactly one concurrent caller wins.

    Checks, in order: existence, status, expiry, self-accept.

    Raises:
        InvalidCodeError: no such invitation
        AlreadyUsedError: already accepted, or lost the race
        InvitationExpiredError: already expired, or now >= expires_at (record moves to expired)
        ValidationError: inviter accepting their own invitation
    """
    if store is None:
        store = get_lifecycle_store()
    now = now or datetime.now(timezone.utc)
    code = normalize_code(invite_code)

    invitation = await store.get_invitation(code) if code else None
    if invitation is None:
        invitations_total.inc(labels={"event": "invalid"})
        raise InvalidCodeError("Invitation code not found")

    if invitation.status == InvitationStatus.EXPIRED:
        invitations_total.inc(labels={"event": "expired"})
        raise InvitationExpiredError("Invitation has expired")

    if invitation.status != InvitationStatus.PENDING:
        invitations_total.inc(labels={"event": "already_used"})
        raise AlreadyUsedError("Invitation is no longer pending")

    if now >= invitation.expires_at:
        await store.expire_pending(code)
        invitations_total.inc(labels={"event": "expired"})
        raise InvitationExpiredError("Invitation has expired")

    if to_party == invitation.from_party:
        raise ValidationError("You cannot accept your own invitation")

    if not await store.accept_pending(code, to_party, now):
        invitations_total.inc(labels={"event": "already_used"})
        raise AlreadyUsedError("Invitation is no longer pending")

    invitations_total.inc(labels={"event": "accepted"})
    log_event(
        "info",
        "invitation.accepted",
        party_id=to_party,
        event_type="invitation.accepted",
        extra={"invite_code": code},
    )
    return invitation.model_copy(update={
        "to_party": to_party,
        "status": InvitationStatus.ACCEPTED,
        "accepted_at": now,
    })


async def get_invitation(
    invite_code: str,
    *,
    now: Optional[datetime] = None,
    store: Optional[LifecycleStore] = None,
) -> MatchInvitation:
    if store is None:
        store = get_lifecycle_store()
    code = normalize_code(invite_code)
    invitation = await store.get_invitation(code) if code else None
    if invitation is None:
        raise InvalidCodeError("Invitation code not found")
    return _with_status(invitation, now)


async def list_sent_invitations(
    from_party: str,
    *,
    now: Optional[datetime] = None,
    store: Optional[LifecycleStore] = None,
) -> List[MatchInvitation]:
    if store is None:
        store = get_lifecycle_store()
    return [_with_status(inv, now) for inv in await store.list_invitations_from(from_party)]
