"""
palmmatch/models/invitation.py
Match invitations: pending -> accepted OR expired.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


MAX_MESSAGE_LENGTH = 500


class MatchType(str, Enum):
    ROMANTIC = "romantic"
    FRIENDSHIP = "friendship"
    PLATONIC = "platonic"


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class MatchInvitation(BaseModel):
    model_config = ConfigDict(frozen=True)

    invite_code: str = Field(min_length=12, max_length=12)
    from_party: str
    to_party: Optional[str] = None
    match_type: MatchType
    message: Optional[str] = Field(default=None, max_length=MAX_MESSAGE_LENGTH)
    status: InvitationStatus = InvitationStatus.PENDING
    created_at: datetime
    expires_at: datetime
    accepted_at: Optional[datetime] = None


class CreateInvitationRequest(BaseModel):
    match_type: MatchType
    message: Optional[str] = Field(default=None, max_length=MAX_MESSAGE_LENGTH)
