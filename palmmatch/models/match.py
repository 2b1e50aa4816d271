"""
palmmatch/models/match.py
Compatibility matches: pending -> completed -> shared (monotonic).
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from palmmatch.models.invitation import MatchType
from palmmatch.models.scoring import CompatibilityScores


class MatchStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    SHARED = "shared"


class MatchParty(BaseModel):
    model_config = ConfigDict(frozen=True)

    party_id: str = Field(min_length=1)
    display_name: str = Field(min_length=1)


class CompatibilityMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    match_id: str
    party_a: MatchParty
    party_b: MatchParty
    match_type: MatchType
    status: MatchStatus = MatchStatus.PENDING
    scores: Optional[CompatibilityScores] = None
    analysis: Optional[Dict[str, Any]] = None
    is_public: bool = False
    share_count: int = Field(default=0, ge=0)
    created_at: datetime
    completed_at: Optional[datetime] = None
    shared_at: Optional[datetime] = None

    def has_party(self, party_id: str) -> bool:
        return party_id in (self.party_a.party_id, self.party_b.party_id)


class ShareSummary(BaseModel):
    """Public-safe view of a shared match."""

    model_config = ConfigDict(frozen=True)

    match_id: str
    names: tuple[str, str]
    overall_score: int
    match_type: MatchType
    created_at: datetime
    shared_at: Optional[datetime] = None


class CreateMatchRequest(BaseModel):
    party_a: MatchParty
    party_b: MatchParty
    match_type: MatchType = MatchType.ROMANTIC


class CompleteMatchRequest(BaseModel):
    scores: CompatibilityScores
    analysis: Dict[str, Any] = Field(default_factory=dict)


class RecordShareRequest(BaseModel):
    platform: str = Field(default="link", max_length=50)
