"""
palmmatch/models/codes.py
Compatibility codes: a short shareable handle onto a stored reading snapshot.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from palmmatch.models.reading import BirthProfile, ReadingDocument, ReadingSnapshot


class CompatibilityCode(BaseModel):
    """Persisted code record.

    `durable` is not stored; it reports whether this copy came from the
    durable store (True) or the local cache (False).
    """

    model_config = ConfigDict(frozen=True)

    code: str = Field(min_length=12, max_length=12)
    issuer_name: str
    reading_snapshot: ReadingSnapshot
    issued_at: datetime
    expires_at: datetime
    active: bool = True
    uses: int = Field(default=0, ge=0)
    durable: bool = Field(default=True, exclude=True)

    def is_expired(self, now: datetime) -> bool:
        """Expiry is inclusive: a code is dead at exactly expires_at."""
        return not self.active or now >= self.expires_at


class IssuedCode(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    durable: bool
    expires_at: datetime


class IssueCodeRequest(BaseModel):
    reading: ReadingDocument
    profile: BirthProfile

    def to_snapshot(self) -> ReadingSnapshot:
        return ReadingSnapshot(reading=self.reading, profile=self.profile)


class ResolveCodeRequest(BaseModel):
    code: str = Field(max_length=64)
