"""
palmmatch/models/reading.py
Reading documents and birth profiles: the per-person inputs to scoring.
"""

import re
from datetime import date
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from palmmatch.features.zodiac.signs import SIGN_ELEMENTS, SIGN_MODALITIES, SIGN_RULERS, resolve_sign
from palmmatch.models.zodiac import Element, Modality, Sign


# Checked in order, first substring hit wins; unknown non-empty labels count as moderate
PROMINENCE_LEVELS: Tuple[Tuple[Tuple[str, ...], int], ...] = (
    (("well-developed", "prominent"), 3),
    (("moderate", "medium"), 2),
    (("slight", "small"), 1),
)
DEFAULT_PROMINENCE_LEVEL = 2

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])([A-Z])")
_SEPARATOR_RE = re.compile(r"[\s_\-]+")


def normalize_line_name(name: str) -> str:
    """heartLine / heart_line / "Heart Line" -> heart-line"""
    hyphenated = _CAMEL_RE.sub(r"-\1", name.strip())
    return _SEPARATOR_RE.sub("-", hyphenated).strip("-").lower()


def normalize_mount_name(name: str) -> str:
    """"Mount of Venus" / mountOfVenus / Venus -> venus"""
    key = normalize_line_name(name)
    if key.startswith("mount-of-"):
        key = key[len("mount-of-"):]
    return key


def prominence_level(label: Optional[str]) -> Optional[int]:
    if label is None:
        return None
    key = _SEPARATOR_RE.sub("-", label.strip().lower())
    if not key:
        return None
    for markers, level in PROMINENCE_LEVELS:
        if any(marker in key for marker in markers):
            return level
    return DEFAULT_PROMINENCE_LEVEL


class LineEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str = ""
    meaning: str = ""
    personalized_insight: str = ""

    @field_validator("description", "meaning", "personalized_insight", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        # Generated readings sometimes send null for text they could not fill in
        return "" if value is None else value


class MountEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    prominence: str = ""
    meaning: str = ""

    @field_validator("prominence", "meaning", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value

    @property
    def level(self) -> Optional[int]:
        return prominence_level(self.prominence)


class ReadingDocument(BaseModel):
    """Structured result of one person's reading. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    lines: Dict[str, LineEntry] = Field(default_factory=dict)
    mounts: Dict[str, MountEntry] = Field(default_factory=dict)
    special_markings: List[str] = Field(default_factory=list)
    overall_personality: str = ""

    @field_validator("lines", mode="before")
    @classmethod
    def _normalize_lines(cls, value):
        if isinstance(value, dict):
            return {normalize_line_name(str(k)): v for k, v in value.items()}
        return value

    @field_validator("mounts", mode="before")
    @classmethod
    def _normalize_mounts(cls, value):
        if isinstance(value, dict):
            return {normalize_mount_name(str(k)): v for k, v in value.items()}
        return value

    @field_validator("special_markings", mode="before")
    @classmethod
    def _drop_empty_markings(cls, value):
        if value is None:
            return []
        return value

    @field_validator("overall_personality", mode="before")
    @classmethod
    def _personality_none_to_empty(cls, value):
        return "" if value is None else value

    def line_text(self, name: str) -> str:
        entry = self.lines.get(name)
        return entry.description if entry else ""

    def mount_prominence(self, name: str) -> str:
        entry = self.mounts.get(name)
        return entry.prominence if entry else ""

    def markings_text(self) -> str:
        return " ".join(self.special_markings)


class PlaceOfBirth(BaseModel):
    model_config = ConfigDict(frozen=True)

    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class BirthProfile(BaseModel):
    """Birth data. Sign traits derive from date_of_birth and cannot drift."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=200)
    date_of_birth: date
    time_of_birth: Optional[str] = Field(default=None, pattern=r"^\d{1,2}:\d{2}$")
    place_of_birth: Optional[PlaceOfBirth] = None
    relationship_status: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    @computed_field
    @property
    def sign(self) -> Sign:
        return resolve_sign(self.date_of_birth)

    @computed_field
    @property
    def element(self) -> Element:
        return SIGN_ELEMENTS[self.sign]

    @computed_field
    @property
    def modality(self) -> Modality:
        return SIGN_MODALITIES[self.sign]

    @computed_field
    @property
    def ruler(self) -> str:
        return SIGN_RULERS[self.sign]


class ReadingSnapshot(BaseModel):
    """What a compatibility code points at: a reading plus its owner's profile."""

    model_config = ConfigDict(frozen=True)

    reading: ReadingDocument
    profile: BirthProfile

    @property
    def display_name(self) -> str:
        return self.profile.name
