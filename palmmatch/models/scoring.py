"""
palmmatch/models/scoring.py
Score, weight and result models shared by the scoring, astrology and
correlation engines.
"""

from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from palmmatch.models.zodiac import Element, Modality, Sign


WEIGHT_TOLERANCE = 0.001


def round_half_up(value: float) -> int:
    """Round .5 away from zero (Python's round() is banker's rounding)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def clamp_score(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


class CompatibilityScores(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall: int = Field(ge=0, le=100)
    affinity: int = Field(ge=0, le=100)
    communication: int = Field(ge=0, le=100)
    life_direction: int = Field(ge=0, le=100)
    vitality: int = Field(ge=0, le=100)


class ScoringWeights(BaseModel):
    """Weights of the four palm factors in the overall score."""

    model_config = ConfigDict(frozen=True)

    affinity: float = Field(default=0.30, ge=0, le=1)
    communication: float = Field(default=0.25, ge=0, le=1)
    life_direction: float = Field(default=0.25, ge=0, le=1)
    vitality: float = Field(default=0.20, ge=0, le=1)

    @model_validator(mode="after")
    def _sum_to_one(self):
        total = self.affinity + self.communication + self.life_direction + self.vitality
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            raise ValueError(f"scoring weights must sum to 1.0 (got {total:.3f})")
        return self


class BlendWeights(BaseModel):
    """Weights of the astrology, palm and correlation parts of the final score."""

    model_config = ConfigDict(frozen=True)

    astrology: float = Field(default=0.4, ge=0, le=1)
    palm: float = Field(default=0.4, ge=0, le=1)
    correlation: float = Field(default=0.2, ge=0, le=1)

    @model_validator(mode="after")
    def _sum_to_one(self):
        total = self.astrology + self.palm + self.correlation
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            raise ValueError(f"blend weights must sum to 1.0 (got {total:.3f})")
        return self


class RuleSource(str, Enum):
    LINE = "line"
    MOUNT = "mount"
    MARKINGS = "markings"


class ScoringRule(BaseModel):
    """One bonus rule.

    LINE rules fire when a keyword appears in both parties' line description.
    MOUNT rules fire when both mount prominences are compatible.
    MARKINGS rules fire when a keyword appears in both parties' special markings.
    """

    model_config = ConfigDict(frozen=True)

    source: RuleSource
    target: str = ""
    keywords: Tuple[str, ...] = ()
    bonus: int = Field(ge=0)


class FactorTable(BaseModel):
    model_config = ConfigDict(frozen=True)

    base: int = Field(ge=0, le=100)
    rules: Tuple[ScoringRule, ...] = ()


class ScoringTables(BaseModel):
    model_config = ConfigDict(frozen=True)

    affinity: FactorTable
    communication: FactorTable
    life_direction: FactorTable
    vitality: FactorTable


class ElementalHarmony(BaseModel):
    model_config = ConfigDict(frozen=True)

    element1: Element
    element2: Element
    score: int
    description: str


class ModalityAlignment(BaseModel):
    model_config = ConfigDict(frozen=True)

    modality1: Modality
    modality2: Modality
    score: int
    description: str


class AstroCompatibility(BaseModel):
    model_config = ConfigDict(frozen=True)

    sign1: Sign
    sign2: Sign
    sign_score: int
    elemental_harmony: ElementalHarmony
    modality_alignment: ModalityAlignment
    label: str = ""


class CorrelationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall_score: int = Field(ge=0, le=100)
    astrology_score: int
    palm_score: int
    correlation_score: int = Field(ge=0, le=100)
    correlation_tags: List[str] = Field(default_factory=list)


class CompatibilityReport(BaseModel):
    """Everything computed for one pair of readings."""

    model_config = ConfigDict(frozen=True)

    names: Tuple[str, str]
    match_type: str
    scores: CompatibilityScores
    astrology: AstroCompatibility
    correlation: CorrelationResult
    analysis: Dict[str, Any] = Field(default_factory=dict)
    match_id: Optional[str] = None
