"""
Cross-System Correlator

Merges palm scores and astrological compatibility into one overall score, a
correlation (agreement) score, and templated correlation tags.
"""

from typing import List, Optional, Tuple

from palmmatch.core.config import settings
from palmmatch.models.scoring import (
    AstroCompatibility,
    BlendWeights,
    CompatibilityScores,
    CorrelationResult,
    clamp_score,
    round_half_up,
)
from palmmatch.models.zodiac import SignTraits


# (palm factor, astro component, tag when both are strong)
AGREEMENT_PAIRS: Tuple[Tuple[str, str, str], ...] = (
    ("affinity", "elemental_harmony", "Heart line and elemental harmony both strong"),
    ("communication", "modality_alignment", "Head line and modality alignment both strong"),
    ("life_direction", "sign_score", "Fate line and sign compatibility both strong"),
    ("vitality", "elemental_harmony", "Life line and elemental energy both strong"),
)

# (ruler, palm factor, tag)
RULER_TAGS: Tuple[Tuple[str, str, str], ...] = (
    ("venus", "affinity", "Heart line aligns with Venus influence"),
    ("mercury", "communication", "Head line correlates with Mercury communication style"),
    ("mars", "vitality", "Life line reflects Mars energy"),
    ("jupiter", "life_direction", "Fate line expands under Jupiter influence"),
)


def default_blend() -> BlendWeights:
    return BlendWeights(
        astrology=settings.BLEND_WEIGHT_ASTROLOGY,
        palm=settings.BLEND_WEIGHT_PALM,
        correlation=settings.BLEND_WEIGHT_CORRELATION,
    )


def _astro_component(astro: AstroCompatibility, name: str) -> int:
    if name == "sign_score":
        return astro.sign_score
    if name == "elemental_harmony":
        return astro.elemental_harmony.score
    if name == "modality_alignment":
        return astro.modality_alignment.score
    raise KeyError(name)


def correlation_score(scores: CompatibilityScores, astro: AstroCompatibility) -> int:
    """Mean agreement (100 - |palm - astro|) over the paired components."""
    agreements = [
        100 - abs(getattr(scores, factor) - _astro_component(astro, component))
        for factor, component, _ in AGREEMENT_PAIRS
    ]
    return clamp_score(sum(agreements) / len(agreements))


def correlation_tags(
    scores: CompatibilityScores,
    astro: AstroCompatibility,
    traits1: Optional[SignTraits] = None,
    traits2: Optional[SignTraits] = None,
    threshold: Optional[int] = None,
) -> List[str]:
    threshold = settings.CORRELATION_TAG_THRESHOLD if threshold is None else threshold
    tags: List[str] = []

    for factor, component, tag in AGREEMENT_PAIRS:
        if getattr(scores, factor) >= threshold and _astro_component(astro, component) >= threshold:
            tags.append(tag)

    rulers = {t.ruler for t in (traits1, traits2) if t is not None}
    for ruler, factor, tag in RULER_TAGS:
        if ruler in rulers and getattr(scores, factor) >= threshold:
            tags.append(tag)

    # dedupe, keep first occurrence
    return list(dict.fromkeys(tags))


def combine(
    scores: CompatibilityScores,
    astro: AstroCompatibility,
    traits1: Optional[SignTraits] = None,
    traits2: Optional[SignTraits] = None,
    blend: Optional[BlendWeights] = None,
    threshold: Optional[int] = None,
) -> CorrelationResult:
    """Blend palm and astrology into the final verdict."""
    blend = blend or default_blend()
    agreement = correlation_score(scores, astro)
    overall = round_half_up(
        astro.sign_score * blend.astrology
        + scores.overall * blend.palm
        + agreement * blend.correlation
    )
    return CorrelationResult(
        overall_score=max(0, min(100, overall)),
        astrology_score=astro.sign_score,
        palm_score=scores.overall,
        correlation_score=agreement,
        correlation_tags=correlation_tags(scores, astro, traits1, traits2, threshold),
    )
