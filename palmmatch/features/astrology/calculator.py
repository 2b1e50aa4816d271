"""
Astrological Compatibility Calculator

Combines sign, element and modality of two birth profiles into a sign score
plus qualitative elemental harmony and modality alignment.

All tables hold one triangle keyed by the unordered pair, so every lookup is
symmetric. Pure and deterministic; never raises for valid signs.
"""

from typing import Dict, FrozenSet, Optional, Tuple

from palmmatch.features.zodiac.signs import SIGN_ELEMENTS, SIGN_MODALITIES
from palmmatch.models.reading import BirthProfile
from palmmatch.models.scoring import AstroCompatibility, ElementalHarmony, ModalityAlignment
from palmmatch.models.zodiac import Element, Modality, Sign


DEFAULT_SIGN_SCORE = 70
DEFAULT_ELEMENT_SCORE = 70
DEFAULT_MODALITY_SCORE = 70

S = Sign

# Graded by the angle between the signs:
# trine 85-95, sextile 80-88, same sign 75-80, opposition 70-78,
# semi-sextile 60-66, quincunx 52-58, square 50-58.
_SIGN_PAIRS: Tuple[Tuple[Sign, Sign, int], ...] = (
    # same sign
    (S.ARIES, S.ARIES, 78), (S.TAURUS, S.TAURUS, 80), (S.GEMINI, S.GEMINI, 76),
    (S.CANCER, S.CANCER, 80), (S.LEO, S.LEO, 77), (S.VIRGO, S.VIRGO, 75),
    (S.LIBRA, S.LIBRA, 78), (S.SCORPIO, S.SCORPIO, 76), (S.SAGITTARIUS, S.SAGITTARIUS, 79),
    (S.CAPRICORN, S.CAPRICORN, 77), (S.AQUARIUS, S.AQUARIUS, 78), (S.PISCES, S.PISCES, 80),
    # semi-sextile
    (S.ARIES, S.TAURUS, 62), (S.TAURUS, S.GEMINI, 60), (S.GEMINI, S.CANCER, 63),
    (S.CANCER, S.LEO, 64), (S.LEO, S.VIRGO, 61), (S.VIRGO, S.LIBRA, 62),
    (S.LIBRA, S.SCORPIO, 65), (S.SCORPIO, S.SAGITTARIUS, 60), (S.SAGITTARIUS, S.CAPRICORN, 61),
    (S.CAPRICORN, S.AQUARIUS, 62), (S.AQUARIUS, S.PISCES, 64), (S.PISCES, S.ARIES, 66),
    # sextile
    (S.ARIES, S.GEMINI, 85), (S.TAURUS, S.CANCER, 86), (S.GEMINI, S.LEO, 82),
    (S.CANCER, S.VIRGO, 84), (S.LEO, S.LIBRA, 85), (S.VIRGO, S.SCORPIO, 86),
    (S.LIBRA, S.SAGITTARIUS, 83), (S.SCORPIO, S.CAPRICORN, 87), (S.SAGITTARIUS, S.AQUARIUS, 84),
    (S.CAPRICORN, S.PISCES, 85), (S.AQUARIUS, S.ARIES, 80), (S.PISCES, S.TAURUS, 88),
    # square
    (S.ARIES, S.CANCER, 52), (S.TAURUS, S.LEO, 54), (S.GEMINI, S.VIRGO, 56),
    (S.CANCER, S.LIBRA, 50), (S.LEO, S.SCORPIO, 55), (S.VIRGO, S.SAGITTARIUS, 53),
    (S.LIBRA, S.CAPRICORN, 52), (S.SCORPIO, S.AQUARIUS, 54), (S.SAGITTARIUS, S.PISCES, 57),
    (S.CAPRICORN, S.ARIES, 50), (S.AQUARIUS, S.TAURUS, 51), (S.PISCES, S.GEMINI, 58),
    # trine
    (S.ARIES, S.LEO, 95), (S.TAURUS, S.VIRGO, 92), (S.GEMINI, S.LIBRA, 92),
    (S.CANCER, S.SCORPIO, 94), (S.LEO, S.SAGITTARIUS, 88), (S.VIRGO, S.CAPRICORN, 91),
    (S.LIBRA, S.AQUARIUS, 90), (S.SCORPIO, S.PISCES, 93), (S.SAGITTARIUS, S.ARIES, 90),
    (S.CAPRICORN, S.TAURUS, 94), (S.AQUARIUS, S.GEMINI, 88), (S.PISCES, S.CANCER, 95),
    # quincunx
    (S.ARIES, S.VIRGO, 54), (S.TAURUS, S.LIBRA, 57), (S.GEMINI, S.SCORPIO, 52),
    (S.CANCER, S.SAGITTARIUS, 53), (S.LEO, S.CAPRICORN, 55), (S.VIRGO, S.AQUARIUS, 56),
    (S.LIBRA, S.PISCES, 54), (S.SCORPIO, S.ARIES, 56), (S.SAGITTARIUS, S.TAURUS, 52),
    (S.CAPRICORN, S.GEMINI, 53), (S.AQUARIUS, S.CANCER, 55), (S.PISCES, S.LEO, 58),
    # opposition
    (S.ARIES, S.LIBRA, 75), (S.TAURUS, S.SCORPIO, 76), (S.GEMINI, S.SAGITTARIUS, 75),
    (S.CANCER, S.CAPRICORN, 72), (S.LEO, S.AQUARIUS, 78), (S.VIRGO, S.PISCES, 74),
)

SIGN_SCORES: Dict[FrozenSet[Sign], int] = {frozenset((a, b)): score for a, b, score in _SIGN_PAIRS}

ELEMENT_SCORES: Dict[FrozenSet[Element], int] = {
    frozenset((Element.FIRE,)): 85,
    frozenset((Element.FIRE, Element.EARTH)): 60,
    frozenset((Element.FIRE, Element.AIR)): 90,
    frozenset((Element.FIRE, Element.WATER)): 45,
    frozenset((Element.EARTH,)): 80,
    frozenset((Element.EARTH, Element.AIR)): 55,
    frozenset((Element.EARTH, Element.WATER)): 85,
    frozenset((Element.AIR,)): 85,
    frozenset((Element.AIR, Element.WATER)): 60,
    frozenset((Element.WATER,)): 90,
}

MODALITY_SCORES: Dict[FrozenSet[Modality], int] = {
    frozenset((Modality.CARDINAL,)): 70,
    frozenset((Modality.CARDINAL, Modality.FIXED)): 85,
    frozenset((Modality.CARDINAL, Modality.MUTABLE)): 75,
    frozenset((Modality.FIXED,)): 65,
    frozenset((Modality.FIXED, Modality.MUTABLE)): 80,
    frozenset((Modality.MUTABLE,)): 70,
}

ELEMENT_DESCRIPTIONS: Dict[FrozenSet[Element], str] = {
    frozenset((Element.FIRE, Element.AIR)): "Fire and air create excitement - air feeds fire's passion",
    frozenset((Element.EARTH, Element.WATER)): "Earth and water are naturally nurturing - stable and flowing",
    frozenset((Element.FIRE, Element.EARTH)): "Fire and earth can be challenging but growth-oriented",
    frozenset((Element.AIR, Element.WATER)): "Air and water bring different perspectives - mental vs emotional",
}
GENERIC_ELEMENT_DESCRIPTION = "Unique combination with learning opportunities"

LABEL_TIERS: Tuple[Tuple[int, str], ...] = (
    (85, "excellent"),
    (70, "good"),
    (50, "moderate"),
)


def sign_score(sign1: Sign, sign2: Sign, table: Optional[Dict[FrozenSet[Sign], int]] = None) -> int:
    return (table if table is not None else SIGN_SCORES).get(frozenset((sign1, sign2)), DEFAULT_SIGN_SCORE)


def _element_description(element1: Element, element2: Element) -> str:
    if element1 == element2:
        return f"Both {element1.value} signs - natural understanding and similar energy"
    return ELEMENT_DESCRIPTIONS.get(frozenset((element1, element2)), GENERIC_ELEMENT_DESCRIPTION)


def _modality_description(modality1: Modality, modality2: Modality) -> str:
    if modality1 == modality2:
        return f"Both {modality1.value} signs - similar approach to change and action"
    return (
        f"{modality1.value.capitalize()} and {modality2.value} create dynamic balance"
        " - different but complementary approaches"
    )


def elemental_harmony(element1: Element, element2: Element) -> ElementalHarmony:
    return ElementalHarmony(
        element1=element1,
        element2=element2,
        score=ELEMENT_SCORES.get(frozenset((element1, element2)), DEFAULT_ELEMENT_SCORE),
        description=_element_description(element1, element2),
    )


def modality_alignment(modality1: Modality, modality2: Modality) -> ModalityAlignment:
    return ModalityAlignment(
        modality1=modality1,
        modality2=modality2,
        score=MODALITY_SCORES.get(frozenset((modality1, modality2)), DEFAULT_MODALITY_SCORE),
        description=_modality_description(modality1, modality2),
    )


def compatibility_label(score: int) -> str:
    """Recommendation tier for a 0-100 score."""
    for threshold, label in LABEL_TIERS:
        if score >= threshold:
            return label
    return "challenging"


def astro_compat_for_signs(sign1: Sign, sign2: Sign) -> AstroCompatibility:
    score = sign_score(sign1, sign2)
    return AstroCompatibility(
        sign1=sign1,
        sign2=sign2,
        sign_score=score,
        elemental_harmony=elemental_harmony(SIGN_ELEMENTS[sign1], SIGN_ELEMENTS[sign2]),
        modality_alignment=modality_alignment(SIGN_MODALITIES[sign1], SIGN_MODALITIES[sign2]),
        label=compatibility_label(score),
    )


def astro_compat(profile1: BirthProfile, profile2: BirthProfile) -> AstroCompatibility:
    """Astrological compatibility of two birth profiles (sun signs only)."""
    return astro_compat_for_signs(profile1.sign, profile2.sign)
