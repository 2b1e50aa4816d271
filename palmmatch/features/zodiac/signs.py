"""
Sign resolver: tropical sun sign from a birth date, plus static sign traits.
"""

from datetime import date
from typing import Dict, Tuple

from palmmatch.core.errors import ValidationError
from palmmatch.models.zodiac import Element, Modality, Sign, SignTraits


# (sign, start month, start day); each sign runs until the next start.
# Capricorn starts Dec 22 and wraps into January.
_SIGN_STARTS: Tuple[Tuple[Sign, int, int], ...] = (
    (Sign.CAPRICORN, 1, 1),
    (Sign.AQUARIUS, 1, 20),
    (Sign.PISCES, 2, 19),
    (Sign.ARIES, 3, 21),
    (Sign.TAURUS, 4, 20),
    (Sign.GEMINI, 5, 21),
    (Sign.CANCER, 6, 21),
    (Sign.LEO, 7, 23),
    (Sign.VIRGO, 8, 23),
    (Sign.LIBRA, 9, 23),
    (Sign.SCORPIO, 10, 23),
    (Sign.SAGITTARIUS, 11, 22),
    (Sign.CAPRICORN, 12, 22),
)

SIGN_ORDER: Tuple[Sign, ...] = (
    Sign.ARIES, Sign.TAURUS, Sign.GEMINI, Sign.CANCER, Sign.LEO, Sign.VIRGO,
    Sign.LIBRA, Sign.SCORPIO, Sign.SAGITTARIUS, Sign.CAPRICORN, Sign.AQUARIUS, Sign.PISCES,
)

SIGN_ELEMENTS: Dict[Sign, Element] = {
    Sign.ARIES: Element.FIRE,
    Sign.LEO: Element.FIRE,
    Sign.SAGITTARIUS: Element.FIRE,
    Sign.TAURUS: Element.EARTH,
    Sign.VIRGO: Element.EARTH,
    Sign.CAPRICORN: Element.EARTH,
    Sign.GEMINI: Element.AIR,
    Sign.LIBRA: Element.AIR,
    Sign.AQUARIUS: Element.AIR,
    Sign.CANCER: Element.WATER,
    Sign.SCORPIO: Element.WATER,
    Sign.PISCES: Element.WATER,
}

SIGN_MODALITIES: Dict[Sign, Modality] = {
    Sign.ARIES: Modality.CARDINAL,
    Sign.CANCER: Modality.CARDINAL,
    Sign.LIBRA: Modality.CARDINAL,
    Sign.CAPRICORN: Modality.CARDINAL,
    Sign.TAURUS: Modality.FIXED,
    Sign.LEO: Modality.FIXED,
    Sign.SCORPIO: Modality.FIXED,
    Sign.AQUARIUS: Modality.FIXED,
    Sign.GEMINI: Modality.MUTABLE,
    Sign.VIRGO: Modality.MUTABLE,
    Sign.SAGITTARIUS: Modality.MUTABLE,
    Sign.PISCES: Modality.MUTABLE,
}

# Modern rulers
SIGN_RULERS: Dict[Sign, str] = {
    Sign.ARIES: "mars",
    Sign.TAURUS: "venus",
    Sign.GEMINI: "mercury",
    Sign.CANCER: "moon",
    Sign.LEO: "sun",
    Sign.VIRGO: "mercury",
    Sign.LIBRA: "venus",
    Sign.SCORPIO: "mars",
    Sign.SAGITTARIUS: "jupiter",
    Sign.CAPRICORN: "saturn",
    Sign.AQUARIUS: "uranus",
    Sign.PISCES: "neptune",
}


def resolve_sign(date_of_birth: date) -> Sign:
    """Return the tropical sun sign for a birth date."""
    key = (date_of_birth.month, date_of_birth.day)
    resolved = Sign.CAPRICORN
    for sign, month, day in _SIGN_STARTS:
        if key >= (month, day):
            resolved = sign
        else:
            break
    return resolved


def parse_sign(name: str) -> Sign:
    """Case-insensitive sign lookup. Raises ValidationError for unknown names."""
    cleaned = (name or "").strip().lower()
    for sign in Sign:
        if sign.value.lower() == cleaned:
            return sign
    raise ValidationError(f"Unknown zodiac sign: {name!r}")


def sign_traits(sign: Sign) -> SignTraits:
    return SignTraits(
        sign=sign,
        element=SIGN_ELEMENTS[sign],
        modality=SIGN_MODALITIES[sign],
        ruler=SIGN_RULERS[sign],
    )


def sign_distance(sign1: Sign, sign2: Sign) -> int:
    """Shortest number of signs between two signs around the wheel (0-6)."""
    diff = abs(SIGN_ORDER.index(sign1) - SIGN_ORDER.index(sign2))
    return min(diff, 12 - diff)
