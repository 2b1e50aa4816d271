"""
palmmatch/models/zodiac.py
Zodiac vocabulary: signs, elements, modalities, traits.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Sign(str, Enum):
    ARIES = "Aries"
    TAURUS = "Taurus"
    GEMINI = "Gemini"
    CANCER = "Cancer"
    LEO = "Leo"
    VIRGO = "Virgo"
    LIBRA = "Libra"
    SCORPIO = "Scorpio"
    SAGITTARIUS = "Sagittarius"
    CAPRICORN = "Capricorn"
    AQUARIUS = "Aquarius"
    PISCES = "Pisces"


class Element(str, Enum):
    FIRE = "fire"
    EARTH = "earth"
    AIR = "air"
    WATER = "water"


class Modality(str, Enum):
    CARDINAL = "cardinal"
    FIXED = "fixed"
    MUTABLE = "mutable"


class SignTraits(BaseModel):
    """Static traits of a sun sign."""

    model_config = ConfigDict(frozen=True)

    sign: Sign
    element: Element
    modality: Modality
    ruler: str
