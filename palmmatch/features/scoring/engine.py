"""
Palm Compatibility Scoring Engine

Pure, deterministic computation of four palm factors and an overall score
from two reading documents. No external calls, no randomness, no clock.

Scoring philosophy:
- Each factor starts at a fixed base (60-70)
- A keyword rule adds its bonus when BOTH readings mention the same one of its keywords
- A mount rule adds its bonus when both mount prominences are within one level
- Factors clamp at 100; overall is the weighted average

Every rule inspects both readings the same way, so score(a, b) == score(b, a).
Missing or empty text contributes nothing.
"""

from typing import Iterable, Optional

from palmmatch.core.config import settings
from palmmatch.models.reading import ReadingDocument, prominence_level
from palmmatch.models.scoring import (
    CompatibilityScores,
    FactorTable,
    RuleSource,
    ScoringRule,
    ScoringTables,
    ScoringWeights,
    clamp_score,
)


def _line(target: str, keywords: Iterable[str], bonus: int) -> ScoringRule:
    return ScoringRule(source=RuleSource.LINE, target=target, keywords=tuple(keywords), bonus=bonus)


def _mount(target: str, bonus: int) -> ScoringRule:
    return ScoringRule(source=RuleSource.MOUNT, target=target, bonus=bonus)


def _markings(keywords: Iterable[str], bonus: int) -> ScoringRule:
    return ScoringRule(source=RuleSource.MARKINGS, keywords=tuple(keywords), bonus=bonus)


DEFAULT_TABLES = ScoringTables(
    affinity=FactorTable(base=70, rules=(
        _line("heart-line", ("deep", "strong", "curved"), 10),
        _line("heart-line", ("passionate", "intense", "expressive"), 8),
        _line("marriage-line", ("clear", "strong", "single"), 12),
        _mount("venus", 10),
    )),
    communication=FactorTable(base=65, rules=(
        _line("head-line", ("clear", "straight", "long"), 15),
        _line("head-line", ("creative", "curved", "imaginative"), 12),
        _mount("mercury", 15),
        _markings(("communication", "speaking", "writing"), 8),
    )),
    life_direction=FactorTable(base=60, rules=(
        _line("fate-line", ("clear", "strong", "defined"), 20),
        _line("fate-line", ("ambitious", "focused", "determined"), 15),
        _line("success-line", ("prominent", "clear", "strong"), 15),
        _mount("jupiter", 10),
    )),
    vitality=FactorTable(base=70, rules=(
        _line("life-line", ("strong", "vibrant", "energetic"), 15),
        _line("life-line", ("long", "clear", "deep"), 12),
        _mount("mars", 13),
    )),
)


def default_weights() -> ScoringWeights:
    return ScoringWeights(
        affinity=settings.SCORE_WEIGHT_AFFINITY,
        communication=settings.SCORE_WEIGHT_COMMUNICATION,
        life_direction=settings.SCORE_WEIGHT_LIFE_DIRECTION,
        vitality=settings.SCORE_WEIGHT_VITALITY,
    )


def prominence_compatible(p1: Optional[str], p2: Optional[str]) -> bool:
    """True iff both labels map to a level and the levels differ by at most 1."""
    level1 = prominence_level(p1)
    level2 = prominence_level(p2)
    if level1 is None or level2 is None:
        return False
    return abs(level1 - level2) <= 1


def _shares_keyword(text1: str, text2: str, keywords: Iterable[str]) -> bool:
    """True when the same keyword appears in both texts."""
    lowered1 = (text1 or "").lower()
    lowered2 = (text2 or "").lower()
    if not lowered1 or not lowered2:
        return False
    return any(k.lower() in lowered1 and k.lower() in lowered2 for k in keywords)


class PalmScoringEngine:
    """Pure deterministic palm compatibility scoring."""

    @staticmethod
    def score(
        reading1: ReadingDocument,
        reading2: ReadingDocument,
        tables: Optional[ScoringTables] = None,
        weights: Optional[ScoringWeights] = None,
    ) -> CompatibilityScores:
        """
        Score two readings against each other.

        Args:
            reading1: First party's reading
            reading2: Second party's reading
            tables: Keyword/bonus tables (defaults to DEFAULT_TABLES)
            weights: Overall weights (defaults to Settings)

        Returns:
            CompatibilityScores, every field an integer 0..100
        """
        tables = tables or DEFAULT_TABLES
        weights = weights or default_weights()

        affinity = PalmScoringEngine._score_factor(tables.affinity, reading1, reading2)
        communication = PalmScoringEngine._score_factor(tables.communication, reading1, reading2)
        life_direction = PalmScoringEngine._score_factor(tables.life_direction, reading1, reading2)
        vitality = PalmScoringEngine._score_factor(tables.vitality, reading1, reading2)

        overall = clamp_score(
            affinity * weights.affinity
            + communication * weights.communication
            + life_direction * weights.life_direction
            + vitality * weights.vitality
        )

        return CompatibilityScores(
            overall=overall,
            affinity=affinity,
            communication=communication,
            life_direction=life_direction,
            vitality=vitality,
        )

    @staticmethod
    def _score_factor(table: FactorTable, reading1: ReadingDocument, reading2: ReadingDocument) -> int:
        total = table.base
        for rule in table.rules:
            if PalmScoringEngine._rule_fires(rule, reading1, reading2):
                total += rule.bonus
        return clamp_score(total)

    @staticmethod
    def _rule_fires(rule: ScoringRule, reading1: ReadingDocument, reading2: ReadingDocument) -> bool:
        if rule.source == RuleSource.LINE:
            return _shares_keyword(reading1.line_text(rule.target), reading2.line_text(rule.target), rule.keywords)
        if rule.source == RuleSource.MOUNT:
            return prominence_compatible(
                reading1.mount_prominence(rule.target),
                reading2.mount_prominence(rule.target),
            )
        if rule.source == RuleSource.MARKINGS:
            return _shares_keyword(reading1.markings_text(), reading2.markings_text(), rule.keywords)
        return False


def score(reading1: ReadingDocument, reading2: ReadingDocument, **kwargs) -> CompatibilityScores:
    return PalmScoringEngine.score(reading1, reading2, **kwargs)
