"""
Analysis payload generation.

Prose is produced by an external text-generation collaborator behind the
AnalysisGenerator protocol. TemplateAnalysisGenerator is the deterministic
stand-in: same inputs, same payload.
"""

from typing import Any, Dict, List, Protocol, Tuple

from palmmatch.models.invitation import MatchType
from palmmatch.models.scoring import CompatibilityScores, CorrelationResult


HIGHLIGHT_THRESHOLD = 75
CHALLENGE_THRESHOLD = 60
GROWTH_THRESHOLD = 70

_FACTOR_HIGHLIGHTS: Tuple[Tuple[str, str], ...] = (
    ("affinity", "Your heart lines beat in sync - emotional connection comes naturally"),
    ("communication", "Your head lines click - conversations flow without effort"),
    ("life_direction", "Your fate lines point the same way - shared goals keep you aligned"),
    ("vitality", "Your life lines match energy - you keep up with each other"),
)

_FACTOR_CHALLENGES: Tuple[Tuple[str, str], ...] = (
    ("affinity", "Emotional styles differ - name your feelings out loud"),
    ("communication", "You process ideas differently - slow down and check in"),
    ("life_direction", "Your long-term plans diverge - talk about where you're headed"),
    ("vitality", "Your energy levels run at different speeds - plan rest and adventure together"),
)

_FALLBACK_HIGHLIGHTS = (
    "Your readings show real room to grow together",
    "Curiosity about each other is your shared strength",
)
_FALLBACK_CHALLENGE = "Keep making time for each other as life gets busy"

_STRENGTH_AREAS: Tuple[Tuple[str, str], ...] = (
    ("affinity", "Emotional compatibility shows up in both palms"),
    ("communication", "Communication styles are naturally aligned"),
    ("life_direction", "Life paths point toward mutual support"),
    ("vitality", "Your energy levels lift each other"),
)

_GROWTH_AREAS: Tuple[Tuple[str, str], ...] = (
    ("affinity", "Emotional expression styles can learn to complement each other"),
    ("communication", "Different thinking styles can be balanced with patience"),
    ("life_direction", "Career timing needs planning for mutual support"),
    ("vitality", "Different approaches to stress and rest can be balanced"),
)

_ADVICE_FOR_DUO = {
    MatchType.ROMANTIC: (
        "Keep being yourselves. The magic happens when you are both comfortable "
        "enough to be completely real with each other, so let the connection grow at its own pace."
    ),
    MatchType.FRIENDSHIP: (
        "This friendship has staying power. Back each other's dreams, celebrate the "
        "wins together and keep showing up for each other."
    ),
}

_DATE_IDEAS = (
    "Stargazing picnic with a playlist you build together",
    "Cook a new recipe neither of you has tried",
    "Sunrise hike followed by a long breakfast",
    "Make a vision board for the next year",
)

_FRIENDSHIP_ACTIVITIES = (
    "Start a two-person book or podcast club",
    "Take a one-day class in something totally new",
    "Plan a spontaneous day trip",
    "Co-host a game night for your friends",
)


class AnalysisGenerator(Protocol):
    def generate(
        self,
        name1: str,
        name2: str,
        scores: CompatibilityScores,
        match_type: MatchType,
        correlation: CorrelationResult,
    ) -> Dict[str, Any]:
        ...


def _vibe(overall: int) -> str:
    if overall >= 85:
        return "an effortless, rare connection"
    if overall >= 70:
        return "a strong, steady connection"
    if overall >= 50:
        return "a connection with real potential"
    return "a connection that asks for patience"


class TemplateAnalysisGenerator:
    """Deterministic analysis built from score thresholds."""

    def generate(
        self,
        name1: str,
        name2: str,
        scores: CompatibilityScores,
        match_type: MatchType,
        correlation: CorrelationResult,
    ) -> Dict[str, Any]:
        overall = correlation.overall_score
        highlights = self._highlights(scores)
        challenges = self._challenges(scores)

        analysis: Dict[str, Any] = {
            "greeting": f"{name1} + {name2} = {overall}% compatible",
            "vibe_summary": (
                f"{name1} and {name2} share {_vibe(overall)}. "
                f"Palm harmony scored {correlation.palm_score} and the stars scored "
                f"{correlation.astrology_score}."
            ),
            "compatibility_highlights": highlights,
            "potential_challenges": challenges,
            "relationship_dynamics": {
                "communication_style": self._level_text("communication", scores.communication),
                "conflict_resolution": self._level_text("affinity", scores.affinity),
                "shared_interests": self._level_text("life_direction", scores.life_direction),
                "growth_potential": self._level_text("vitality", scores.vitality),
            },
            "correlation_tags": list(correlation.correlation_tags),
            "cosmic_connection": (
                f"Palm and stars agree at {correlation.correlation_score}%"
                + (": " + "; ".join(correlation.correlation_tags) + "." if correlation.correlation_tags else ".")
            ),
        }
        analysis["strength_areas"] = self._pick(_STRENGTH_AREAS, scores, lambda v: v >= HIGHLIGHT_THRESHOLD) or [
            "Curiosity about each other is your shared strength"
        ]
        analysis["growth_areas"] = self._pick(_GROWTH_AREAS, scores, lambda v: v < GROWTH_THRESHOLD) or [
            "Keep nurturing what already works"
        ]
        analysis["relationship_advice"] = self._advice(scores, correlation)
        analysis["advice_for_duo"] = _ADVICE_FOR_DUO.get(match_type, _ADVICE_FOR_DUO[MatchType.FRIENDSHIP])
        if match_type == MatchType.ROMANTIC:
            analysis["date_ideas"] = list(_DATE_IDEAS)
        else:
            analysis["friendship_activities"] = list(_FRIENDSHIP_ACTIVITIES)
        return analysis

    @staticmethod
    def _highlights(scores: CompatibilityScores) -> List[str]:
        picked = [text for factor, text in _FACTOR_HIGHLIGHTS if getattr(scores, factor) >= HIGHLIGHT_THRESHOLD]
        for fallback in _FALLBACK_HIGHLIGHTS:
            if len(picked) >= 2:
                break
            picked.append(fallback)
        return picked[:4]

    @staticmethod
    def _challenges(scores: CompatibilityScores) -> List[str]:
        picked = [text for factor, text in _FACTOR_CHALLENGES if getattr(scores, factor) < CHALLENGE_THRESHOLD]
        if not picked:
            picked.append(_FALLBACK_CHALLENGE)
        return picked[:3]

    @staticmethod
    def _pick(table, scores: CompatibilityScores, keep) -> List[str]:
        return [text for factor, text in table if keep(getattr(scores, factor))]

    @staticmethod
    def _advice(scores: CompatibilityScores, correlation: CorrelationResult) -> Dict[str, List[str]]:
        weakest = min(("affinity", "communication", "life_direction", "vitality"), key=lambda f: (getattr(scores, f), f))
        stars_lead = correlation.astrology_score >= correlation.palm_score
        return {
            "communication_tips": [
                "Say what you need directly instead of hinting"
                if scores.communication < HIGHLIGHT_THRESHOLD
                else "Keep the easy conversations going with regular check-ins",
                "Find a balance between your two communication styles",
            ],
            "conflict_resolution": [
                f"Start hard talks from your weakest area, {weakest.replace('_', ' ')}, with extra care",
                "Focus on the values both readings say you share",
            ],
            "strength_building": [
                "Lean on the harmony your signs already give you"
                if stars_lead
                else "Build on the traits your palms have in common",
                "Celebrate the ways you complement each other",
            ],
        }

    @staticmethod
    def _level_text(factor: str, value: int) -> str:
        label = factor.replace("_", " ")
        if value >= HIGHLIGHT_THRESHOLD:
            return f"Strong {label} ({value})"
        if value < CHALLENGE_THRESHOLD:
            return f"Developing {label} ({value})"
        return f"Balanced {label} ({value})"
