"""
Compatibility orchestration.

compare() is the pure part: two snapshots in, one report out.
check_code_compatibility() is the full flow a second user triggers by entering
a code: resolve -> score -> astrology -> correlate -> match -> analysis -> complete.
"""

from datetime import datetime
from typing import Optional

from palmmatch.core.logging import log_event
from palmmatch.features.analysis.narrative import AnalysisGenerator, TemplateAnalysisGenerator
from palmmatch.features.astrology.calculator import astro_compat
from palmmatch.features.codes.service import CodeBroker, get_code_broker
from palmmatch.features.correlation.correlator import combine
from palmmatch.features.matching import matches
from palmmatch.features.matching.store import LifecycleStore
from palmmatch.features.scoring.engine import PalmScoringEngine
from palmmatch.features.zodiac.signs import sign_traits
from palmmatch.models.invitation import MatchType
from palmmatch.models.match import MatchParty
from palmmatch.models.reading import ReadingSnapshot
from palmmatch.models.scoring import CompatibilityReport

_default_generator = TemplateAnalysisGenerator()


def compare(
    snapshot1: ReadingSnapshot,
    snapshot2: ReadingSnapshot,
    match_type: MatchType = MatchType.ROMANTIC,
    generator: Optional[AnalysisGenerator] = None,
) -> CompatibilityReport:
    """Score two snapshots against each other. No I/O."""
    generator = generator or _default_generator

    scores = PalmScoringEngine.score(snapshot1.reading, snapshot2.reading)
    astrology = astro_compat(snapshot1.profile, snapshot2.profile)
    correlation = combine(
        scores,
        astrology,
        sign_traits(snapshot1.profile.sign),
        sign_traits(snapshot2.profile.sign),
    )
    name1, name2 = snapshot1.display_name, snapshot2.display_name
    analysis = generator.generate(name1, name2, scores, match_type, correlation)

    return CompatibilityReport(
        names=(name1, name2),
        match_type=match_type.value,
        scores=scores,
        astrology=astrology,
        correlation=correlation,
        analysis=analysis,
    )


async def check_code_compatibility(
    code: str,
    snapshot: ReadingSnapshot,
    caller_id: str,
    match_type: MatchType = MatchType.ROMANTIC,
    *,
    now: Optional[datetime] = None,
    broker: Optional[CodeBroker] = None,
    store: Optional[LifecycleStore] = None,
    generator: Optional[AnalysisGenerator] = None,
) -> CompatibilityReport:
    """
    Resolve a friend's code and record the resulting match.

    The code issuer is party A (identified by the code itself, since issuers
    are anonymous); the caller is party B.
    """
    if broker is None:
        broker = get_code_broker()
    record = await broker.resolve(code, now=now)

    report = compare(record.reading_snapshot, snapshot, match_type, generator)

    match = await matches.create_match(
        MatchParty(party_id=f"code:{record.code}", display_name=record.issuer_name),
        MatchParty(party_id=caller_id, display_name=snapshot.display_name),
        match_type,
        now=now,
        store=store,
    )
    # Overall on the match is the blended verdict, not the palm-only number
    final_scores = report.scores.model_copy(update={"overall": report.correlation.overall_score})
    await matches.complete_match(match.match_id, final_scores, report.analysis, now=now, store=store)

    log_event(
        "info",
        "compatibility.checked",
        party_id=caller_id,
        event_type="compatibility.checked",
        extra={"match_id": match.match_id, "overall": report.correlation.overall_score},
    )
    return report.model_copy(update={"match_id": match.match_id})
