"""Cross-system correlation: blended score, agreement and tags."""

from palmmatch.features.astrology.calculator import astro_compat_for_signs
from palmmatch.features.correlation.correlator import combine, correlation_score
from palmmatch.features.zodiac.signs import sign_traits
from palmmatch.models.scoring import BlendWeights, CompatibilityScores, round_half_up
from palmmatch.models.zodiac import Sign


def _scores(affinity=80, communication=80, life_direction=80, vitality=80, overall=80):
    return CompatibilityScores(
        overall=overall,
        affinity=affinity,
        communication=communication,
        life_direction=life_direction,
        vitality=vitality,
    )


class TestCorrelation:
    def test_agreement_score(self):
        # Leo/Aries: sign 95, fire/fire 85, fixed/cardinal 85
        astro = astro_compat_for_signs(Sign.LEO, Sign.ARIES)
        scores = _scores(affinity=85, communication=85, life_direction=95, vitality=85)
        assert correlation_score(scores, astro) == 100

    def test_agreement_averages_differences(self):
        astro = astro_compat_for_signs(Sign.LEO, Sign.ARIES)
        scores = _scores(affinity=75, communication=85, life_direction=85, vitality=85)
        # differences 10, 0, 10, 0 -> mean agreement 95
        assert correlation_score(scores, astro) == 95

    def test_overall_blend(self):
        astro = astro_compat_for_signs(Sign.LEO, Sign.ARIES)
        scores = _scores(overall=70)
        result = combine(scores, astro)
        expected = round_half_up(0.4 * 95 + 0.4 * 70 + 0.2 * result.correlation_score)
        assert result.overall_score == expected
        assert result.astrology_score == 95
        assert result.palm_score == 70

    def test_custom_blend(self):
        astro = astro_compat_for_signs(Sign.LEO, Sign.ARIES)
        result = combine(_scores(overall=60), astro, blend=BlendWeights(astrology=0.0, palm=1.0, correlation=0.0))
        assert result.overall_score == 60

    def test_tags_when_both_strong(self):
        astro = astro_compat_for_signs(Sign.LEO, Sign.ARIES)
        result = combine(_scores(), astro)
        assert "Heart line and elemental harmony both strong" in result.correlation_tags
        assert "Fate line and sign compatibility both strong" in result.correlation_tags

    def test_no_tags_when_palm_weak(self):
        astro = astro_compat_for_signs(Sign.LEO, Sign.ARIES)
        result = combine(_scores(60, 60, 60, 60, 60), astro)
        assert result.correlation_tags == []

    def test_ruler_tags_deduplicated(self):
        # Taurus and Libra are both ruled by Venus
        astro = astro_compat_for_signs(Sign.TAURUS, Sign.LIBRA)
        result = combine(_scores(), astro, sign_traits(Sign.TAURUS), sign_traits(Sign.LIBRA))
        assert result.correlation_tags.count("Heart line aligns with Venus influence") == 1
        assert len(result.correlation_tags) == len(set(result.correlation_tags))

    def test_tags_deterministic_order(self):
        astro = astro_compat_for_signs(Sign.ARIES, Sign.GEMINI)
        a = combine(_scores(), astro, sign_traits(Sign.ARIES), sign_traits(Sign.GEMINI))
        b = combine(_scores(), astro, sign_traits(Sign.ARIES), sign_traits(Sign.GEMINI))
        assert a.correlation_tags == b.correlation_tags
        assert "Life line reflects Mars energy" in a.correlation_tags
        assert "Head line correlates with Mercury communication style" in a.correlation_tags
