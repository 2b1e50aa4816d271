"""Match lifecycle: pending -> completed -> shared."""

from datetime import timedelta

import pytest

from palmmatch.core.errors import (
    ConflictError,
    NotFoundError,
    NotReadyError,
    PermissionError,
    ValidationError,
)
from palmmatch.features.matching import matches
from palmmatch.features.matching.store import InMemoryLifecycleStore
from palmmatch.models.invitation import MatchType
from palmmatch.models.match import MatchParty, MatchStatus
from palmmatch.models.scoring import CompatibilityScores

ALICE = MatchParty(party_id="alice", display_name="Alice")
BOB = MatchParty(party_id="bob", display_name="Bob")


def _scores(overall=82):
    return CompatibilityScores(overall=overall, affinity=90, communication=75, life_direction=80, vitality=70)


@pytest.fixture
def store():
    return InMemoryLifecycleStore()


async def _completed(store, now, overall=82):
    match = await matches.create_match(ALICE, BOB, MatchType.ROMANTIC, now=now, store=store)
    return await matches.complete_match(match.match_id, _scores(overall), {"greeting": "Hi"}, now=now, store=store)


class TestCreateComplete:
    @pytest.mark.asyncio
    async def test_create_is_pending(self, store, fixed_now):
        match = await matches.create_match(ALICE, BOB, MatchType.FRIENDSHIP, now=fixed_now, store=store)
        assert match.status == MatchStatus.PENDING
        assert match.scores is None
        assert match.is_public is False
        assert (await matches.get_match(match.match_id, store=store)) == match

    @pytest.mark.asyncio
    async def test_parties_must_differ(self, store, fixed_now):
        with pytest.raises(ValidationError):
            await matches.create_match(ALICE, ALICE, MatchType.ROMANTIC, now=fixed_now, store=store)

    @pytest.mark.asyncio
    async def test_caller_must_be_a_party_to_create(self, store, fixed_now):
        with pytest.raises(PermissionError):
            await matches.create_match(ALICE, BOB, MatchType.ROMANTIC, caller_id="mallory", now=fixed_now, store=store)
        match = await matches.create_match(ALICE, BOB, MatchType.ROMANTIC, caller_id="bob", now=fixed_now, store=store)
        assert match.party_b == BOB

    @pytest.mark.asyncio
    async def test_caller_must_be_a_party_to_complete(self, store, fixed_now):
        match = await matches.create_match(ALICE, BOB, MatchType.ROMANTIC, now=fixed_now, store=store)
        with pytest.raises(PermissionError):
            await matches.complete_match(
                match.match_id, _scores(100), {}, caller_id="mallory", now=fixed_now, store=store
            )
        assert (await matches.get_match(match.match_id, store=store)).status == MatchStatus.PENDING

        completed = await matches.complete_match(
            match.match_id, _scores(), {}, caller_id="alice", now=fixed_now, store=store
        )
        assert completed.status == MatchStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_unknown_match(self, store):
        with pytest.raises(NotFoundError):
            await matches.get_match("missing", store=store)
        with pytest.raises(NotFoundError):
            await matches.complete_match("missing", _scores(), {}, store=store)

    @pytest.mark.asyncio
    async def test_complete_records_scores(self, store, fixed_now):
        completed = await _completed(store, fixed_now)
        assert completed.status == MatchStatus.COMPLETED
        assert completed.scores.overall == 82
        assert completed.completed_at == fixed_now
        assert completed.analysis == {"greeting": "Hi"}

    @pytest.mark.asyncio
    async def test_complete_is_idempotent(self, store, fixed_now):
        completed = await _completed(store, fixed_now)
        again = await matches.complete_match(
            completed.match_id, _scores(), {"greeting": "Hi"}, now=fixed_now + timedelta(hours=1), store=store
        )
        assert again == completed

    @pytest.mark.asyncio
    async def test_complete_with_different_result_conflicts(self, store, fixed_now):
        completed = await _completed(store, fixed_now)
        with pytest.raises(ConflictError):
            await matches.complete_match(completed.match_id, _scores(50), {"greeting": "Hi"}, store=store)

    @pytest.mark.asyncio
    async def test_complete_after_share_is_still_idempotent(self, store, fixed_now):
        completed = await _completed(store, fixed_now)
        await matches.publish_match(completed.match_id, "alice", now=fixed_now, store=store)
        again = await matches.complete_match(completed.match_id, _scores(), {"greeting": "Hi"}, store=store)
        assert again.status == MatchStatus.SHARED


class TestPublish:
    @pytest.mark.asyncio
    async def test_pending_is_not_ready(self, store, fixed_now):
        match = await matches.create_match(ALICE, BOB, MatchType.ROMANTIC, now=fixed_now, store=store)
        with pytest.raises(NotReadyError):
            await matches.publish_match(match.match_id, "alice", store=store)

    @pytest.mark.asyncio
    async def test_outsider_cannot_publish(self, store, fixed_now):
        completed = await _completed(store, fixed_now)
        with pytest.raises(PermissionError):
            await matches.publish_match(completed.match_id, "mallory", store=store)

    @pytest.mark.asyncio
    async def test_publish_makes_public(self, store, fixed_now):
        completed = await _completed(store, fixed_now)
        shared_at = fixed_now + timedelta(minutes=5)
        summary = await matches.publish_match(completed.match_id, "bob", now=shared_at, store=store)

        assert summary.names == ("Alice", "Bob")
        assert summary.overall_score == 82
        assert summary.shared_at == shared_at

        stored = await matches.get_match(completed.match_id, store=store)
        assert stored.status == MatchStatus.SHARED
        assert stored.is_public is True

    @pytest.mark.asyncio
    async def test_publish_twice_returns_same_summary(self, store, fixed_now):
        completed = await _completed(store, fixed_now)
        first = await matches.publish_match(completed.match_id, "alice", now=fixed_now, store=store)
        second = await matches.publish_match(
            completed.match_id, "bob", now=fixed_now + timedelta(days=1), store=store
        )
        assert first == second


class TestShares:
    @pytest.mark.asyncio
    async def test_pending_cannot_be_shared(self, store, fixed_now):
        match = await matches.create_match(ALICE, BOB, MatchType.ROMANTIC, now=fixed_now, store=store)
        with pytest.raises(NotReadyError):
            await matches.record_share(match.match_id, "alice", store=store)

    @pytest.mark.asyncio
    async def test_private_match_shares_need_a_party(self, store, fixed_now):
        completed = await _completed(store, fixed_now)
        with pytest.raises(PermissionError):
            await matches.record_share(completed.match_id, "mallory", store=store)

        shared = await matches.record_share(completed.match_id, "alice", "instagram", store=store)
        assert shared.share_count == 1
        assert shared.is_public is False

    @pytest.mark.asyncio
    async def test_public_match_shares_by_anyone(self, store, fixed_now):
        completed = await _completed(store, fixed_now)
        await matches.publish_match(completed.match_id, "alice", now=fixed_now, store=store)
        await matches.record_share(completed.match_id, "mallory", store=store)
        shared = await matches.record_share(completed.match_id, "trent", store=store)
        assert shared.share_count == 2


class TestListing:
    @pytest.mark.asyncio
    async def test_public_feed_newest_first(self, store, fixed_now):
        ids = []
        for offset in range(3):
            completed = await _completed(store, fixed_now, overall=70 + offset)
            await matches.publish_match(
                completed.match_id, "alice", now=fixed_now + timedelta(hours=offset), store=store
            )
            ids.append(completed.match_id)
        # completed but never published
        await _completed(store, fixed_now)

        feed = await matches.list_public_matches(store=store)
        assert [s.match_id for s in feed] == list(reversed(ids))

        top = await matches.list_public_matches(2, store=store)
        assert [s.overall_score for s in top] == [72, 71]

    @pytest.mark.asyncio
    async def test_feed_limit_is_clamped(self, store, fixed_now):
        completed = await _completed(store, fixed_now)
        await matches.publish_match(completed.match_id, "alice", now=fixed_now, store=store)
        assert len(await matches.list_public_matches(0, store=store)) == 1
        assert len(await matches.list_public_matches(1000, store=store)) == 1

    @pytest.mark.asyncio
    async def test_list_for_party(self, store, fixed_now):
        first = await matches.create_match(ALICE, BOB, MatchType.ROMANTIC, now=fixed_now, store=store)
        carol = MatchParty(party_id="carol", display_name="Carol")
        second = await matches.create_match(
            carol, ALICE, MatchType.FRIENDSHIP, now=fixed_now + timedelta(hours=1), store=store
        )
        await matches.create_match(BOB, carol, MatchType.ROMANTIC, now=fixed_now, store=store)

        mine = await matches.list_matches_for_party("alice", store=store)
        assert [m.match_id for m in mine] == [second.match_id, first.match_id]
        assert await matches.list_matches_for_party("nobody", store=store) == []
