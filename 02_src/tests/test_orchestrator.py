"""Tests for MatchingOrchestrator."""

from unittest.mock import AsyncMock

import numpy as np
import pytest

from conftest import make_profile
from introbot.errors import PersistenceError, RecipientBlockedError, SimilarityComputationError
from introbot.matching import MatchingOrchestrator, PairingEngine
from introbot.messaging import OutboxMessenger
from introbot.models import Contact, RunStatus, SimilarityPair

SPECIAL_USER = 100


class MatrixScorer:
    def __init__(self, matrix):
        self.matrix = np.asarray(matrix, dtype=float)

    def score_matrix(self, texts):
        return self.matrix


class BrokenScorer:
    def score_matrix(self, texts):
        raise SimilarityComputationError("vectorizer exploded")


class BlockingMessenger(OutboxMessenger):
    """Outbox messenger that refuses to deliver to some users."""

    def __init__(self, storage, clock, blocked):
        super().__init__(storage, clock)
        self.blocked = set(blocked)

    async def send_text(self, user_id, text):
        if user_id in self.blocked:
            raise RecipientBlockedError(user_id)
        return await super().send_text(user_id, text)


class OutboxFailingMessenger(OutboxMessenger):
    """Outbox messenger whose n-th text send fails with a storage error."""

    def __init__(self, storage, clock, fail_on_send):
        super().__init__(storage, clock)
        self.fail_on_send = fail_on_send
        self.sends = 0

    async def send_text(self, user_id, text):
        self.sends += 1
        if self.sends == self.fail_on_send:
            raise PersistenceError("outbox write failed")
        return await super().send_text(user_id, text)


def five_user_matrix():
    matrix = np.full((5, 5), 0.1)
    matrix[0, 1] = matrix[1, 0] = 0.9
    matrix[2, 3] = matrix[3, 2] = 0.8
    return matrix


def name_tag(user_id):
    return f"<b>User {user_id}</b>"


async def seed_profiles(storage, ids, special_user=True):
    for uid in ids:
        await storage.save_profile(make_profile(uid, f"topic {uid}"))
    if special_user:
        await storage.save_profile(make_profile(SPECIAL_USER, "anything", is_visible=False))


@pytest.fixture
def make_orchestrator(storage, messenger, tracker, clock):
    def _make(scorer, special_user_id=SPECIAL_USER, **overrides):
        params = dict(
            profiles=storage,
            results=storage,
            messenger=messenger,
            engine=PairingEngine(scorer),
            tracker=tracker,
            clock=clock,
            special_user_id=special_user_id,
        )
        params.update(overrides)
        return MatchingOrchestrator(**params)

    return _make


class TestMatchingRun:
    """Tests for successful runs."""

    async def test_five_users(self, make_orchestrator, storage, outbox, clock):
        """Two pairs are introduced and the leftover meets the special user."""
        await seed_profiles(storage, [1, 2, 3, 4, 5])

        result = await make_orchestrator(MatrixScorer(five_user_matrix())).run_matching()

        assert result.status is RunStatus.SUCCESS
        assert [(p.user_id_1, p.user_id_2) for p in result.pairs] == [(1, 2), (3, 4)]
        assert result.unpaired_user_ids == (5,)
        assert result.fallback_user_id == SPECIAL_USER
        assert result.executed_at == clock.now()

        for recipient, partner in [(1, 2), (2, 1), (3, 4), (4, 3), (SPECIAL_USER, 5), (5, SPECIAL_USER)]:
            messages = await outbox(recipient)
            assert len(messages) == 1
            assert name_tag(partner) in messages[0].text
            assert "Your conversation partner for this week:" in messages[0].text

    async def test_result_is_recorded(self, make_orchestrator, storage):
        await seed_profiles(storage, [1, 2, 3, 4, 5])

        result = await make_orchestrator(MatrixScorer(five_user_matrix())).run_matching()

        runs = await storage.list_matching_results()
        assert len(runs) == 1
        assert runs[0].id == result.id
        assert runs[0].pairs == (SimilarityPair(1, 2, 0.9), SimilarityPair(3, 4, 0.8))

        events = await storage.get_trace_events(event_types=["matching_run_finished"])
        assert events[0].data["status"] == "success"
        assert events[0].data["pairs"] == ["1 <-> 2", "3 <-> 4"]

    async def test_partner_photo_sent_first(self, make_orchestrator, storage, outbox):
        await seed_profiles(storage, [1, 2], special_user=False)
        await storage.save_contact(Contact(user_id=2, alias="bob", photo_ref="photo-2"))

        await make_orchestrator(MatrixScorer(np.zeros((2, 2)))).run_matching()

        messages = await outbox(1)
        assert [m.kind for m in messages] == ["photo", "text"]
        assert messages[0].photo_ref == "photo-2"
        assert "@bob" in messages[1].text

    async def test_hidden_and_blocked_users_skipped(self, make_orchestrator, storage, outbox):
        await seed_profiles(storage, [1, 2], special_user=False)
        await storage.save_profile(make_profile(3, is_visible=False))
        await storage.save_profile(make_profile(4, is_banned=True))
        await storage.save_profile(make_profile(5, is_bot_blocked=True))

        result = await make_orchestrator(MatrixScorer(np.zeros((2, 2)))).run_matching()

        assert [(p.user_id_1, p.user_id_2) for p in result.pairs] == [(1, 2)]
        for uid in (3, 4, 5):
            assert await outbox(uid) == []

    async def test_no_users(self, make_orchestrator, storage):
        result = await make_orchestrator(MatrixScorer(np.zeros((0, 0)))).run_matching()

        assert result.status is RunStatus.SUCCESS
        assert result.pairs == ()
        assert result.unpaired_user_ids == ()
        assert await storage.get_last_outgoing_id() == 0

    async def test_leftover_without_special_user(self, make_orchestrator, storage, outbox):
        await seed_profiles(storage, [1, 2, 3], special_user=False)

        result = await make_orchestrator(
            MatrixScorer(np.zeros((3, 3))), special_user_id=None
        ).run_matching()

        assert result.unpaired_user_ids == (3,)
        assert result.fallback_user_id is None
        assert await outbox(3) == []

    async def test_special_user_is_leftover(self, make_orchestrator, storage, outbox):
        await seed_profiles(storage, [1, 2], special_user=False)
        await storage.save_profile(make_profile(SPECIAL_USER, "anything"))

        result = await make_orchestrator(MatrixScorer(np.zeros((3, 3)))).run_matching()

        assert result.unpaired_user_ids == (SPECIAL_USER,)
        assert result.fallback_user_id is None
        assert await outbox(SPECIAL_USER) == []

    async def test_blocked_recipient_is_marked(self, make_orchestrator, storage, clock, outbox):
        await seed_profiles(storage, [1, 2, 3, 4], special_user=False)
        messenger = BlockingMessenger(storage, clock, blocked=[2])
        matrix = np.zeros((4, 4))

        result = await make_orchestrator(MatrixScorer(matrix), messenger=messenger).run_matching()

        assert result.status is RunStatus.SUCCESS
        assert (await storage.load_profile(2)).is_bot_blocked is True
        assert name_tag(2) in (await outbox(1))[0].text
        assert len(await outbox(3)) == 1
        assert len(await outbox(4)) == 1


class TestMatchingFailures:
    """Tests for runs recorded as FAILED."""

    async def test_scoring_failure(self, make_orchestrator, storage):
        await seed_profiles(storage, [1, 2, 3, 4, 5])

        result = await make_orchestrator(BrokenScorer()).run_matching()

        assert result.status is RunStatus.FAILED
        assert result.pairs == ()
        assert "vectorizer exploded" in result.error
        assert await storage.get_last_outgoing_id() == 0

        runs = await storage.list_matching_results()
        assert runs[0].status is RunStatus.FAILED

    async def test_loading_failure(self, make_orchestrator, storage):
        profiles = AsyncMock()
        profiles.list_visible_profiles.side_effect = PersistenceError("db gone")

        result = await make_orchestrator(
            MatrixScorer(np.zeros((0, 0))), profiles=profiles
        ).run_matching()

        assert result.status is RunStatus.FAILED
        assert result.error == "db gone"
        assert await storage.get_last_outgoing_id() == 0

    async def test_result_save_failure_still_returns(self, make_orchestrator, storage):
        await seed_profiles(storage, [1, 2], special_user=False)
        results = AsyncMock()
        results.save_matching_result.side_effect = PersistenceError("read only")

        result = await make_orchestrator(
            MatrixScorer(np.zeros((2, 2))), results=results
        ).run_matching()

        assert result.status is RunStatus.SUCCESS
        assert result.id is None

    async def test_outbox_failure_during_dispatch(self, make_orchestrator, storage, clock, outbox):
        """A storage failure while sending stops the run and records it as failed."""
        await seed_profiles(storage, [1, 2, 3, 4], special_user=False)
        messenger = OutboxFailingMessenger(storage, clock, fail_on_send=2)

        result = await make_orchestrator(
            MatrixScorer(np.zeros((4, 4))), messenger=messenger
        ).run_matching()

        assert result.status is RunStatus.FAILED
        assert result.error == "outbox write failed"
        assert [(p.user_id_1, p.user_id_2) for p in result.pairs] == [(1, 2), (3, 4)]
        assert len(await outbox(1)) == 1
        assert await outbox(3) == []

        runs = await storage.list_matching_results()
        assert len(runs) == 1
        assert runs[0].id == result.id
        assert runs[0].status is RunStatus.FAILED
