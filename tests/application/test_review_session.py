from unittest.mock import patch

import pytest

from memocurve.application.config import ReviewConfig
from memocurve.application.review_session import ReviewSession, SessionState
from memocurve.domain.constants import AI_QUESTION_PLACEHOLDER

MINUTE = 60_000


def _session(store, clock, generator=None, **config):
    return ReviewSession(store, ReviewConfig(**config), generator, clock=clock)


def test_empty_collection_is_idle(store, clock):
    session = _session(store, clock)
    assert session.start() is SessionState.IDLE
    assert session.current_card is None
    assert session.tick() is SessionState.IDLE


def test_queue_sorted_by_next_due(store, clock, make_card):
    later = make_card("later", created_at=clock.now)
    sooner = make_card("sooner", created_at=clock.now - 60 * MINUTE)
    session = _session(store, clock)
    session.start()
    assert session.queue == [sooner.id, later.id]


def test_dwell_trigger_records_review_once(store, clock, make_card):
    card = make_card(created_at=clock.now - 31 * MINUTE)
    session = _session(store, clock, review_duration_trigger=10)
    session.start()

    with patch.object(store, "update", wraps=store.update) as update:
        for _ in range(9):
            assert session.tick() is SessionState.VIEWING
        assert store.get(card.id).review_count == 0
        update.assert_not_called()

        assert session.tick() is SessionState.REGISTERED
        for _ in range(20):
            session.tick()
    update.assert_called_once()

    stored = store.get(card.id)
    assert stored.review_count == 1
    assert stored.completed_at == [clock.now]
    assert stored.next_due == stored.schedule[1]

    assert store.get(card.id).review_count == 1
    assert session.dwell_seconds == 10


def test_grace_window_credits_early_review(store, clock, make_card):
    # Due in 9m59.999s
    card = make_card(created_at=clock.now - 30 * MINUTE + 599_999)
    session = _session(store, clock)
    session.start()
    outcome = session.commit_review()
    assert outcome.credited
    assert store.get(card.id).review_count == 1


def test_not_due_card_is_viewed_without_credit(store, clock, make_card):
    card = make_card(created_at=clock.now - 30 * MINUTE + 600_001)
    session = _session(store, clock, review_duration_trigger=1)
    session.start()
    assert not session.is_current_due()

    assert session.tick() is SessionState.REGISTERED
    assert session.last_outcome.credited is False
    assert session.last_outcome.due is False
    assert store.get(card.id).review_count == 0


def test_third_to_fourth_stage(store, clock, make_card):
    card = make_card(created_at=clock.now - 3 * 24 * 60 * MINUTE, done=3)
    assert card.next_due == card.schedule[3]
    session = _session(store, clock)
    session.start()

    outcome = session.commit_review()
    stored = store.get(card.id)
    assert outcome.credited
    assert len(stored.completed_at) == 4
    assert stored.review_count == 4
    assert stored.next_due == stored.schedule[4]


def test_completed_card_commit_is_noop(store, clock, make_card):
    card = make_card(created_at=clock.now - 2 * 525_600 * MINUTE, done=12)
    session = _session(store, clock)
    session.start()

    outcome = session.commit_review()
    stored = store.get(card.id)
    assert not outcome.credited
    assert len(stored.completed_at) == 12
    assert stored.review_count == 12


def test_second_commit_in_same_visit_does_not_credit(store, clock, make_card):
    card = make_card(created_at=clock.now - 2 * 24 * 60 * MINUTE)
    session = _session(store, clock)
    session.start()

    assert session.commit_review().credited
    # Stage 2 is already overdue too, but this visit has been counted
    assert not session.commit_review().credited
    assert store.get(card.id).review_count == 1


def test_inconsistent_progress_is_not_credited(store, clock, make_card):
    card = make_card(created_at=clock.now - 2 * 24 * 60 * MINUTE, done=1)
    broken = store.get(card.id)
    broken.review_count = 0
    store.update(broken)

    session = _session(store, clock)
    session.start()
    outcome = session.commit_review()
    assert not outcome.credited
    assert len(store.get(card.id).completed_at) == 1


def test_navigation_resets_visit(store, clock, make_card):
    first = make_card("first", created_at=clock.now - 60 * MINUTE)
    second = make_card("second", created_at=clock.now - 45 * MINUTE)
    session = _session(store, clock, review_duration_trigger=5)
    session.start()

    for _ in range(4):
        session.tick()
    assert session.next()
    assert session.current_card.id == second.id
    assert session.dwell_seconds == 0
    assert session.state is SessionState.VIEWING

    # At the end, next is a no-op
    assert not session.next()
    assert session.prev()
    assert session.current_card.id == first.id
    assert not session.prev()
    assert store.get(first.id).review_count == 0


def test_revisit_after_navigation_can_credit_next_stage(store, clock, make_card):
    card = make_card(created_at=clock.now - 2 * 24 * 60 * MINUTE)
    make_card("other", created_at=clock.now)
    session = _session(store, clock)
    session.start()

    assert session.commit_review().credited
    session.next()
    session.prev()
    assert session.commit_review().credited
    assert store.get(card.id).review_count == 2


def test_close_returns_to_idle(store, clock, make_card):
    make_card()
    session = _session(store, clock)
    session.start()
    session.close()
    assert session.state is SessionState.IDLE
    assert session.queue == []


def test_progress_fraction(store, clock, make_card):
    make_card(created_at=clock.now + 60 * MINUTE)
    session = _session(store, clock, review_duration_trigger=4)
    session.start()
    assert session.progress_fraction() == 0
    session.tick()
    assert session.progress_fraction() == 0.25
    for _ in range(10):
        session.tick()
    assert session.progress_fraction() == 1.0


def test_front_and_back_fields(store, clock, make_card, generator):
    make_card("apple", meaning="a fruit")
    session = _session(store, clock, generator, front_fields=["content", "aiQuestion"])
    session.start()

    assert session.front_fields() == [
        ("content", "apple"),
        ("aiQuestion", AI_QUESTION_PLACEHOLDER),
    ]
    # Empty example is omitted
    assert session.back_fields() == [("content", "apple"), ("meaning", "a fruit")]
    assert session.flip() is True
    assert session.flip() is False


def test_question_without_generator_uses_template(store, clock, make_card):
    make_card("apple")
    session = _session(store, clock, front_fields=["content", "aiQuestion"])
    session.start()

    assert session.front_fields() == [
        ("content", "apple"),
        ("aiQuestion", 'What does "apple" mean?'),
    ]
    assert not session.needs_enrichment()


def test_ai_question_hidden_on_front_when_disabled(store, clock, make_card):
    make_card("apple")
    session = _session(
        store, clock, front_fields=["content", "aiQuestion"], show_ai_question_on_front=False
    )
    session.start()
    assert session.front_fields() == [("content", "apple")]


@pytest.mark.asyncio
async def test_enrichment_caches_question(store, clock, make_card, generator):
    card = make_card("apple")
    session = _session(store, clock, generator)
    session.start()

    assert session.needs_enrichment()
    assert await session.enrich_current() == "Q: apple"
    assert store.get(card.id).ai_question == "Q: apple"
    assert not session.needs_enrichment()

    session.close()
    session.start()
    assert await session.enrich_current() is None
    generator.generate_question.assert_awaited_once_with("apple")


@pytest.mark.asyncio
async def test_enrichment_requested_once_per_visit(store, clock, make_card, generator):
    make_card("apple")
    session = _session(store, clock, generator)
    session.start()

    first = session.request_enrichment()
    assert first is not None
    assert session.request_enrichment() is None
    await first
    assert generator.generate_question.await_count == 1


@pytest.mark.asyncio
async def test_sessions_sharing_inflight_fetch_once(store, clock, make_card, generator):
    make_card("apple")
    inflight = set()
    first = ReviewSession(store, ReviewConfig(), generator, clock=clock, inflight=inflight)
    first.start()
    request = first.request_enrichment()
    first.close()

    second = ReviewSession(store, ReviewConfig(), generator, clock=clock, inflight=inflight)
    second.start()
    assert second.request_enrichment() is None

    await request
    assert inflight == set()
    assert generator.generate_question.await_count == 1


@pytest.mark.asyncio
async def test_enrichment_skipped_when_question_not_displayed(
    store, clock, make_card, generator
):
    make_card("apple")
    session = _session(store, clock, generator, front_fields=["content"], back_fields=["meaning"])
    session.start()
    assert session.request_enrichment() is None
    generator.generate_question.assert_not_awaited()


@pytest.mark.asyncio
async def test_late_enrichment_lands_on_fresh_card(store, clock, make_card, generator):
    card = make_card("apple", created_at=clock.now - 60 * MINUTE)
    make_card("pear", created_at=clock.now)
    session = _session(store, clock, generator)
    session.start()

    request = session.request_enrichment()
    # The review is recorded and the user moves on before the answer arrives
    session.commit_review()
    session.next()
    await request

    stored = store.get(card.id)
    assert stored.ai_question == "Q: apple"
    assert stored.review_count == 1


def test_snapshot(store, clock, make_card):
    card = make_card("apple", created_at=clock.now - 60 * MINUTE)
    session = _session(store, clock)
    session.start()
    snap = session.snapshot()
    assert snap["state"] == "viewing"
    assert snap["card_id"] == card.id
    assert snap["total"] == 1
    assert snap["due"] is True
    assert snap["last_outcome"] is None
