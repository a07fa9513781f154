import json

import pytest

from memocurve.application.config import ReviewConfig
from memocurve.domain.errors import CardNotFoundError, PersistenceParseError
from memocurve.domain.models import Card
from memocurve.domain.schedule import generate_schedule
from memocurve.infrastructure.blob_store import JsonBlobStore
from memocurve.infrastructure.card_store import CardStore, decode_cards, encode_cards


def _reopen(data_dir):
    return CardStore(JsonBlobStore(data_dir)).load()


def test_cards_persist(store, data_dir):
    card = Card.create("c1", "apple", 0, meaning="fruit")
    card.mark_stage(0, True, 1_900_000)
    card.ai_question = "What is red and round?"
    store.add(card)

    loaded = _reopen(data_dir).get("c1")
    assert loaded == card


def test_stored_json_uses_camel_case(store, data_dir):
    store.add(Card.create("c1", "apple", 0))
    raw = json.loads((data_dir / "memocurve_data.json").read_text(encoding="utf-8"))
    assert set(raw[0]) == {
        "id",
        "content",
        "meaning",
        "example",
        "aiQuestion",
        "createdAt",
        "reviewCount",
        "schedule",
        "completedAt",
        "nextDue",
    }
    assert raw[0]["nextDue"] == 1_800_000


def test_legacy_keys_are_read():
    schedule = generate_schedule(0)
    raw = json.dumps(
        [
            {
                "id": "legacy",
                "content": "apple",
                "meaning": None,
                "recordedTime": 0,
                "reviewCount": 1,
                "reviewDateList": schedule,
                "completedReviewDates": [schedule[0]],
                "nextScheduledReview": schedule[1],
            }
        ]
    )
    (card,), skipped = decode_cards(raw)
    assert skipped == 0
    assert card.created_at == 0
    assert card.meaning == ""
    assert card.completed_at == [schedule[0]]
    assert card.next_due == schedule[1]
    assert json.loads(encode_cards([card]))[0]["createdAt"] == 0


def test_unreadable_record_is_skipped():
    good = json.loads(encode_cards([Card.create("good", "apple", 0)]))[0]
    raw = json.dumps(
        [{"id": "x", "content": "a", "createdAt": 0, "schedule": [1, 2], "nextDue": 1}, good]
    )
    cards, skipped = decode_cards(raw)
    assert [c.id for c in cards] == ["good"]
    assert skipped == 1


def test_non_list_blob_is_rejected():
    with pytest.raises(PersistenceParseError):
        decode_cards('{"id": "x"}')


def test_extra_completions_are_clamped():
    schedule = generate_schedule(0)
    over = {
        "id": "over",
        "content": "apple",
        "createdAt": 0,
        "reviewCount": 13,
        "schedule": schedule,
        "completedAt": schedule + [schedule[-1] + 1],
        "nextDue": 0,
    }
    good = json.loads(encode_cards([Card.create("good", "pear", 0)]))[0]
    cards, skipped = decode_cards(json.dumps([over, good]))

    assert skipped == 0
    loaded = {c.id: c for c in cards}
    assert loaded["over"].completed_at == schedule
    assert loaded["over"].review_count == 12
    assert loaded["over"].next_due == schedule[-1]
    assert loaded["good"].review_count == 0


def test_inconsistent_progress_is_recomputed():
    schedule = generate_schedule(0)
    raw = json.dumps(
        [
            {
                "id": "c1",
                "content": "apple",
                "createdAt": 0,
                "reviewCount": 5,
                "schedule": schedule,
                "completedAt": schedule[:2],
                "nextDue": 42,
            }
        ]
    )
    (card,), _ = decode_cards(raw)
    assert card.review_count == 2
    assert card.next_due == schedule[2]


def test_skipped_records_are_kept_aside(data_dir):
    blobs = JsonBlobStore(data_dir)
    good = json.loads(encode_cards([Card.create("good", "apple", 0)]))[0]
    raw = json.dumps([{"id": "broken", "content": "a"}, good])
    blobs.set("memocurve_data", raw)

    store = CardStore(blobs).load()
    assert [c.id for c in store.list_cards()] == ["good"]
    assert store.skipped == 1
    assert blobs.get("memocurve_data.corrupt") == raw

    store.save()
    assert blobs.get("memocurve_data.corrupt") == raw


def test_corrupt_cards_fall_back_to_empty(data_dir):
    blobs = JsonBlobStore(data_dir)
    blobs.set("memocurve_data", "{not json")
    store = CardStore(blobs).load()

    assert store.list_cards() == []
    assert blobs.get("memocurve_data.corrupt") == "{not json"


def test_corrupt_config_falls_back_to_default(data_dir):
    blobs = JsonBlobStore(data_dir)
    blobs.set("memocurve_config", '{"reviewDurationTrigger": 500}')
    store = CardStore(blobs).load()
    assert store.load_config() == ReviewConfig()


def test_update_and_delete(store):
    store.add_many([Card.create("a", "apple", 0), Card.create("b", "pear", 0)])

    card = store.get("a")
    card.content = "green apple"
    store.update(card)
    assert store.get("a").content == "green apple"

    assert store.delete(["a", "a", "zzz"]) == 1
    assert [c.id for c in store.list_cards()] == ["b"]


def test_update_unknown_card(store):
    with pytest.raises(CardNotFoundError):
        store.update(Card.create("ghost", "boo", 0))


def test_duplicate_id_rejected(store):
    store.add(Card.create("a", "apple", 0))
    with pytest.raises(ValueError, match="Duplicate"):
        store.add(Card.create("a", "again", 0))


def test_handed_out_cards_are_copies(store):
    store.add(Card.create("a", "apple", 0))
    card = store.get("a")
    card.mark_stage(0, True, 1)
    assert store.get("a").completed_at == []


def test_config_round_trip(store, data_dir):
    store.save_config(ReviewConfig(review_duration_trigger=25, front_fields=["content"]))
    config = _reopen(data_dir).load_config()
    assert config.review_duration_trigger == 25
    assert config.front_fields == ["content"]


def test_context_manager_saves(data_dir):
    with CardStore(JsonBlobStore(data_dir)) as store:
        store.add(Card.create("a", "apple", 0))
    assert _reopen(data_dir).get("a") is not None
