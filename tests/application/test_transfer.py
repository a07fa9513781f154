from memocurve.application.transfer import cards_from_rows, export_row, export_rows
from memocurve.application.utils.clock import format_ms
from memocurve.domain.models import Card


def _ids():
    counter = iter(range(100))
    return lambda: f"c{next(counter)}"


def test_headers_are_case_insensitive():
    rows = [
        {"Content": "apple", "Meaning": "fruit"},
        {"content": "pear", "meaning": None},
        {"CONTENT": "plum", "EXAMPLE": "a plum"},
    ]
    cards, skipped = cards_from_rows(rows, 0, _ids())
    assert skipped == 0
    assert [c.content for c in cards] == ["apple", "pear", "plum"]
    assert cards[0].meaning == "fruit"
    assert cards[1].meaning == ""
    assert cards[2].example == "a plum"


def test_rows_without_content_are_skipped():
    rows = [{"Content": ""}, {"Meaning": "lonely"}, {"Content": "   "}, {"Content": "kiwi"}]
    cards, skipped = cards_from_rows(rows, 0, _ids())
    assert skipped == 3
    assert [c.content for c in cards] == ["kiwi"]


def test_imported_cards_start_fresh():
    cards, _ = cards_from_rows([{"Content": 42}], 1_000, _ids())
    card = cards[0]
    assert card.content == "42"
    assert card.created_at == 1_000
    assert card.next_due == card.schedule[0] == 1_000 + 1_800_000
    assert card.review_count == 0


def test_export_row_formats():
    card = Card.create("c1", "apple", 0, meaning="fruit")
    card.mark_stage(0, True, 1_900_000)
    row = export_row(card)

    assert row["Content"] == "apple"
    assert row["ReviewCount"] == 1
    assert row["RecordedTime"] == format_ms(0, "%Y-%m-%d %H:%M:%S")
    assert row["ReviewDateList"].count(", ") == 11
    assert row["CompletedReviewDates"] == format_ms(1_900_000, "%Y-%m-%d %H:%M")
    assert row["NextScheduledReview"] == format_ms(card.schedule[1], "%Y-%m-%d %H:%M:%S")


def test_export_rows_selection():
    cards = [Card.create("a", "apple", 0), Card.create("b", "pear", 0)]
    assert len(export_rows(cards)) == 2
    assert len(export_rows(cards, [])) == 2
    assert [r["Content"] for r in export_rows(cards, ["b"])] == ["pear"]
