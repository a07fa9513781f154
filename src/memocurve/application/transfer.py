"""
Mapping between spreadsheet rows and cards.

Pure functions; reading and writing the files lives in
memocurve.infrastructure.spreadsheet.
"""

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from memocurve.domain.constants import SCHEDULE_FORMAT, TIMESTAMP_FORMAT
from memocurve.domain.models import Card

from .utils.clock import format_ms


def _normalize(row: Mapping[Any, Any]) -> dict[str, Any]:
    # Header lookups are case-insensitive: Content, content and CONTENT all match.
    return {str(k).strip().lower(): v for k, v in row.items() if k is not None}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def cards_from_rows(
    rows: Iterable[Mapping[Any, Any]],
    now: int,
    id_factory: Callable[[], str],
) -> tuple[list[Card], int]:
    """
    Turn imported rows into new cards, all created at `now`.

    Returns:
        (cards, skipped) where skipped counts rows without any content.
    """
    cards: list[Card] = []
    skipped = 0
    for row in rows:
        data = _normalize(row)
        content = _text(data.get("content"))
        if not content:
            skipped += 1
            continue
        cards.append(
            Card.create(
                id_factory(),
                content,
                now,
                meaning=_text(data.get("meaning")),
                example=_text(data.get("example")),
            )
        )
    return cards, skipped


def export_row(card: Card) -> dict[str, Any]:
    return {
        "Content": card.content,
        "Meaning": card.meaning,
        "Example": card.example,
        "RecordedTime": format_ms(card.created_at, TIMESTAMP_FORMAT),
        "ReviewCount": card.review_count,
        "ReviewDateList": ", ".join(format_ms(t, SCHEDULE_FORMAT) for t in card.schedule),
        "CompletedReviewDates": ", ".join(
            format_ms(t, SCHEDULE_FORMAT) for t in card.completed_at
        ),
        "NextScheduledReview": format_ms(card.next_due, TIMESTAMP_FORMAT),
    }


def export_rows(cards: Iterable[Card], selected_ids: Iterable[str] | None = None) -> list[dict]:
    """Rows for the selected cards, or for every card when nothing is selected."""
    selected = set(selected_ids or ())
    return [export_row(c) for c in cards if not selected or c.id in selected]
