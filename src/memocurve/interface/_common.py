"""Helpers shared by the CLI command modules."""

from typing import Any

import typer

from memocurve.application.config import AppConfig, resolve_config
from memocurve.application.factory import get_card_store
from memocurve.application.utils.clock import format_ms, humanize_delta
from memocurve.domain.constants import SCHEDULE_FORMAT, STAGE_COUNT
from memocurve.domain.errors import CardNotFoundError, MemoCurveError
from memocurve.domain.models import Card, StageView
from memocurve.domain.schedule import StageStatus
from memocurve.infrastructure.card_store import CardStore


def _resolve_with_overrides(**overrides: Any) -> AppConfig:
    return resolve_config(overrides)


def open_store(config: AppConfig) -> CardStore:
    return get_card_store(config)


def find_card(store: CardStore, card_id: str) -> Card:
    """Resolve a full id or a unique id prefix (as printed by `memocurve list`)."""
    card = store.get(card_id)
    if card is not None:
        return card
    matches = [c for c in store.list_cards() if c.id.lower().startswith(card_id.lower())]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise CardNotFoundError(card_id)
    raise MemoCurveError(f"Ambiguous card id '{card_id}' matches {len(matches)} cards")


def describe_due(next_due: int, now: int) -> str:
    return f"{format_ms(next_due, '%b %d, %H:%M')} ({humanize_delta(next_due - now)})"


def humanize_error(e: Exception) -> str:
    if isinstance(e, CardNotFoundError):
        return f"No card with id '{e.card_id}'. Run 'memocurve list' to see ids."
    if isinstance(e, FileNotFoundError):
        return f"File not found: {e.filename}"
    return str(e)


def fail(e: Exception) -> None:
    typer.secho(humanize_error(e), fg="red", err=True)
    raise typer.Exit(1)


FIELD_LABELS = {
    "content": "Content",
    "meaning": "Meaning",
    "example": "Example",
    "aiQuestion": "Question",
}

STATUS_COLORS = {
    StageStatus.COMPLETED: "green",
    StageStatus.OVERDUE: "red",
    StageStatus.PENDING: "white",
}


def print_stage_rows(card: Card, rows: list[StageView]) -> None:
    typer.secho(f"{card.content}  ({card.review_count}/{STAGE_COUNT} reviews)", bold=True)
    for row in rows:
        marker = ">" if row.is_next else " "
        typer.secho(
            f"{marker} {row.index + 1:>2}. {row.label:<36} "
            f"{format_ms(row.due_at, SCHEDULE_FORMAT)}  {row.status.value}",
            fg=STATUS_COLORS[row.status],
        )
