"""Dashboard operations: creating, importing, exporting, searching and deleting cards."""

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ulid import ULID

from memocurve.application.utils.clock import format_ms, now_ms
from memocurve.domain.constants import EXPORT_COLUMNS, EXPORT_FILE_PREFIX, EXPORT_SHEET_TITLE
from memocurve.domain.models import Card, ImportResult
from memocurve.domain.ports import CardRepository
from memocurve.infrastructure.spreadsheet import read_rows, write_rows

from .transfer import cards_from_rows, export_rows

logger = logging.getLogger(__name__)


def generate_card_id() -> str:
    """Generate a stable, sortable card ID using ULID."""
    return str(ULID())


@dataclass(frozen=True)
class DeckSummary:
    total: int
    pending: int  # next review already in the past


class CardService:
    def __init__(
        self,
        repository: CardRepository,
        clock: Callable[[], int] = now_ms,
        id_factory: Callable[[], str] = generate_card_id,
    ):
        self._repo = repository
        self._clock = clock
        self._new_id = id_factory

    def add_card(self, content: str, meaning: str = "", example: str = "") -> Card:
        content = (content or "").strip()
        if not content:
            raise ValueError("Content is required.")
        card = Card.create(
            self._new_id(),
            content,
            self._clock(),
            meaning=(meaning or "").strip(),
            example=(example or "").strip(),
        )
        self._repo.add(card)
        logger.info(f"Added card {card.id}: {content!r}")
        return card

    def import_rows(self, rows: Iterable[Mapping[Any, Any]]) -> ImportResult:
        cards, skipped = cards_from_rows(rows, self._clock(), self._new_id)
        imported = self._repo.add_many(cards)
        if skipped:
            logger.info(f"Skipped {skipped} rows without content")
        logger.info(f"Imported {imported} cards")
        return ImportResult(imported=imported, skipped=skipped)

    def import_file(self, path: Path) -> ImportResult:
        return self.import_rows(read_rows(path))

    def export_file(
        self,
        path: Path | None = None,
        selected_ids: Iterable[str] | None = None,
        directory: Path | None = None,
    ) -> Path:
        """
        Write the selected cards (or all of them) to a spreadsheet.

        Without an explicit path the file is named after the current time,
        e.g. Ebbinghaus_Review_Data_202601011200.xlsx.
        """
        if path is None:
            stamp = format_ms(self._clock(), "%Y%m%d%H%M")
            path = (directory or Path.cwd()) / f"{EXPORT_FILE_PREFIX}{stamp}.xlsx"
        rows = export_rows(self._repo.list_cards(), selected_ids)
        write_rows(path, rows, EXPORT_COLUMNS, sheet_title=EXPORT_SHEET_TITLE)
        logger.info(f"Exported {len(rows)} cards to {path}")
        return path

    def delete_cards(self, card_ids: Iterable[str]) -> int:
        removed = self._repo.delete(card_ids)
        logger.info(f"Deleted {removed} cards")
        return removed

    def search(self, term: str = "") -> list[Card]:
        needle = (term or "").lower()
        return [c for c in self._repo.list_cards() if needle in c.content.lower()]

    def summary(self, now: int | None = None) -> DeckSummary:
        now = self._clock() if now is None else now
        cards = self._repo.list_cards()
        return DeckSummary(total=len(cards), pending=sum(1 for c in cards if c.next_due < now))
