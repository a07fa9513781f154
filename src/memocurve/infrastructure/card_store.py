"""
Card Store — Infrastructure adapter owning the card collection and review config.

Implements CardRepository on top of a JsonBlobStore. The whole collection is
rewritten on every change, mirroring the blob semantics of the storage.
"""

import json
import logging
from collections.abc import Iterable
from dataclasses import asdict

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)

from memocurve.application.config import ReviewConfig
from memocurve.domain.constants import CARDS_KEY, CONFIG_KEY, STAGE_COUNT
from memocurve.domain.errors import CardNotFoundError, PersistenceParseError
from memocurve.domain.models import Card
from memocurve.domain.ports import CardRepository
from memocurve.domain.schedule import resolve_next_due

from .blob_store import JsonBlobStore

logger = logging.getLogger(__name__)


class CardRecord(BaseModel):
    """
    Persisted shape of a card.

    Also accepts the legacy key names (recordedTime, reviewDateList,
    completedReviewDates, nextScheduledReview) on load.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    content: str
    meaning: str | None = ""
    example: str | None = ""
    ai_question: str | None = Field(
        default=None,
        validation_alias=AliasChoices("aiQuestion", "ai_question"),
        serialization_alias="aiQuestion",
    )
    created_at: int = Field(
        validation_alias=AliasChoices("createdAt", "recordedTime", "created_at"),
        serialization_alias="createdAt",
    )
    review_count: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("reviewCount", "review_count"),
        serialization_alias="reviewCount",
    )
    schedule: list[int] = Field(
        validation_alias=AliasChoices("schedule", "reviewDateList"),
        min_length=STAGE_COUNT,
        max_length=STAGE_COUNT,
    )
    completed_at: list[int] = Field(
        default_factory=list,
        validation_alias=AliasChoices("completedAt", "completedReviewDates", "completed_at"),
        serialization_alias="completedAt",
    )
    next_due: int = Field(
        default=0,
        validation_alias=AliasChoices("nextDue", "nextScheduledReview", "next_due"),
        serialization_alias="nextDue",
    )

    @model_validator(mode="after")
    def normalize_progress(self) -> "CardRecord":
        # Extra completions beyond the last stage are dropped; count and due time are derived.
        if len(self.completed_at) > STAGE_COUNT:
            logger.warning(
                f"[store] {self.id}: dropping {len(self.completed_at) - STAGE_COUNT} "
                f"completions past the last stage"
            )
            self.completed_at = self.completed_at[:STAGE_COUNT]
        self.review_count = len(self.completed_at)
        self.next_due = resolve_next_due(self.schedule, self.completed_at)
        return self

    @classmethod
    def from_card(cls, card: Card) -> "CardRecord":
        return cls(**asdict(card))

    def to_card(self) -> Card:
        data = self.model_dump()
        data["meaning"] = data["meaning"] or ""
        data["example"] = data["example"] or ""
        return Card(**data)


_card_list = TypeAdapter(list[CardRecord])


def decode_cards(raw: str) -> tuple[list[Card], int]:
    """
    Decode the card list record by record.

    Returns the readable cards and the number of records that were skipped.
    Raises PersistenceParseError only when the blob as a whole is unreadable.
    """
    try:
        items = json.loads(raw)
    except json.JSONDecodeError as e:
        raise PersistenceParseError(CARDS_KEY, str(e)) from e
    if not isinstance(items, list):
        raise PersistenceParseError(CARDS_KEY, f"expected a list, got {type(items).__name__}")

    cards: list[Card] = []
    skipped = 0
    for position, item in enumerate(items):
        try:
            cards.append(CardRecord.model_validate(item).to_card())
        except ValidationError as e:
            skipped += 1
            card_id = item.get("id") if isinstance(item, dict) else None
            logger.warning(
                f"[store] skipping unreadable card #{position} ({card_id or 'no id'}): "
                f"{e.error_count()} validation error(s)"
            )
    return cards, skipped


def encode_cards(cards: Iterable[Card]) -> str:
    records = [CardRecord.from_card(c) for c in cards]
    return _card_list.dump_json(records, by_alias=True).decode("utf-8")


def decode_config(raw: str) -> ReviewConfig:
    try:
        return ReviewConfig.model_validate_json(raw)
    except ValidationError as e:
        raise PersistenceParseError(CONFIG_KEY, str(e)) from e


class CardStore(CardRepository):
    """
    Explicitly owned store for the card collection and review config.

    Usage:
        store = CardStore(JsonBlobStore(data_dir)).load()
        store.add(card)          # persisted immediately
        store.update(card)       # replace by id, persisted immediately

    Or as a context manager, which loads on enter and saves on exit.
    Cards handed out are copies: changes only take effect through update().
    """

    def __init__(self, blobs: JsonBlobStore):
        self._blobs = blobs
        self._cards: dict[str, Card] = {}
        self._config = ReviewConfig()
        self.loaded = False
        self.skipped = 0

    def __enter__(self) -> "CardStore":
        return self.load()

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.loaded:
            self.save()

    # ---------- Lifecycle ----------

    def load(self) -> "CardStore":
        """
        Read cards and config from the blob store.

        Unreadable state never aborts: the corrupt blob is kept aside under
        `<key>.corrupt` and the store continues with an empty collection or
        the default config. Single unreadable cards are dropped the same way,
        keeping the rest of the collection.
        """
        cards, skipped = self._load_blob(CARDS_KEY, decode_cards, lambda: ([], 0))
        if skipped:
            logger.error(f"[store] {skipped} unreadable card(s) dropped from '{CARDS_KEY}'.")
            self._keep_aside(CARDS_KEY)
        self.skipped = skipped
        self._cards = {c.id: c for c in cards}
        self._config = self._load_blob(CONFIG_KEY, decode_config, ReviewConfig)
        self.loaded = True
        logger.debug(f"[store] loaded {len(self._cards)} cards")
        return self

    def _load_blob(self, key, decode, default):
        try:
            raw = self._blobs.get(key)
        except OSError as e:
            logger.error(f"[store] could not read '{key}': {e}")
            return default()
        if raw is None:
            return default()
        try:
            return decode(raw)
        except PersistenceParseError as e:
            logger.error(f"[store] {e}. Falling back to defaults.")
            self._blobs.set(f"{key}.corrupt", raw)
            return default()

    def _keep_aside(self, key: str) -> None:
        raw = self._blobs.get(key)
        if raw is not None:
            self._blobs.set(f"{key}.corrupt", raw)

    def save(self) -> None:
        self._blobs.set(CARDS_KEY, encode_cards(self._cards.values()))

    # ---------- Cards ----------

    def list_cards(self) -> list[Card]:
        return [c.copy() for c in self._cards.values()]

    def get(self, card_id: str) -> Card | None:
        card = self._cards.get(card_id)
        return card.copy() if card else None

    def add(self, card: Card) -> None:
        self.add_many([card])

    def add_many(self, cards: Iterable[Card]) -> int:
        added = 0
        for card in cards:
            if card.id in self._cards:
                raise ValueError(f"Duplicate card id: {card.id}")
            self._cards[card.id] = card.copy()
            added += 1
        if added:
            self.save()
        return added

    def update(self, card: Card) -> None:
        if card.id not in self._cards:
            raise CardNotFoundError(card.id)
        self._cards[card.id] = card.copy()
        self.save()
        logger.debug(
            f"[store] {card.id}: reviews={card.review_count} next_due={card.next_due}"
        )

    def delete(self, card_ids: Iterable[str]) -> int:
        removed = 0
        for card_id in set(card_ids):
            if self._cards.pop(card_id, None) is not None:
                removed += 1
        if removed:
            self.save()
        return removed

    # ---------- Config ----------

    def load_config(self) -> ReviewConfig:
        return self._config.model_copy(deep=True)

    def save_config(self, config: ReviewConfig) -> None:
        self._config = config.model_copy(deep=True)
        self._blobs.set(CONFIG_KEY, self._config.to_json())
