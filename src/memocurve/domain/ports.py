"""
Ports (interfaces) for the collaborators the review core depends on.

Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from enum import Enum
from typing import TYPE_CHECKING

from .models import Card

if TYPE_CHECKING:
    from memocurve.application.config import ReviewConfig


class CardRepository(ABC):
    """
    Port for the card collection and the user's review config.

    Every write replaces whole cards by id, so writes are last-write-wins.

    Implementations:
        - CardStore: JSON blobs on disk.
    """

    @abstractmethod
    def list_cards(self) -> list[Card]:
        pass

    @abstractmethod
    def get(self, card_id: str) -> Card | None:
        pass

    @abstractmethod
    def add(self, card: Card) -> None:
        pass

    @abstractmethod
    def add_many(self, cards: Iterable[Card]) -> int:
        pass

    @abstractmethod
    def update(self, card: Card) -> None:
        """
        Replace the stored card that has the same id.

        Raises:
            CardNotFoundError: No card with this id exists.
        """
        pass

    @abstractmethod
    def delete(self, card_ids: Iterable[str]) -> int:
        """Delete the given ids. Returns the number actually removed."""
        pass

    @abstractmethod
    def load_config(self) -> "ReviewConfig":
        pass

    @abstractmethod
    def save_config(self, config: "ReviewConfig") -> None:
        pass


class QuestionGenerator(ABC):
    """Port for the optional AI question that is cached on a card."""

    @abstractmethod
    async def generate_question(self, content: str) -> str:
        """
        Produce a short question about content.

        Implementations must not raise: on failure they return a templated fallback.
        """
        pass


class NotificationPermission(str, Enum):
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


class Notifier(ABC):
    """Port for surfacing review reminders to the user."""

    @abstractmethod
    def permission(self) -> NotificationPermission:
        pass

    @abstractmethod
    def request_permission(self) -> NotificationPermission:
        pass

    @abstractmethod
    def notify(self, title: str, body: str) -> None:
        pass

    @abstractmethod
    def explain(self, message: str) -> None:
        """Show a one-off explanatory message (used when permission is denied)."""
        pass
