from unittest.mock import AsyncMock

import pytest

from memocurve.domain.models import Card
from memocurve.infrastructure.blob_store import JsonBlobStore
from memocurve.infrastructure.card_store import CardStore

T0 = 1_700_000_000_000
MINUTE = 60_000


class FixedClock:
    """A settable epoch-ms clock."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def store(data_dir):
    return CardStore(JsonBlobStore(data_dir)).load()


@pytest.fixture
def make_card(store):
    """Add a card created at `created_at` with `done` stages already completed."""
    counter = iter(range(1, 10_000))

    def _make(content="apple", created_at=T0, done=0, **kwargs):
        card = Card.create(f"card-{next(counter):03d}", content, created_at, **kwargs)
        for i in range(done):
            card.mark_stage(i, True, card.schedule[i])
        store.add(card)
        return card

    return _make


@pytest.fixture
def generator():
    gen = AsyncMock()
    gen.generate_question.side_effect = lambda content: f"Q: {content}"
    return gen
