"""Error kinds raised across MemoCurve layers."""


class MemoCurveError(Exception):
    """Base class for all MemoCurve errors."""


class PersistenceParseError(MemoCurveError):
    """Persisted state could not be decoded. Recovered by falling back to defaults."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Could not parse persisted '{key}': {reason}")


class EnrichmentFailure(MemoCurveError):
    """The question generator failed (network, auth, quota, empty response)."""


class OrderViolationError(MemoCurveError):
    """A stage was checked or unchecked out of sequence."""

    def __init__(self, index: int, completed: int, set_completed: bool, message: str):
        self.index = index
        self.completed = completed
        self.set_completed = set_completed
        super().__init__(message)


class CardNotFoundError(MemoCurveError):
    def __init__(self, card_id: str):
        self.card_id = card_id
        super().__init__(f"Card not found: {card_id}")
