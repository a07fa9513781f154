"""MemoCurve: Ebbinghaus-curve flashcard reviews."""

from memocurve.consts import VERSION

__version__ = VERSION
