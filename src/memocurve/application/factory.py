"""
Store and Question Generator Factory
Centralizes the logic for wiring infrastructure from configuration.
"""

import logging

from memocurve.application.config import AppConfig
from memocurve.domain.ports import QuestionGenerator
from memocurve.infrastructure.adapters.gemini import (
    GeminiQuestionGenerator,
    OfflineQuestionGenerator,
)
from memocurve.infrastructure.blob_store import JsonBlobStore
from memocurve.infrastructure.card_store import CardStore

logger = logging.getLogger(__name__)


def get_card_store(config: AppConfig) -> CardStore:
    """Open and load the card store under config.data_dir."""
    return CardStore(JsonBlobStore(config.data_dir)).load()


def get_question_generator(config: AppConfig) -> QuestionGenerator:
    """
    Returns the QuestionGenerator implementation selected by config.enrichment.
    """
    # 1. Manual selection
    if config.enrichment == "offline":
        return OfflineQuestionGenerator()

    if config.enrichment == "gemini":
        return GeminiQuestionGenerator(api_key=config.gemini_api_key, model=config.gemini_model)

    # 2. Auto selection: Gemini when a key is configured
    if config.gemini_api_key:
        logger.debug(f"Question generator: Gemini ({config.gemini_model})")
        return GeminiQuestionGenerator(api_key=config.gemini_api_key, model=config.gemini_model)

    logger.debug("Question generator: offline (no Gemini API key)")
    return OfflineQuestionGenerator()
