# bootstrap.py
from dataclasses import dataclass

from sleep_tracker.models.base import get_session_factory
from sleep_tracker.repositories.sleep_repository import SleepRepository
from sleep_tracker.services.advice_relay import AdviceRelay
from sleep_tracker.services.gemini_llm import GeminiLLM
from sleep_tracker.utils.error_logging import log_warning_banner
from sleep_tracker.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Services:
    """Per-app service container, handed to blueprints explicitly."""
    sleep_repository: SleepRepository
    text_generator: object
    advice_relay: AdviceRelay


def initialize_services(app, repository=None, text_generator=None):
    """
    Builds the repository, the Gemini client wrapper and the advice relay.
    Either of the first two can be supplied (tests pass fakes).
    """
    config = app.config

    if repository is None:
        repository = SleepRepository(get_session_factory(config['SQLALCHEMY_DATABASE_URI']))
    logger.info("✅ Sleep repository initialized")

    if text_generator is None:
        text_generator = GeminiLLM(
            api_key=config.get('GEMINI_API_KEY'),
            model=config.get('GEMINI_MODEL'),
            temperature=config.get('GEMINI_TEMPERATURE'),
            timeout_seconds=config.get('GEMINI_TIMEOUT_SECONDS'),
        )
        if not text_generator.is_configured:
            log_warning_banner(
                "GEMINI_API_KEY is not set; /api/sleep/advice will fail until it is configured",
                context="initialize_services",
            )

    advice_relay = AdviceRelay(repository, text_generator)
    logger.info("✅ Advice relay initialized")

    return Services(
        sleep_repository=repository,
        text_generator=text_generator,
        advice_relay=advice_relay,
    )
