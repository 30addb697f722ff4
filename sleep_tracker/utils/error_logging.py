"""
Banner logging for failures that must stand out in the request log: store
errors, Gemini failures and a missing API key at startup.
"""
import traceback
from typing import Optional

from sleep_tracker.utils.logging_config import get_logger

logger = get_logger(__name__)

BANNER_WIDTH = 80


def format_banner(heading: str, fill: str, message: str, context: Optional[str] = None,
                  details=()) -> str:
    """One multi-line block, so a banner is a single record and stays contiguous in the file."""
    edge = fill * BANNER_WIDTH
    lines = ["", edge, heading.center(BANNER_WIDTH), edge]
    if context:
        lines.append(f"CONTEXT: {context}")
    lines.append(f"MESSAGE: {message}")
    lines.extend(details)
    lines.extend([edge, ""])
    return "\n".join(lines)


def log_critical_error(
    message: str,
    exception: Optional[BaseException] = None,
    context: Optional[str] = None,
    include_traceback: bool = True
):
    """
    Args:
        message: what failed, e.g. "Failed to create sleep record"
        exception: the caught exception, if any
        context: where it happened, e.g. "SleepRepository.create"
        include_traceback: append the exception's traceback
    """
    details = []
    if exception is not None:
        details.append(f"EXCEPTION: {type(exception).__name__}: {exception}")
        if include_traceback:
            details.append("".join(traceback.format_exception(exception)).rstrip())
    logger.error(format_banner("ERROR", "*", message, context, details))


def log_warning_banner(message: str, context: Optional[str] = None):
    logger.warning(format_banner("WARNING", "!", message, context))
