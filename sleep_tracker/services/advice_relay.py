"""
AI sleep advice.

Builds a prompt from the most recent nights and relays Gemini's streamed
answer chunk by chunk. With fewer than MIN_RECORDS nights a fixed message is
returned instead and Gemini is never called.

Per request: fetch records -> low-data message, or
format prompt -> call upstream -> stream -> done. Any step can fail; there
are no retries.
"""
import json
from dataclasses import dataclass
from typing import Iterator, List, Optional

from sleep_tracker.services.gemini_llm import MissingCredentialError
from sleep_tracker.services.sleep_statistics import round_half_up
from sleep_tracker.utils.error_logging import log_critical_error
from sleep_tracker.utils.logging_config import get_logger, log_standout_text
from sleep_tracker.utils.time_utils import utc_to_local

logger = get_logger(__name__)

RECENT_LIMIT = 30
MIN_RECORDS = 5

LOW_DATA_MESSAGE = (
    "Not enough sleep data to analyze yet. "
    "Record at least 5 nights of sleep and try again."
)

ADVICE_PROMPT_TEMPLATE = """You are a friendly sleep coach.
Below are my most recent sleep records as a JSON array. Each entry has the date,
bedtime (sleepTime), wake time (wakeTime), total sleep in hours (duration),
a self-rated quality score from 1 to 10 (quality) and optional notes.

{records_json}

Please:
1. Summarize my sleep patterns (bedtime and wake time consistency, average duration, quality trend).
2. Point out anything that stands out, including links between the notes and the quality scores.
3. Give 3 to 5 concrete, practical suggestions to improve my sleep.

Answer in Markdown with short sections and bullet points. Do not give medical diagnoses."""


class AdviceError(Exception):
    """Base for advice failures; user_message is safe to show to the caller."""
    user_message = "Failed to generate AI advice."


class AdviceConfigurationError(AdviceError):
    user_message = "AI advice is not configured."


class AdviceUpstreamError(AdviceError):
    pass


@dataclass
class AdviceResult:
    """Either a single low-data message or a live chunk stream."""
    message: Optional[str] = None
    chunks: Optional["AdviceStream"] = None

    @property
    def is_stream(self) -> bool:
        return self.chunks is not None


class AdviceStream:
    """
    Iterator over relayed chunks. close() releases the upstream stream even
    when the body was never iterated.
    """

    def __init__(self, relay: Iterator[str], upstream: Iterator[str]):
        self._relay = relay
        self._upstream = upstream

    def __iter__(self):
        return self

    def __next__(self) -> str:
        return next(self._relay)

    def close(self):
        self._relay.close()
        _close_upstream(self._upstream)


def _close_upstream(upstream):
    close = getattr(upstream, "close", None)
    if close is not None:
        close()


def summarize_record(record) -> dict:
    sleep_local = utc_to_local(record.sleep_time)
    wake_local = utc_to_local(record.wake_time)
    return {
        "date": sleep_local.strftime("%Y-%m-%d"),
        "sleepTime": sleep_local.strftime("%H:%M"),
        "wakeTime": wake_local.strftime("%H:%M"),
        "duration": round_half_up(record.duration) if record.duration is not None else None,
        "quality": record.quality,
        "notes": record.notes,
    }


def build_advice_prompt(records) -> str:
    summaries = [summarize_record(r) for r in records]
    records_json = json.dumps(summaries, ensure_ascii=False, indent=2)
    return ADVICE_PROMPT_TEMPLATE.format(records_json=records_json)


class AdviceRelay:
    def __init__(self, repository, text_generator, recent_limit=RECENT_LIMIT, min_records=MIN_RECORDS):
        self.repository = repository
        self.text_generator = text_generator
        self.recent_limit = recent_limit
        self.min_records = min_records

    def request_advice(self) -> AdviceResult:
        """
        Raises:
            AdviceConfigurationError: no Gemini key configured
            AdviceUpstreamError: Gemini failed before the first chunk arrived
        """
        records = self.repository.recent(self.recent_limit)
        if len(records) < self.min_records:
            logger.info(f"Only {len(records)} sleep records; returning low-data advice")
            return AdviceResult(message=LOW_DATA_MESSAGE)

        prompt = build_advice_prompt(records)
        logger.model_user(prompt)
        return AdviceResult(chunks=self._open_stream(prompt))

    def _open_stream(self, prompt: str) -> "AdviceStream":
        # Pull the first chunk eagerly so failures before any output can still
        # become a proper error response.
        try:
            upstream = iter(self.text_generator.stream_text(prompt))
            first = next(upstream, None)
        except MissingCredentialError as e:
            log_critical_error("Gemini API key missing", exception=e,
                               context="AdviceRelay._open_stream", include_traceback=False)
            raise AdviceConfigurationError(str(e)) from e
        except Exception as e:
            log_critical_error("Gemini request failed before streaming", exception=e,
                               context="AdviceRelay._open_stream")
            raise AdviceUpstreamError(str(e)) from e

        return AdviceStream(self._relay(first, upstream), upstream)

    def _relay(self, first: Optional[str], upstream: Iterator[str]) -> Iterator[str]:
        delivered: List[str] = []
        try:
            if first is None:
                return
            delivered.append(first)
            yield first
            for chunk in upstream:
                delivered.append(chunk)
                yield chunk
        except GeneratorExit:
            logger.info(f"Client disconnected after {len(delivered)} advice chunks")
            raise
        except Exception as e:
            log_critical_error(
                f"Gemini stream failed after {len(delivered)} chunks",
                exception=e,
                context="AdviceRelay._relay",
            )
            raise AdviceUpstreamError(str(e)) from e
        else:
            log_standout_text(logger, "".join(delivered), title="Sleep advice")
        finally:
            _close_upstream(upstream)
