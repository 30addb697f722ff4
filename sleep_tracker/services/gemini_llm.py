# gemini_llm.py
from typing import Iterator, Optional

from google import genai
from google.genai import types

from sleep_tracker.utils.logging_config import get_logger

logger = get_logger(__name__)


class MissingCredentialError(RuntimeError):
    """No Gemini API key is configured."""


class GeminiLLM:
    """
    Thin streaming wrapper around the google-genai client.

    The client is only built on first use, so a missing key breaks the
    advice endpoint and nothing else.
    """

    def __init__(self, api_key: Optional[str] = None, model="gemini-2.5-flash",
                 temperature=0.7, timeout_seconds=60):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds
        self._client = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self):
        if not self.api_key:
            raise MissingCredentialError("GEMINI_API_KEY is not set")
        if self._client is None:
            self._client = genai.Client(
                api_key=self.api_key,
                # HttpOptions.timeout is in milliseconds
                http_options=types.HttpOptions(timeout=int(self.timeout_seconds * 1000)),
            )
        return self._client

    def stream_text(self, prompt: str, **send_params) -> Iterator[str]:
        """
        Yield text chunks in the order Gemini emits them.
        Chunks carrying no text (safety/usage-only frames) are skipped.
        """
        client = self._get_client()
        model = send_params.get("model", self.model)
        temperature = send_params.get("temperature", self.temperature)

        logger.info(f"Using model: {model} for streaming, with temperature {temperature}, "
                    f"timeout {self.timeout_seconds}s.")

        stream = client.models.generate_content_stream(
            model=model,
            contents=prompt,
            config=types.GenerateContentConfig(temperature=temperature),
        )
        for chunk in stream:
            text = chunk.text
            if text:
                yield text
