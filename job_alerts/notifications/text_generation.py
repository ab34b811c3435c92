"""Text-generation collaborators for the digest personalization note.

``generate`` never raises: a generator that cannot produce text returns None
and the digest goes out without the note.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from job_alerts.config.models import TextGenerationConfig
from job_alerts.logging import get_logger

logger = get_logger(__name__, component="text_generation")

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class TextGenerationError(Exception):
    """Raised inside a generator when a request or response is unusable."""

    pass


class TextGenerator(ABC):
    """Produces free text for a prompt."""

    @abstractmethod
    def generate(self, prompt: str) -> Optional[str]:
        """Return generated text, or None when no text could be produced."""
        pass


class NullTextGenerator(TextGenerator):
    """Generator used when personalization is disabled."""

    def generate(self, prompt: str) -> Optional[str]:
        return None


class GeminiTextGenerator(TextGenerator):
    """Calls the Google Generative Language REST API.

    Attributes:
        model: Model name, e.g. "gemini-1.5-pro"
        timeout: Request timeout in seconds
        max_output_tokens: Upper bound on the answer length
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-pro",
        timeout: int = 10,
        max_output_tokens: int = 512,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required for GeminiTextGenerator")

        self.model = model
        self.timeout = timeout
        self.max_output_tokens = max_output_tokens
        self._api_key = api_key
        self._session = session or requests.Session()

    def generate(self, prompt: str) -> Optional[str]:
        try:
            text = self._request(prompt)
        except TextGenerationError as e:
            logger.warning(
                f"Text generation failed: {e}",
                extra={"event": "text_generation.failed", "model": self.model},
            )
            return None

        logger.debug(
            "Text generation succeeded",
            extra={"event": "text_generation.success", "model": self.model, "chars": len(text)},
        )
        return text

    def _request(self, prompt: str) -> str:
        url = GEMINI_ENDPOINT.format(model=self.model)
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"maxOutputTokens": self.max_output_tokens},
        }

        try:
            response = self._session.post(
                url,
                json=payload,
                headers={"x-goog-api-key": self._api_key},
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise TextGenerationError(f"Request timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise TextGenerationError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            raise TextGenerationError(f"HTTP {response.status_code} from text generation API")

        try:
            data = response.json()
        except ValueError as e:
            raise TextGenerationError("Response is not valid JSON") from e

        return extract_candidate_text(data)


def extract_candidate_text(data: Dict[str, Any]) -> str:
    """Join the text parts of the first candidate in a generateContent response.

    Raises:
        TextGenerationError: If the response holds no text
    """
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError) as e:
        raise TextGenerationError("Response has no candidate content") from e

    text = "".join(part.get("text", "") for part in parts if isinstance(part, dict)).strip()
    if not text:
        raise TextGenerationError("Response candidate is empty")
    return text


def build_text_generator(config: TextGenerationConfig, api_key: Optional[str]) -> TextGenerator:
    """Pick the generator for the current configuration."""
    if not config.enabled:
        return NullTextGenerator()
    if not api_key:
        logger.warning(
            "Text generation enabled but no API key configured; personalization disabled",
            extra={"event": "text_generation.disabled", "reason": "missing_api_key"},
        )
        return NullTextGenerator()
    return GeminiTextGenerator(
        api_key=api_key,
        model=config.model,
        timeout=config.timeout_seconds,
        max_output_tokens=config.max_output_tokens,
    )
