"""
Text generation provider.

Wraps Cohere's chat API behind a small async interface so the suggestion
service can be exercised with a deterministic generator in tests.
"""
import asyncio
import logging
from typing import Any, Optional, Protocol

import cohere

from taskpulse.config import COHERE_API_KEY, COHERE_MAX_TOKENS, COHERE_MODEL, COHERE_TEMPERATURE
from taskpulse.errors import GenerationError, GenerationUnavailableError

logger = logging.getLogger(__name__)

# Provider status codes that mean "out of quota / rate limited", not "broken"
_QUOTA_STATUS_CODES = {402, 429}


class TextGenerator(Protocol):
    async def generate(self, prompt: str, system_prompt: str) -> str:
        ...


class CohereTextGenerator:
    """
    Text generator backed by Cohere chat.

    Responsibilities:
    - Send one prompt per call with a system preamble
    - Classify provider failures as quota (503) or generic (500)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        client: Optional[Any] = None,
    ):
        self.api_key = api_key or COHERE_API_KEY
        self.model = model or COHERE_MODEL
        self.temperature = COHERE_TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens or COHERE_MAX_TOKENS

        if client is not None:
            self.client = client
        elif self.api_key:
            self.client = cohere.Client(api_key=self.api_key)
        else:
            self.client = None

        if self.client is not None:
            logger.info(f"Cohere text generator initialized with model: {self.model}")
        else:
            logger.warning("Cohere text generator disabled - COHERE_API_KEY not set")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def generate(self, prompt: str, system_prompt: str) -> str:
        """
        Generate text for a prompt.

        Args:
            prompt: User prompt
            system_prompt: Preamble describing the assistant's role

        Returns:
            Generated text, stripped (may be empty)

        Raises:
            GenerationUnavailableError: provider not configured or out of quota
            GenerationError: any other provider failure
        """
        if not self.enabled:
            raise GenerationUnavailableError("Text generation provider is not configured")

        try:
            response = await asyncio.to_thread(
                self.client.chat,
                model=self.model,
                message=prompt,
                preamble=system_prompt,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            status_code = getattr(e, "status_code", None)
            if status_code in _QUOTA_STATUS_CODES:
                logger.warning(f"Cohere quota exhausted (status {status_code})")
                raise GenerationUnavailableError("AI provider quota exceeded", {"status_code": status_code}) from e

            # Check if it's a model deprecation error
            error_str = str(e).lower()
            if "model" in error_str and ("removed" in error_str or "deprecated" in error_str):
                logger.warning(f"Cohere model {self.model} is deprecated. Please update your configuration.")

            logger.error(f"Error generating text with Cohere: {str(e)}")
            raise GenerationError("Text generation failed") from e

        return (getattr(response, "text", "") or "").strip()


_default_generator: Optional[CohereTextGenerator] = None


def get_text_generator() -> TextGenerator:
    """Dependency returning the process-wide Cohere generator."""
    global _default_generator
    if _default_generator is None:
        _default_generator = CohereTextGenerator()
    return _default_generator
