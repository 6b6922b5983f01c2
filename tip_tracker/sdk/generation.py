"""
Text-generation client.

Wraps OpenAI chat completions for pep talks and weekly insights. Failures
never escape ``respond``; they become a fixed apology string.
"""

import logging
from typing import Any, Optional

from openai import AsyncOpenAI, OpenAIError

from ..config.loader import GenerationConfig
from ..core.errors import GenerationError

logger = logging.getLogger("tip_tracker.generation")

APOLOGY_MESSAGE = "There was an issue connecting to the AI service."
EMPTY_RESPONSE_MESSAGE = "Sorry, I couldn't generate a response right now."


class EmptyResponseError(GenerationError):
    """The service answered but produced no text."""


class InsightGenerator:
    """Async OpenAI wrapper that turns prompts into coaching text."""

    def __init__(self, config: Optional[GenerationConfig] = None, client: Optional[Any] = None):
        """Initialize the generator.

        Args:
            config: Model and sampling settings (defaults to GenerationConfig())
            client: Preconfigured AsyncOpenAI-compatible client (optional)
        """
        self.config = config or GenerationConfig()
        self._client = client

    @property
    def client(self) -> Any:
        # Created lazily so sessions that never ask for text need no API key.
        if self._client is None:
            try:
                self._client = AsyncOpenAI()
            except OpenAIError as e:
                raise GenerationError(f"Text generation is not configured: {e}") from e
        return self._client

    async def generate_text(self, prompt: str) -> str:
        """Send one prompt and return the generated text.

        Raises:
            ValueError: If prompt is empty
            GenerationError: If the service fails or returns no text
        """
        if not prompt or not prompt.strip():
            raise ValueError("prompt is required and cannot be empty")

        try:
            response = await self.client.chat.completions.create(
                model=self.config.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens
            )
        except OpenAIError as e:
            raise GenerationError(f"Text generation failed: {e}") from e

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not content or not content.strip():
            raise EmptyResponseError("Text generation returned no content")
        return content.strip()

    async def respond(self, prompt: str) -> str:
        """Generate text, mapping every failure to a user-facing message."""
        try:
            return await self.generate_text(prompt)
        except EmptyResponseError:
            logger.warning("Text generation returned an empty response")
            return EMPTY_RESPONSE_MESSAGE
        except GenerationError as e:
            logger.error("Error calling text generation service: %s", e)
            return APOLOGY_MESSAGE
