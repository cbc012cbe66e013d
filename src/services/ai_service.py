"""AI service for text generation using Google GenAI.

Thin async wrapper around the google-genai client. Callers choose the model
per request so a fallback chain can be driven from outside.
"""

import asyncio
import logging
from typing import Optional

from google.genai import Client
from google.genai import types

from services.prompts import strip_markdown_code_blocks
from utils.retry import APIRateLimitError, NetworkError

logger = logging.getLogger(__name__)


class AIServiceError(Exception):
    """Raised when the model returns no usable text."""

    pass


def classify_error(error: Exception) -> Exception:
    """Map a raw client error onto the retryable error types when possible."""
    message = str(error).lower()
    if "rate limit" in message or "429" in message or "resource_exhausted" in message:
        return APIRateLimitError(f"Rate limit hit: {error}")
    if "network" in message or "connection" in message or "timed out" in message:
        return NetworkError(f"Network error: {error}")
    return error


class AIService:
    """Service for Gemini text generation."""

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-2.5-pro",
        client: Optional[Client] = None,
    ):
        """Initialize Google GenAI client.

        Args:
            api_key: Google GenAI API key
            model_name: Default Gemini model
            client: Pre-built client (tests inject a fake)
        """
        self.api_key = api_key
        self.model_name = model_name
        self.client = client or Client(api_key=api_key)

        logger.info(f"Initialized AI service with model: {model_name}")

    async def generate_json(
        self,
        prompt: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Request a JSON-mode completion and return its text, fences stripped.

        Args:
            prompt: Full prompt text
            model: Model override (defaults to the service model)
            temperature: Optional sampling temperature

        Returns:
            Response text with markdown code fences removed

        Raises:
            AIServiceError: If the model returned an empty response
            APIRateLimitError: On quota / rate limit errors
            NetworkError: On connection errors
        """
        model_name = model or self.model_name
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            temperature=temperature,
        )

        try:
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=model_name,
                contents=prompt,
                config=config,
            )
        except Exception as e:
            logger.error(f"Generation with {model_name} failed: {e}")
            classified = classify_error(e)
            if classified is e:
                raise
            raise classified from e

        if not response.text:
            logger.error(f"AI response from {model_name} is empty")
            raise AIServiceError(f"Empty response from {model_name}")

        logger.debug(f"Raw response ({model_name}): {response.text[:500]}")
        return strip_markdown_code_blocks(response.text)
