"""Image Generation Service - Gemini image model for vertical scene images."""

import asyncio
import base64
import logging
from pathlib import Path
from typing import Optional

import httpx
from PIL import Image

from services.prompts.images import build_image_prompt
from utils.retry import RetryPolicy, Sleep, linear_backoff

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"
ASPECT_RATIO = "9:16"

# Placeholder written when every attempt fails
PLACEHOLDER_SIZE = (720, 1280)
PLACEHOLDER_COLOR = (26, 26, 46)


class ImageGenerationServiceError(Exception):
    """Error from image generation service."""

    pass


def write_placeholder_image(output_path: Path) -> Path:
    """Write a solid dark 720x1280 PNG so the pipeline can keep going."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", PLACEHOLDER_SIZE, PLACEHOLDER_COLOR).save(output_path, format="PNG")
    return output_path


def _extract_image(result_data: dict) -> bytes:
    """Decode the first inline image of a generateContent reply."""
    candidates = result_data.get("candidates") or []
    if candidates:
        parts = (candidates[0].get("content") or {}).get("parts") or []
        for part in parts:
            inline_data = part.get("inlineData") or {}
            if inline_data.get("data"):
                return base64.b64decode(inline_data["data"], validate=True)
    raise ImageGenerationServiceError("No image data in Gemini response")


class ImageGenerationService:
    """Generates one image per prompt with the Gemini image model."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_IMAGE_MODEL,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Optional[Sleep] = None,
        retry_step_seconds: float = 2.0,
    ):
        """Initialize the image generation service.

        Args:
            api_key: Gemini API key
            model: Gemini image model name
            client: HTTP client (tests pass one built on httpx.MockTransport)
            sleep: Async sleep used between retries
            retry_step_seconds: Linear backoff step; attempt N waits N * step
        """
        self.api_key = api_key
        self.model = model
        # Long timeout for image generation (can take a while)
        self.client = client or httpx.AsyncClient(timeout=120.0)
        self.sleep = sleep or asyncio.sleep
        self.retry_step_seconds = retry_step_seconds

    def is_configured(self) -> bool:
        """Check if the Gemini API key is configured."""
        return bool(self.api_key)

    async def _request_image(self, prompt: str) -> bytes:
        """One generateContent call; returns the decoded image bytes."""
        if not self.is_configured():
            raise ImageGenerationServiceError(
                "GEMINI_API_KEY not configured. Set it in your .env file."
            )

        url = f"{GEMINI_API_BASE}/models/{self.model}:generateContent"
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        payload = {
            "contents": [{"parts": [{"text": build_image_prompt(prompt)}]}],
            "generationConfig": {
                "responseModalities": ["IMAGE"],
                "imageConfig": {"aspectRatio": ASPECT_RATIO},
            },
        }

        try:
            response = await self.client.post(url, headers=headers, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error_detail = ""
            try:
                error_data = e.response.json()
                error_detail = error_data.get("error", {}).get("message", str(e))
            except (ValueError, AttributeError):
                error_detail = e.response.text or str(e)
            raise ImageGenerationServiceError(f"Gemini API error: {error_detail}")
        except httpx.HTTPError as e:
            raise ImageGenerationServiceError(f"Gemini image request failed: {e}")

        try:
            return _extract_image(response.json())
        except ImageGenerationServiceError:
            raise
        except (ValueError, AttributeError, TypeError, KeyError) as e:
            raise ImageGenerationServiceError(f"Malformed Gemini response: {e}")

    async def generate_image(
        self, prompt: str, output_path: Path, max_retries: int = 3
    ) -> Path:
        """Generate an image for ``prompt`` and write it to ``output_path``.

        Never raises for upstream failures: after the last failed attempt a
        placeholder image is written instead.

        Args:
            prompt: Scene image prompt (the vertical-format preamble is added here)
            output_path: Destination file
            max_retries: Total attempts before falling back to the placeholder

        Returns:
            ``output_path``
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        async def attempt(number: int) -> bytes:
            logger.debug(f"Image attempt {number}/{max_retries}: {prompt[:60]}")
            return await self._request_image(prompt)

        policy = RetryPolicy(
            max_attempts=max_retries,
            backoff=linear_backoff(self.retry_step_seconds),
            sleep=self.sleep,
            retry_on=(ImageGenerationServiceError,),
            name="Image generation",
        )

        try:
            image_bytes = await policy.run(attempt)
        except ImageGenerationServiceError as e:
            logger.warning(f"Using placeholder for {output_path.name}: {e}")
            return write_placeholder_image(output_path)

        output_path.write_bytes(image_bytes)
        logger.info(f"Image saved: {output_path.name} ({len(image_bytes)} bytes)")
        return output_path

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
