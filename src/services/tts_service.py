"""TTS Service - HTTP client for narration synthesis via the Cartesia API."""

import asyncio
import inspect
import logging
from pathlib import Path
from typing import Any, Optional

import httpx

from utils.retry import RetryPolicy, Sleep, fixed_backoff

logger = logging.getLogger(__name__)

CARTESIA_API_BASE = "https://api.cartesia.ai"
CARTESIA_VERSION = "2024-11-13"
DEFAULT_MODEL = "sonic-3"
DEFAULT_VOICE_ID = "a0e99841-438c-4a64-b679-ae501e7d6091"

OUTPUT_FORMAT = {
    "container": "wav",
    "encoding": "pcm_f32le",
    "sample_rate": 44100,
}

# Narration language -> Cartesia language code
LANGUAGE_CODES = {
    "english": "en",
    "hindi": "hi",
    "gujarati": "gu",
}


class TTSServiceError(Exception):
    """Error from TTS service."""

    pass


async def coalesce_audio(result: Any) -> bytes:
    """Collapse whatever a TTS client returned into one bytes buffer.

    Accepts bytes-like buffers, objects exposing ``aread()``/``read()`` or a
    ``content`` attribute (HTTP responses, file objects), and sync or async
    iterables of chunks.

    Args:
        result: Raw synthesis result

    Returns:
        Audio bytes

    Raises:
        TTSServiceError: If the result shape is not recognized
    """
    if isinstance(result, (bytes, bytearray, memoryview)):
        return bytes(result)

    for reader in ("aread", "read"):
        method = getattr(result, reader, None)
        if callable(method):
            data = method()
            if inspect.isawaitable(data):
                data = await data
            return await coalesce_audio(data)

    content = getattr(result, "content", None)
    if isinstance(content, (bytes, bytearray, memoryview)):
        return bytes(content)

    if hasattr(result, "__aiter__"):
        chunks = []
        async for chunk in result:
            chunks.append(await coalesce_audio(chunk))
        return b"".join(chunks)

    if hasattr(result, "__iter__") and not isinstance(result, (str, dict)):
        return b"".join([await coalesce_audio(chunk) for chunk in result])

    raise TTSServiceError(f"Unsupported audio result type: {type(result).__name__}")


class TTSService:
    """HTTP client for Cartesia text-to-speech."""

    def __init__(
        self,
        api_key: str,
        voice_id: str = DEFAULT_VOICE_ID,
        model: str = DEFAULT_MODEL,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Optional[Sleep] = None,
        retry_delay_seconds: float = 2.0,
    ):
        """Initialize TTS service.

        Args:
            api_key: Cartesia API key
            voice_id: Cartesia voice id used for every scene
            model: Cartesia model id
            client: HTTP client (tests pass one built on httpx.MockTransport)
            sleep: Async sleep used between retries
            retry_delay_seconds: Fixed wait between attempts
        """
        self.api_key = api_key
        self.voice_id = voice_id or DEFAULT_VOICE_ID
        self.model = model or DEFAULT_MODEL
        # Long timeout for synthesis of a full scene
        self.client = client or httpx.AsyncClient(timeout=120.0)
        self.sleep = sleep or asyncio.sleep
        self.retry_delay_seconds = retry_delay_seconds

    def is_configured(self) -> bool:
        """Check if the Cartesia API key is configured."""
        return bool(self.api_key)

    @staticmethod
    def detect_audio_format(audio_bytes: bytes) -> str:
        """Detect audio format from magic bytes."""
        if len(audio_bytes) >= 12 and audio_bytes[:4] == b"RIFF" and audio_bytes[8:12] == b"WAVE":
            return "wav"
        if audio_bytes[:3] == b"ID3" or (
            len(audio_bytes) >= 2
            and audio_bytes[0] == 0xFF
            and (audio_bytes[1] & 0xE0) == 0xE0
        ):
            return "mp3"
        if audio_bytes[:4] == b"OggS":
            return "ogg"
        return "bin"

    def _build_payload(self, text: str, language: Optional[str]) -> dict:
        payload = {
            "model_id": self.model,
            "transcript": text,
            "voice": {"mode": "id", "id": self.voice_id},
            "output_format": dict(OUTPUT_FORMAT),
        }
        code = LANGUAGE_CODES.get(language or "")
        if code:
            payload["language"] = code
        return payload

    async def _synthesize(self, text: str, language: Optional[str]) -> bytes:
        """One /tts/bytes call; returns the audio bytes."""
        if not self.is_configured():
            raise TTSServiceError("CARTESIA_API_KEY not configured. Set it in your .env file.")

        headers = {
            "X-API-Key": self.api_key,
            "Cartesia-Version": CARTESIA_VERSION,
            "Content-Type": "application/json",
        }

        try:
            response = await self.client.post(
                f"{CARTESIA_API_BASE}/tts/bytes",
                headers=headers,
                json=self._build_payload(text, language),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TTSServiceError(
                f"Cartesia API error {e.response.status_code}: {e.response.text[:200]}"
            )
        except httpx.HTTPError as e:
            raise TTSServiceError(f"Cartesia request failed: {e}")

        audio = await coalesce_audio(response)
        if not audio:
            raise TTSServiceError("Cartesia returned empty audio")

        audio_format = self.detect_audio_format(audio)
        if audio_format != "wav":
            logger.warning(f"Expected WAV from Cartesia, got {audio_format}")
        return audio

    async def generate_audio(
        self,
        text: str,
        output_path: Path,
        max_retries: int = 3,
        language: Optional[str] = None,
    ) -> Path:
        """Synthesize ``text`` into a WAV file at ``output_path``.

        Args:
            text: Narration text in any supported language
            output_path: Destination file
            max_retries: Total attempts
            language: Narration language value (english/hindi/gujarati)

        Returns:
            ``output_path``

        Raises:
            TTSServiceError: After the last failed attempt. No file is left at
                ``output_path`` in that case.
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        async def attempt(number: int) -> bytes:
            logger.info(f"Cartesia TTS attempt {number}/{max_retries} ({len(text)} chars)")
            return await self._synthesize(text, language)

        policy = RetryPolicy(
            max_attempts=max_retries,
            backoff=fixed_backoff(self.retry_delay_seconds),
            sleep=self.sleep,
            retry_on=(TTSServiceError,),
            name="Cartesia TTS",
        )

        try:
            audio = await policy.run(attempt)
        except TTSServiceError:
            output_path.unlink(missing_ok=True)
            raise

        output_path.write_bytes(audio)
        logger.info(f"Audio saved: {output_path.name} ({len(audio)} bytes)")
        return output_path

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
