"""Shared pytest fixtures for shortsmith tests."""

import sys
import tempfile
from pathlib import Path
from typing import Dict, Generator

import pytest

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

# Shared fakes live beside this file
tests_path = Path(__file__).parent
if str(tests_path) not in sys.path:
    sys.path.insert(0, str(tests_path))


class RecordingSleep:
    """Async sleep stand-in that records requested delays and returns immediately."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class RecordingSink:
    """Progress sink that keeps every published event dict."""

    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    async def publish(self, session_id, event) -> None:
        payload = event.to_dict() if hasattr(event, "to_dict") else dict(event)
        self.events.append((session_id, payload))

    def for_session(self, session_id: str) -> list[dict]:
        return [event for sid, event in self.events if sid == session_id]

    def steps(self, session_id: str) -> list[tuple[str, str]]:
        return [(e["step"], e["status"]) for e in self.for_session(session_id)]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def sample_config(temp_dir) -> Dict:
    """Sample configuration for testing."""
    return {
        "gemini_api_key": "test_gemini_key",
        "gemini_script_model": "gemini-2.5-pro",
        "gemini_fallback_models": ["gemini-2.5-flash"],
        "gemini_image_model": "gemini-2.5-flash-image",
        "cartesia_api_key": "test_cartesia_key",
        "cartesia_voice_id": "voice-123",
        "cartesia_model": "sonic-3",
        "temp_dir": str(temp_dir / "temp"),
        "output_dir": str(temp_dir / "output"),
        "cta_image_path": None,
        "background_music_path": None,
        "background_music_volume": 0.15,
        "r2_account_id": None,
        "r2_access_key_id": None,
        "r2_secret_access_key": None,
        "r2_bucket_name": None,
        "signed_url_ttl_seconds": 86400,
        "session_store_path": None,
        "preview_ttl_seconds": 0,
        "log_level": "INFO",
        "log_json": False,
        "port": 8000,
    }


@pytest.fixture
def sample_script_data() -> Dict:
    """Decoded script document as the script model returns it."""
    return {
        "video_title": "Volcanoes: Earth's Fiery Vents!",
        "youtube_metadata": {
            "title": "Volcanoes explained in 30 seconds",
            "description": "How volcanoes form and erupt.",
            "tags": ["volcano", "science"],
            "thumbnail_prompts": ["Erupting volcano at night", "Lava river close-up"],
        },
        "scenes": [
            {
                "scene_number": 1,
                "image_prompts": ["Volcano at dawn", "Magma chamber cross-section"],
                "audio_script_english": "Deep below the surface, rock melts into magma.",
            },
            {
                "scene_number": 2,
                "image_prompts": ["Ash cloud rising", "Lava flowing downhill"],
                "audio_script_english": "Pressure builds until the volcano erupts.",
            },
        ],
    }
