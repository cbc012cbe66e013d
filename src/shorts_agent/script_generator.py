"""Script generator for the shorts pipeline.

Uses Gemini to write a structured script (scenes with image prompts and
narration) from a topic, falling back through a list of models and repairing
truncated JSON before giving up.
"""

import asyncio
import json
import logging
from typing import Any, Optional, Sequence

from models.script import Scene, Script, ScriptSchemaError, YoutubeMetadata, sanitize_title
from models.session import ComedyLevel, Genre, Language
from services.ai_service import AIService
from services.prompts import PROMPT_VERSIONS, build_script_prompt
from services.prompts.script_generation import AVG_SCENE_SECONDS
from utils.json_repair import repair_json
from utils.retry import RetryPolicy, Sleep, fixed_backoff

logger = logging.getLogger(__name__)

MIN_SCENES = 3
MAX_SCENES = 15
FACT_REVEAL_SCENES = 3
MODEL_SWITCH_DELAY_SECONDS = 2.0


class ScriptGenerationError(Exception):
    """Raised when every candidate model failed to produce a response."""

    pass


class ScriptParseError(ScriptGenerationError):
    """Raised when the response is not JSON, even after repair."""

    pass


def compute_scene_count(duration_seconds: int, genre: Genre) -> int:
    """Number of scenes to request for a target duration.

    Fact reveals are always three scenes; everything else gets one scene per
    ~15 s, clamped to 3..15.
    """
    if genre == Genre.FACT_REVEAL:
        return FACT_REVEAL_SCENES
    # halves round up
    count = int(duration_seconds / AVG_SCENE_SECONDS + 0.5)
    return max(MIN_SCENES, min(MAX_SCENES, count))


def parse_script_text(text: str) -> Any:
    """Decode model output, repairing truncated JSON when needed.

    Raises:
        ScriptParseError: If the text does not decode even after repair
    """
    try:
        return json.loads(text)
    except (TypeError, ValueError) as first_error:
        logger.warning(f"Script JSON invalid ({first_error}), attempting repair")

    repaired = repair_json(text)
    try:
        data = json.loads(repaired)
    except (TypeError, ValueError) as e:
        logger.error(f"Script JSON still invalid after repair: {e}")
        logger.debug(f"Raw response: {text[:500]}")
        raise ScriptParseError(f"Failed to parse script JSON: {e}") from e

    logger.info("Script JSON repaired successfully")
    return data


def _string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def _narration_for(scene_data: dict, language: Language) -> str:
    for key in (language.narration_field, "narration"):
        text = scene_data.get(key)
        if isinstance(text, str) and text.strip():
            return text.strip()
    for key, text in scene_data.items():
        if key.startswith("audio_script_") and isinstance(text, str) and text.strip():
            return text.strip()
    return ""


def script_from_data(data: Any, language: Language) -> Script:
    """Build a Script from decoded model output.

    A top-level list is taken as the scene list. An object must carry
    ``scenes``. Scenes accept ``image_prompts`` (list) or ``image_prompt``
    (string).

    Raises:
        ScriptSchemaError: If the document has no usable scene list
    """
    if isinstance(data, list):
        title, scenes_data, metadata_data = None, data, None
    elif isinstance(data, dict):
        title = data.get("video_title")
        scenes_data = data.get("scenes")
        metadata_data = data.get("youtube_metadata")
    else:
        raise ScriptSchemaError(f"Unexpected script document type: {type(data).__name__}")

    if not isinstance(scenes_data, list):
        raise ScriptSchemaError("Script response missing 'scenes' list")

    scenes = []
    for i, scene_data in enumerate(scenes_data):
        if not isinstance(scene_data, dict):
            raise ScriptSchemaError(f"Scene {i + 1} is not an object")
        prompts = _string_list(scene_data.get("image_prompts"))
        if not prompts:
            prompts = _string_list(scene_data.get("image_prompt"))
        try:
            number = int(scene_data.get("scene_number") or i + 1)
        except (TypeError, ValueError):
            number = i + 1
        scenes.append(
            Scene(
                image_prompts=prompts,
                narration_text=_narration_for(scene_data, language),
                scene_number=number,
            )
        )

    metadata = (
        YoutubeMetadata.from_dict(metadata_data) if isinstance(metadata_data, dict) else None
    )
    return Script(
        video_title=sanitize_title(str(title)) if title else sanitize_title(""),
        scenes=scenes,
        youtube_metadata=metadata,
    )


class ScriptGenerator:
    """Generates structured short-video scripts from topics using Gemini."""

    def __init__(
        self,
        ai_service: AIService,
        models: Optional[Sequence[str]] = None,
        sleep: Optional[Sleep] = None,
        model_switch_delay: float = MODEL_SWITCH_DELAY_SECONDS,
    ):
        """Initialize with an AIService instance.

        Args:
            ai_service: Configured AIService with Gemini client
            models: Candidate models in order (defaults to the service model)
            sleep: Async sleep used between model attempts
            model_switch_delay: Wait before trying the next model
        """
        self.ai = ai_service
        self.models = [m for m in (models or [ai_service.model_name]) if m]
        if not self.models:
            raise ValueError("At least one script model is required")
        self.policy = RetryPolicy(
            max_attempts=len(self.models),
            backoff=fixed_backoff(model_switch_delay),
            sleep=sleep or asyncio.sleep,
            name="Script generation",
        )

    async def _request(self, prompt: str) -> str:
        async def attempt(number: int) -> str:
            model = self.models[number - 1]
            logger.info(f"Trying script generation with model: {model}")
            return await self.ai.generate_json(prompt, model=model)

        try:
            return await self.policy.run(attempt)
        except Exception as e:
            raise ScriptGenerationError(
                f"Script generation failed with all models ({', '.join(self.models)}): {e}"
            ) from e

    async def generate(
        self,
        topic: str,
        target_duration_seconds: int = 60,
        genre: Genre = Genre.INFORMATIVE,
        comedy_level: ComedyLevel = ComedyLevel.MILD,
        language: Language = Language.GUJARATI,
    ) -> Script:
        """Generate a script for ``topic``.

        Args:
            topic: Effective topic (for fact reveals, the HOOK/FACT block)
            target_duration_seconds: Target video length
            genre: Video genre
            comedy_level: Comedy intensity (comedy genre only)
            language: Narration language

        Returns:
            Parsed Script (not yet validated for renderability)

        Raises:
            ScriptGenerationError: If every model failed
            ScriptParseError: If the response is not JSON even after repair
            ScriptSchemaError: If the JSON has no usable scene list
        """
        num_scenes = compute_scene_count(target_duration_seconds, genre)
        logger.info(
            f"Generating script: topic='{topic[:60]}', genre={genre.value}, "
            f"language={language.value}, duration={target_duration_seconds}s, "
            f"scenes={num_scenes}, prompt={PROMPT_VERSIONS['generate_script']}"
        )

        prompt = build_script_prompt(
            topic=topic,
            duration=target_duration_seconds,
            num_scenes=num_scenes,
            genre=genre.value,
            comedy_level=comedy_level.value,
            language=language.value,
        )

        text = await self._request(prompt)
        script = script_from_data(parse_script_text(text), language)

        logger.info(
            f"Script generated: '{script.video_title}', "
            f"{len(script.scenes)} scenes, {script.total_images} images"
        )
        return script
