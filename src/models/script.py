"""Script data models produced by the script generation step."""

import re
from dataclasses import dataclass, field
from typing import Optional

MAX_TITLE_LENGTH = 40
DEFAULT_VIDEO_TITLE = "untitled-video"


class ScriptSchemaError(ValueError):
    """Raised when a script document does not have the expected shape."""

    pass


def sanitize_title(title: str) -> str:
    """Turn a model-supplied title into a filesystem and URL safe slug.

    Args:
        title: Raw title text (may contain spaces, punctuation, unicode)

    Returns:
        Lowercase slug of at most 40 characters
    """
    slug = (title or "").lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")[:MAX_TITLE_LENGTH].strip("-")
    return slug or DEFAULT_VIDEO_TITLE


@dataclass
class YoutubeMetadata:
    """SEO bundle returned alongside the script. Only used for reporting."""

    title: Optional[str] = None
    description: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    thumbnail_prompts: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "YoutubeMetadata":
        tags = data.get("tags") or []
        prompts = data.get("thumbnail_prompts") or []
        return cls(
            title=data.get("title"),
            description=data.get("description"),
            tags=[str(t) for t in tags if t] if isinstance(tags, list) else [],
            thumbnail_prompts=(
                [str(p) for p in prompts if p and str(p).strip()]
                if isinstance(prompts, list)
                else []
            ),
        )

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "tags": list(self.tags),
            "thumbnail_prompts": list(self.thumbnail_prompts),
        }


@dataclass
class Scene:
    """One narrative beat: ordered image prompts plus its narration."""

    image_prompts: list[str]
    narration_text: str
    scene_number: int = 0

    def to_dict(self) -> dict:
        return {
            "scene_number": self.scene_number,
            "image_prompts": list(self.image_prompts),
            "narration_text": self.narration_text,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Scene":
        return cls(
            image_prompts=list(data.get("image_prompts") or []),
            narration_text=str(data.get("narration_text") or ""),
            scene_number=int(data.get("scene_number") or 0),
        )


@dataclass
class Script:
    """Complete script: title slug, scenes in narrative order, optional metadata."""

    video_title: str
    scenes: list[Scene]
    youtube_metadata: Optional[YoutubeMetadata] = None

    @property
    def total_images(self) -> int:
        return sum(len(scene.image_prompts) for scene in self.scenes)

    def validate(self) -> None:
        """Check that every scene can be rendered.

        Raises:
            ScriptSchemaError: If the script has no scenes, or a scene has no
                image prompt or an empty narration
        """
        if not self.scenes:
            raise ScriptSchemaError("Script contains no scenes")
        for index, scene in enumerate(self.scenes):
            if not scene.image_prompts:
                raise ScriptSchemaError(f"Scene {index + 1} has no image prompts")
            if not scene.narration_text.strip():
                raise ScriptSchemaError(f"Scene {index + 1} has no narration text")

    def to_dict(self) -> dict:
        return {
            "video_title": self.video_title,
            "scenes": [scene.to_dict() for scene in self.scenes],
            "youtube_metadata": (
                self.youtube_metadata.to_dict() if self.youtube_metadata else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Script":
        metadata = data.get("youtube_metadata")
        return cls(
            video_title=data.get("video_title") or DEFAULT_VIDEO_TITLE,
            scenes=[Scene.from_dict(s) for s in data.get("scenes") or []],
            youtube_metadata=YoutubeMetadata.from_dict(metadata) if metadata else None,
        )
