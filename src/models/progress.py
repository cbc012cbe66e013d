"""Progress event model streamed to clients while a session runs."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ProgressStep(str, Enum):
    """Pipeline step a progress event refers to."""

    SCRIPT = "script"
    PREVIEW_READY = "previewReady"
    IMAGE = "image"
    AUDIO = "audio"
    CLIP = "clip"
    ASSEMBLY = "assembly"
    UPLOAD = "upload"
    THUMBNAIL = "thumbnail"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (ProgressStep.COMPLETE, ProgressStep.ERROR)


class ProgressStatus(str, Enum):
    """Status of the step a progress event refers to."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    WAITING = "waiting"
    FAILED = "failed"


@dataclass
class ProgressEvent:
    """One progress update for a session."""

    step: ProgressStep
    status: ProgressStatus
    message: str
    scene_index: Optional[int] = None
    total_scenes: Optional[int] = None
    video_url: Optional[str] = None
    youtube_metadata: Optional[dict] = None
    data: Optional[Any] = None

    @property
    def is_terminal(self) -> bool:
        return self.step.is_terminal

    def to_dict(self) -> dict:
        """Render the wire shape. Unset optional fields are omitted."""
        payload: dict[str, Any] = {
            "step": self.step.value,
            "status": self.status.value,
            "message": self.message,
        }
        optional = {
            "sceneIndex": self.scene_index,
            "totalScenes": self.total_scenes,
            "videoUrl": self.video_url,
            "youtubeMetadata": self.youtube_metadata,
            "data": self.data,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        return payload
