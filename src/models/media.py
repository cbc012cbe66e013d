"""Media artifact models for planned segments and rendered clips."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass
class ClipSegment:
    """One planned sub-clip of a scene: an image shown over a slice of the narration."""

    image_path: Path
    start_offset: float  # Offset into the scene audio in seconds
    duration: float  # Length of the audio slice in seconds
    variation_index: int  # Selects zoom direction and pan path
    padded: bool = False  # Whole-scene clip rendered with a trailing pad

    @property
    def end_offset(self) -> float:
        return self.start_offset + self.duration


@dataclass
class SceneClip:
    """Rendered clip for one scene. Segment durations sum to the scene audio duration."""

    scene_index: int
    path: Path
    duration: float
    segments: List[ClipSegment] = field(default_factory=list)
    sub_clip_paths: List[Path] = field(default_factory=list)  # Intermediate files to clean up


@dataclass
class FinalVideo:
    """The published result of a session."""

    path: Path
    url: str
    duration: Optional[float] = None
    thumbnails: List[str] = field(default_factory=list)
