"""Scene clip assembly: timing images against a scene's narration.

The narration drives timing. A scene's measured audio duration is split
evenly across its images, each image becomes a Ken Burns sub-clip over its
slice of the audio, and the sub-clips are joined into one scene clip. A
call-to-action policy may claim the tail of the last scene for an end card.
"""

import logging
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from models.media import ClipSegment, SceneClip
from shorts_agent.media_transcoder import MediaTranscoder, TranscoderError

logger = logging.getLogger(__name__)

CTA_TAIL_SECONDS = 5.0
CTA_VARIATION_OFFSET = 99


class CallToActionPolicy(Protocol):
    """Decides whether (and how long) the last scene ends on an end-card image."""

    def cta_image(self, scene_index: int, is_last_scene: bool) -> Optional[Path]:
        """Image to show at the end of this scene, or None."""
        ...

    @property
    def tail_seconds(self) -> float:
        ...


class NoCallToAction:
    """Default policy: scenes are made of their own images only."""

    tail_seconds = 0.0

    def cta_image(self, scene_index: int, is_last_scene: bool) -> Optional[Path]:
        return None


class EndCardCallToAction:
    """Show a fixed image over the last ``tail_seconds`` of the final scene."""

    def __init__(self, image_path: Path, tail_seconds: float = CTA_TAIL_SECONDS):
        self.image_path = Path(image_path)
        self.tail_seconds = tail_seconds

    def cta_image(self, scene_index: int, is_last_scene: bool) -> Optional[Path]:
        if not is_last_scene:
            return None
        if not self.image_path.is_file():
            logger.warning(f"CTA image missing, skipping end card: {self.image_path}")
            return None
        return self.image_path


def build_cta_policy(image_path: Optional[str]) -> CallToActionPolicy:
    """EndCardCallToAction when an image path is configured, NoCallToAction otherwise."""
    if image_path:
        return EndCardCallToAction(Path(image_path))
    return NoCallToAction()


def _split_evenly(
    images: Sequence[Path], start: float, duration: float, scene_index: int
) -> List[ClipSegment]:
    count = len(images)
    slice_duration = duration / count
    return [
        ClipSegment(
            image_path=Path(image),
            start_offset=start + i * slice_duration,
            duration=slice_duration,
            variation_index=scene_index * 10 + i,
        )
        for i, image in enumerate(images)
    ]


def plan_scene_segments(
    scene_index: int,
    image_paths: Sequence[Path],
    duration: float,
    cta_image: Optional[Path] = None,
    cta_tail_seconds: float = CTA_TAIL_SECONDS,
) -> List[ClipSegment]:
    """Plan the sub-clips of one scene. Pure: no I/O.

    - One image, no end card: a single padded whole-scene segment.
    - N images: N equal slices of the audio, in order.
    - With an end card: the images share ``duration - tail`` and the end card
      covers the tail; when the scene is no longer than the tail the end card
      covers the whole scene as a padded single segment.

    The durations of the returned segments always sum to ``duration``.

    Args:
        scene_index: 0-based scene index
        image_paths: Scene images in narrative order (at least one)
        duration: Measured scene audio duration in seconds
        cta_image: End-card image for this scene, if any
        cta_tail_seconds: Length of the end card

    Returns:
        Ordered list of ClipSegment
    """
    if not image_paths:
        raise ValueError(f"Scene {scene_index + 1} has no images")
    if duration <= 0:
        raise ValueError(f"Scene {scene_index + 1} has non-positive duration {duration}")

    if cta_image is not None:
        if duration <= cta_tail_seconds:
            return [
                ClipSegment(
                    image_path=Path(cta_image),
                    start_offset=0.0,
                    duration=duration,
                    variation_index=scene_index,
                    padded=True,
                )
            ]
        main_duration = duration - cta_tail_seconds
        segments = _split_evenly(image_paths, 0.0, main_duration, scene_index)
        segments.append(
            ClipSegment(
                image_path=Path(cta_image),
                start_offset=main_duration,
                duration=cta_tail_seconds,
                variation_index=scene_index * 10 + CTA_VARIATION_OFFSET,
            )
        )
        return segments

    if len(image_paths) == 1:
        return [
            ClipSegment(
                image_path=Path(image_paths[0]),
                start_offset=0.0,
                duration=duration,
                variation_index=scene_index,
                padded=True,
            )
        ]

    return _split_evenly(image_paths, 0.0, duration, scene_index)


class SceneClipAssembler:
    """Renders planned segments with the transcoder and joins them per scene."""

    def __init__(
        self,
        transcoder: MediaTranscoder,
        cta_policy: Optional[CallToActionPolicy] = None,
    ):
        self.transcoder = transcoder
        self.cta_policy = cta_policy or NoCallToAction()

    async def assemble(
        self,
        scene_index: int,
        image_paths: Sequence[Path],
        audio_path: Path,
        duration: float,
        output_path: Path,
        is_last_scene: bool = False,
    ) -> SceneClip:
        """Render the clip of one scene.

        Args:
            scene_index: 0-based scene index
            image_paths: Scene images in narrative order
            audio_path: Scene narration
            duration: Measured narration duration in seconds
            output_path: Destination of the scene clip
            is_last_scene: Whether the call-to-action policy applies

        Returns:
            SceneClip with the planned segments and intermediate file paths

        Raises:
            TranscoderError: If any render fails
        """
        output_path = Path(output_path)
        cta_image = self.cta_policy.cta_image(scene_index, is_last_scene)
        segments = plan_scene_segments(
            scene_index,
            image_paths,
            duration,
            cta_image=cta_image,
            cta_tail_seconds=self.cta_policy.tail_seconds or CTA_TAIL_SECONDS,
        )

        logger.info(
            f"Scene {scene_index + 1}: {len(segments)} segment(s) over {duration:.2f}s"
            + (" with end card" if cta_image else "")
        )

        if len(segments) == 1 and segments[0].padded:
            segment = segments[0]
            await self.transcoder.build_clip(
                segment.image_path,
                audio_path,
                output_path,
                duration,
                segment.variation_index,
            )
            return SceneClip(scene_index, output_path, duration, segments)

        sub_clips: List[Path] = []
        scene_clip = SceneClip(scene_index, output_path, duration, segments, sub_clips)
        for i, segment in enumerate(segments):
            sub_clip = output_path.with_name(f"{output_path.stem}_sub{i + 1}.mp4")
            sub_clips.append(sub_clip)
            await self.transcoder.build_clip_from_audio_segment(
                segment.image_path,
                audio_path,
                sub_clip,
                segment.start_offset,
                segment.duration,
                segment.variation_index,
            )

        try:
            await self.transcoder.concatenate(sub_clips, output_path)
        except TranscoderError:
            logger.error(f"Scene {scene_index + 1}: joining {len(sub_clips)} sub-clips failed")
            raise
        return scene_clip
