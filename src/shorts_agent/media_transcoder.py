"""FFmpeg-based media operations for the shorts pipeline.

Every operation shells out to ``ffmpeg``/``ffprobe`` through ``subprocess.run``
in a worker thread, so the event loop keeps serving other sessions while a
clip renders. Encoding, probing and muxing are never done in-process.

Clips are 720x1280 @ 24 fps H.264 with AAC 192k / 44.1 kHz stereo audio, which
lets the concat demuxer join them without surprises.
"""

import asyncio
import json
import logging
import math
import os
import shutil
import subprocess
import uuid
from pathlib import Path
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

# Output geometry and encoding defaults
OUTPUT_WIDTH = 720
OUTPUT_HEIGHT = 1280
FPS = 24
PRE_SCALE_WIDTH = 3000
CLIP_PAD_SECONDS = 0.5
CLIP_PRESET = "veryfast"
CLIP_CRF = 23
CONCAT_PRESET = "fast"
AUDIO_BITRATE = "192k"
AUDIO_RATE = 44100

# Zoom range of whole-scene clips vs. per-image segment clips
WHOLE_CLIP_MAX_ZOOM = 1.15
SEGMENT_CLIP_MAX_ZOOM = 1.10

# (start_x, start_y, end_x, end_y) pan paths, picked by variation_index % 4
PAN_PATHS = [
    ("0", "0", "(iw-ow)", "(ih-oh)"),  # top-left -> bottom-right
    ("(iw-ow)", "0", "0", "(ih-oh)"),  # top-right -> bottom-left
    ("0", "(ih-oh)", "(iw-ow)", "0"),  # bottom-left -> top-right
    ("(iw-ow)/2", "0", "(iw-ow)/2", "(ih-oh)"),  # top -> bottom, centered
]

VOICE_GAIN = 1.5
FFMPEG_TIMEOUT_SECONDS = 600
FFPROBE_TIMEOUT_SECONDS = 30


class TranscoderError(Exception):
    """Raised when an ffmpeg/ffprobe invocation fails or times out."""

    pass


def ken_burns_filter(total_frames: int, variation_index: int, max_zoom: float) -> str:
    """Build the scale+zoompan filter for one still image.

    Even variations zoom in (1.0 -> max_zoom), odd ones zoom out. The pan
    path is chosen by ``variation_index % 4``.

    Args:
        total_frames: Number of frames zoompan should emit
        variation_index: Selects zoom direction and pan path
        max_zoom: Zoom factor at the zoomed-in end

    Returns:
        ffmpeg ``-vf`` filter string
    """
    frames = max(1, total_frames)
    zoom_in = variation_index % 2 == 0
    start_zoom, end_zoom = (1.0, max_zoom) if zoom_in else (max_zoom, 1.0)
    start_x, start_y, end_x, end_y = PAN_PATHS[variation_index % len(PAN_PATHS)]
    progress = f"(on/{frames})"

    zoompan = (
        f"zoompan=z='{start_zoom}+({end_zoom}-{start_zoom})*{progress}'"
        f":x='{start_x}+({end_x}-({start_x}))*{progress}'"
        f":y='{start_y}+({end_y}-({start_y}))*{progress}'"
        f":d={frames}:s={OUTPUT_WIDTH}x{OUTPUT_HEIGHT}:fps={FPS}"
    )
    return ",".join([f"scale={PRE_SCALE_WIDTH}:-1", zoompan, "format=yuv420p"])


def _concat_line(path: Path) -> str:
    # concat demuxer quoting: ' -> '\''
    escaped = str(Path(path).resolve()).replace("'", "'\\''")
    return f"file '{escaped}'"


class MediaTranscoder:
    """Async facade over the ffmpeg/ffprobe binaries."""

    def __init__(
        self,
        temp_dir: Optional[Path] = None,
        ffmpeg_bin: str = "ffmpeg",
        ffprobe_bin: str = "ffprobe",
        timeout: int = FFMPEG_TIMEOUT_SECONDS,
    ):
        self.temp_dir = Path(temp_dir or "temp")
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        self.ffmpeg_bin = ffmpeg_bin
        self.ffprobe_bin = ffprobe_bin
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Process helpers
    # ------------------------------------------------------------------

    def _run(self, cmd: list[str], description: str, timeout: Optional[int] = None) -> str:
        """Run one command and return its stdout.

        Raises:
            TranscoderError: On non-zero exit, timeout or missing binary
        """
        logger.info(f"FFmpeg: {description}")
        logger.debug(f"Command: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, timeout=timeout or self.timeout
            )
        except subprocess.TimeoutExpired as e:
            raise TranscoderError(f"{description} timed out after {e.timeout}s") from e
        except OSError as e:
            raise TranscoderError(f"{description} could not start {cmd[0]}: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr or ""
            # Diagnostics stay in the log; the message reaches clients
            logger.error(f"FFmpeg failed ({description}), stderr: {stderr[-1000:]}")
            raise TranscoderError(f"FFmpeg failed ({description})")
        return result.stdout or ""

    async def _run_async(
        self, cmd: list[str], description: str, timeout: Optional[int] = None
    ) -> str:
        return await asyncio.to_thread(self._run, cmd, description, timeout)

    def _encode_args(self, preset: str) -> list[str]:
        return [
            "-c:v", "libx264",
            "-preset", preset,
            "-crf", str(CLIP_CRF),
            "-threads", "0",
            "-c:a", "aac",
            "-b:a", AUDIO_BITRATE,
            "-ar", str(AUDIO_RATE),
            "-ac", "2",
        ]

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def probe_duration(self, path: Path) -> float:
        """Return the container duration of a media file in seconds.

        Raises:
            TranscoderError: If ffprobe fails or reports no duration
        """
        cmd = [
            self.ffprobe_bin,
            "-v", "error",
            "-show_entries", "format=duration",
            "-of", "json",
            str(path),
        ]
        stdout = await self._run_async(
            cmd, f"probe {Path(path).name}", timeout=FFPROBE_TIMEOUT_SECONDS
        )
        try:
            duration = float(json.loads(stdout)["format"]["duration"])
        except (ValueError, KeyError, TypeError) as e:
            raise TranscoderError(f"No duration reported for {Path(path).name}") from e
        if duration <= 0 or math.isnan(duration):
            raise TranscoderError(f"Invalid duration {duration} for {Path(path).name}")
        return duration

    async def build_clip(
        self,
        image_path: Path,
        audio_path: Path,
        output_path: Path,
        duration: float,
        variation_index: int,
    ) -> Path:
        """Render one image over a whole audio file, padded by half a second.

        Args:
            image_path: Still image
            audio_path: Narration covering the clip
            output_path: Destination .mp4
            duration: Audio duration in seconds
            variation_index: Selects zoom direction and pan path

        Returns:
            ``output_path``
        """
        clip_duration = float(f"{duration + CLIP_PAD_SECONDS:.2f}")
        total_frames = math.ceil(clip_duration * FPS)

        cmd = [
            self.ffmpeg_bin, "-y",
            "-i", str(image_path),
            "-i", str(audio_path),
            "-map", "0:v:0",
            "-map", "1:a:0",
            *self._encode_args(CLIP_PRESET),
            "-t", f"{clip_duration:.2f}",
            "-vf", ken_burns_filter(total_frames, variation_index, WHOLE_CLIP_MAX_ZOOM),
            str(output_path),
        ]
        await self._run_async(cmd, f"clip {Path(output_path).name} ({clip_duration:.2f}s)")
        return Path(output_path)

    async def build_clip_from_audio_segment(
        self,
        image_path: Path,
        audio_path: Path,
        output_path: Path,
        start: float,
        duration: float,
        variation_index: int,
    ) -> Path:
        """Render one image over ``[start, start + duration)`` of an audio file.

        The seek is placed before the audio input for an accurate cut, and the
        clip is exactly ``duration`` long (no pad) so consecutive segments do
        not overlap.

        Returns:
            ``output_path``
        """
        total_frames = math.ceil(duration * FPS)

        cmd = [
            self.ffmpeg_bin, "-y",
            "-i", str(image_path),
            "-ss", f"{start:.3f}",
            "-i", str(audio_path),
            "-map", "0:v:0",
            "-map", "1:a:0",
            *self._encode_args(CLIP_PRESET),
            "-t", f"{duration:.3f}",
            "-vf", ken_burns_filter(total_frames, variation_index, SEGMENT_CLIP_MAX_ZOOM),
            "-async", "1",
            str(output_path),
        ]
        await self._run_async(
            cmd, f"segment {Path(output_path).name} ({start:.3f}s +{duration:.3f}s)"
        )
        return Path(output_path)

    async def concatenate(self, clips: Sequence[Path], output_path: Path) -> Path:
        """Join clips with hard cuts.

        A single clip is copied as-is; several clips go through the concat
        demuxer and are re-encoded with ``+faststart``.

        Raises:
            TranscoderError: If ``clips`` is empty or ffmpeg fails
        """
        if not clips:
            raise TranscoderError("No clips to concatenate")

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        if len(clips) == 1:
            await asyncio.to_thread(shutil.copyfile, str(clips[0]), str(output_path))
            return output_path

        concat_file = self.temp_dir / f"concat_{uuid.uuid4().hex}.txt"
        concat_file.write_text("\n".join(_concat_line(c) for c in clips) + "\n")

        cmd = [
            self.ffmpeg_bin, "-y",
            "-f", "concat",
            "-safe", "0",
            "-i", str(concat_file),
            "-c:v", "libx264",
            "-preset", CONCAT_PRESET,
            "-c:a", "aac",
            "-b:a", AUDIO_BITRATE,
            "-movflags", "+faststart",
            str(output_path),
        ]
        try:
            await self._run_async(cmd, f"concatenate {len(clips)} clips -> {output_path.name}")
        finally:
            concat_file.unlink(missing_ok=True)
        return output_path

    async def delay_audio_start(self, audio_path: Path, seconds: float) -> Path:
        """Prepend ``seconds`` of silence to an audio file, in place.

        Returns:
            ``audio_path``
        """
        audio_path = Path(audio_path)
        delayed = audio_path.with_name(f"{audio_path.stem}_delayed{audio_path.suffix}")
        delay_ms = int(round(seconds * 1000))

        cmd = [
            self.ffmpeg_bin, "-y",
            "-i", str(audio_path),
            "-af", f"adelay={delay_ms}|{delay_ms}",
            str(delayed),
        ]
        try:
            await self._run_async(cmd, f"delay {audio_path.name} by {seconds}s")
            os.replace(delayed, audio_path)
        finally:
            delayed.unlink(missing_ok=True)
        return audio_path

    async def mix_background_music(
        self,
        video_path: Path,
        music_path: Path,
        output_path: Path,
        volume: float = 0.15,
    ) -> Path:
        """Mix looped background music under the narration.

        The voice is boosted, the music loops for the whole video at
        ``volume`` and the mix ends with the video. If ffmpeg fails the video
        is copied through unchanged.

        Returns:
            ``output_path``
        """
        filter_complex = ";".join([
            f"[0:a]volume={VOICE_GAIN}[voice]",
            f"[1:a]aloop=loop=-1:size=2e+09,volume={volume}[bgm]",
            "[voice][bgm]amix=inputs=2:duration=first:dropout_transition=2[aout]",
        ])
        cmd = [
            self.ffmpeg_bin, "-y",
            "-i", str(video_path),
            "-i", str(music_path),
            "-filter_complex", filter_complex,
            "-map", "0:v",
            "-map", "[aout]",
            "-c:v", "copy",
            "-c:a", "aac",
            "-b:a", AUDIO_BITRATE,
            "-shortest",
            str(output_path),
        ]
        try:
            await self._run_async(cmd, f"mix background music ({volume:.0%})")
        except TranscoderError as e:
            logger.warning(f"Background music mix failed, keeping narration only: {e}")
            await asyncio.to_thread(shutil.copyfile, str(video_path), str(output_path))
        return Path(output_path)
