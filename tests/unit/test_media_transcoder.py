"""Unit tests for MediaTranscoder FFmpeg command generation.

All tests mock subprocess.run so no actual FFmpeg execution occurs.
"""

import json
import subprocess
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from shorts_agent.media_transcoder import (
    FPS,
    MediaTranscoder,
    TranscoderError,
    ken_burns_filter,
)


def _completed(returncode=0, stdout="", stderr=""):
    return Mock(returncode=returncode, stdout=stdout, stderr=stderr)


def _arg_after(cmd: list[str], flag: str) -> str:
    return cmd[cmd.index(flag) + 1]


@pytest.fixture
def transcoder(temp_dir):
    return MediaTranscoder(temp_dir=temp_dir)


class TestKenBurnsFilter:
    """Tests for ken_burns_filter()."""

    @pytest.mark.unit
    def test_even_variation_zooms_in(self):
        vf = ken_burns_filter(120, 0, 1.15)

        assert vf.startswith("scale=3000:-1,zoompan=")
        assert "z='1.0+(1.15-1.0)*(on/120)'" in vf
        assert ":d=120:s=720x1280:fps=24" in vf
        assert vf.endswith(",format=yuv420p")

    @pytest.mark.unit
    def test_odd_variation_zooms_out(self):
        assert "z='1.15+(1.0-1.15)*(on/120)'" in ken_burns_filter(120, 1, 1.15)

    @pytest.mark.unit
    def test_pan_path_cycles_every_four(self):
        assert ken_burns_filter(48, 1, 1.1) == ken_burns_filter(48, 5, 1.1)
        assert ken_burns_filter(48, 0, 1.1) != ken_burns_filter(48, 2, 1.1)


class TestProbeDuration:
    """Tests for MediaTranscoder.probe_duration()."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_reads_format_duration(self, transcoder):
        stdout = json.dumps({"format": {"duration": "4.260000"}})
        with patch("subprocess.run", return_value=_completed(stdout=stdout)) as run:
            duration = await transcoder.probe_duration(Path("a.wav"))

        assert duration == pytest.approx(4.26)
        cmd = run.call_args.args[0]
        assert cmd[0] == "ffprobe"
        assert "format=duration" in cmd

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_duration_raises(self, transcoder):
        with patch("subprocess.run", return_value=_completed(stdout="{}")):
            with pytest.raises(TranscoderError):
                await transcoder.probe_duration(Path("a.wav"))


class TestClips:
    """Tests for clip rendering commands."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_build_clip_pads_half_second(self, transcoder, temp_dir):
        with patch("subprocess.run", return_value=_completed()) as run:
            await transcoder.build_clip(
                Path("img.png"), Path("a.wav"), temp_dir / "clip.mp4", 4.26, 0
            )

        cmd = run.call_args.args[0]
        assert _arg_after(cmd, "-t") == "4.76"
        assert ":d=115:" in _arg_after(cmd, "-vf")  # ceil(4.76 * 24)
        assert _arg_after(cmd, "-preset") == "veryfast"
        assert _arg_after(cmd, "-crf") == "23"
        assert _arg_after(cmd, "-b:a") == "192k"
        assert _arg_after(cmd, "-ar") == "44100"
        assert cmd[-1] == str(temp_dir / "clip.mp4")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_segment_seeks_audio_input(self, transcoder, temp_dir):
        with patch("subprocess.run", return_value=_completed()) as run:
            await transcoder.build_clip_from_audio_segment(
                Path("img.png"), Path("a.wav"), temp_dir / "sub.mp4", 2.5, 2.5, 11
            )

        cmd = run.call_args.args[0]
        ss = cmd.index("-ss")
        assert cmd[ss + 1] == "2.500"
        assert cmd[ss + 2 : ss + 4] == ["-i", "a.wav"]
        assert _arg_after(cmd, "-t") == "2.500"
        assert f":d={int(2.5 * FPS)}:" in _arg_after(cmd, "-vf")
        assert "1.1" in _arg_after(cmd, "-vf")
        assert _arg_after(cmd, "-async") == "1"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_nonzero_exit_keeps_stderr_in_log(self, transcoder, temp_dir, caplog):
        stderr = f"{temp_dir}/img.png: Invalid data found when processing input"
        with patch("subprocess.run", return_value=_completed(returncode=1, stderr=stderr)):
            with pytest.raises(TranscoderError) as excinfo:
                await transcoder.build_clip(
                    Path("img.png"), Path("a.wav"), temp_dir / "clip.mp4", 3.0, 0
                )

        assert str(excinfo.value) == "FFmpeg failed (clip clip.mp4 (3.50s))"
        assert str(temp_dir) not in str(excinfo.value)
        assert "Invalid data found" in caplog.text

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_duration_error_names_file_only(self, transcoder, temp_dir):
        with patch("subprocess.run", return_value=_completed(stdout="{}")):
            with pytest.raises(TranscoderError) as excinfo:
                await transcoder.probe_duration(temp_dir / "s_scene_1.wav")

        assert str(temp_dir) not in str(excinfo.value)
        assert "s_scene_1.wav" in str(excinfo.value)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout_raises(self, transcoder, temp_dir):
        error = subprocess.TimeoutExpired(cmd="ffmpeg", timeout=600)
        with patch("subprocess.run", side_effect=error):
            with pytest.raises(TranscoderError, match="timed out"):
                await transcoder.build_clip(
                    Path("img.png"), Path("a.wav"), temp_dir / "clip.mp4", 3.0, 0
                )


class TestConcatenate:
    """Tests for MediaTranscoder.concatenate()."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_list_raises(self, transcoder, temp_dir):
        with pytest.raises(TranscoderError):
            await transcoder.concatenate([], temp_dir / "out.mp4")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_single_clip_is_copied(self, transcoder, temp_dir):
        clip = temp_dir / "clip.mp4"
        clip.write_bytes(b"video")

        with patch("subprocess.run") as run:
            output = await transcoder.concatenate([clip], temp_dir / "out" / "final.mp4")

        run.assert_not_called()
        assert output.read_bytes() == b"video"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_concat_list_is_written_and_removed(self, transcoder, temp_dir):
        clips = [temp_dir / "it's_1.mp4", temp_dir / "clip_2.mp4"]
        seen = {}

        def fake_run(cmd, **kwargs):
            list_file = Path(_arg_after(cmd, "-i"))
            seen["cmd"] = cmd
            seen["list"] = list_file.read_text()
            return _completed()

        with patch("subprocess.run", side_effect=fake_run):
            await transcoder.concatenate(clips, temp_dir / "final.mp4")

        cmd = seen["cmd"]
        assert _arg_after(cmd, "-f") == "concat"
        assert _arg_after(cmd, "-safe") == "0"
        assert _arg_after(cmd, "-movflags") == "+faststart"
        assert "it'\\''s_1.mp4" in seen["list"]
        assert seen["list"].count("file '") == 2
        assert not list(temp_dir.glob("concat_*.txt"))


class TestAudio:
    """Tests for lead-in delay and background music."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_delay_audio_start_replaces_file(self, transcoder, temp_dir):
        audio = temp_dir / "scene_1.wav"
        audio.write_bytes(b"original")

        def fake_run(cmd, **kwargs):
            Path(cmd[-1]).write_bytes(b"delayed")
            return _completed()

        with patch("subprocess.run", side_effect=fake_run) as run:
            result = await transcoder.delay_audio_start(audio, 1.0)

        assert result == audio
        assert audio.read_bytes() == b"delayed"
        assert _arg_after(run.call_args.args[0], "-af") == "adelay=1000|1000"
        assert not (temp_dir / "scene_1_delayed.wav").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_music_mix_filter(self, transcoder, temp_dir):
        with patch("subprocess.run", return_value=_completed()) as run:
            await transcoder.mix_background_music(
                temp_dir / "v.mp4", temp_dir / "m.mp3", temp_dir / "out.mp4", volume=0.2
            )

        graph = _arg_after(run.call_args.args[0], "-filter_complex")
        assert "[0:a]volume=1.5[voice]" in graph
        assert "aloop=loop=-1" in graph and "volume=0.2[bgm]" in graph
        assert "amix=inputs=2:duration=first" in graph

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_music_mix_failure_keeps_narration(self, transcoder, temp_dir):
        video = temp_dir / "v.mp4"
        video.write_bytes(b"narration-only")

        with patch("subprocess.run", return_value=_completed(returncode=1, stderr="no audio")):
            output = await transcoder.mix_background_music(
                video, temp_dir / "m.mp3", temp_dir / "out.mp4"
            )

        assert output.read_bytes() == b"narration-only"
