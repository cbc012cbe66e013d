"""Unit tests for scene segment planning and SceneClipAssembler."""

from pathlib import Path

import pytest

from shorts_agent.clip_assembler import (
    CTA_TAIL_SECONDS,
    EndCardCallToAction,
    NoCallToAction,
    SceneClipAssembler,
    build_cta_policy,
    plan_scene_segments,
)
from shorts_agent.media_transcoder import TranscoderError

IMAGES = [Path("a.png"), Path("b.png"), Path("c.png")]


class FakeTranscoder:
    """Records render calls instead of running ffmpeg."""

    def __init__(self, fail_concat=False):
        self.calls: list[tuple] = []
        self.fail_concat = fail_concat

    async def build_clip(self, image_path, audio_path, output_path, duration, variation_index):
        self.calls.append(("clip", image_path, duration, variation_index))
        return output_path

    async def build_clip_from_audio_segment(
        self, image_path, audio_path, output_path, start, duration, variation_index
    ):
        self.calls.append(("segment", image_path, start, duration, variation_index, output_path))
        return output_path

    async def concatenate(self, clips, output_path):
        self.calls.append(("concat", list(clips), output_path))
        if self.fail_concat:
            raise TranscoderError("concat failed")
        return output_path


class TestPlanSceneSegments:
    """Tests for plan_scene_segments()."""

    @pytest.mark.unit
    def test_even_split(self):
        segments = plan_scene_segments(1, IMAGES, 9.0)

        assert [s.image_path for s in segments] == IMAGES
        assert [s.start_offset for s in segments] == pytest.approx([0.0, 3.0, 6.0])
        assert [s.duration for s in segments] == pytest.approx([3.0, 3.0, 3.0])
        assert [s.variation_index for s in segments] == [10, 11, 12]
        assert not any(s.padded for s in segments)

    @pytest.mark.unit
    def test_single_image_is_padded_whole_scene(self):
        segments = plan_scene_segments(2, IMAGES[:1], 4.2)

        assert len(segments) == 1
        assert segments[0].padded
        assert segments[0].duration == pytest.approx(4.2)
        assert segments[0].variation_index == 2

    @pytest.mark.unit
    def test_end_card_takes_the_tail(self):
        cta = Path("cta.png")
        segments = plan_scene_segments(3, IMAGES[:2], 15.0, cta_image=cta)

        assert [s.image_path for s in segments] == [IMAGES[0], IMAGES[1], cta]
        assert [s.duration for s in segments] == pytest.approx([5.0, 5.0, CTA_TAIL_SECONDS])
        assert segments[-1].start_offset == pytest.approx(10.0)
        assert segments[-1].variation_index == 3 * 10 + 99

    @pytest.mark.unit
    def test_short_scene_is_all_end_card(self):
        cta = Path("cta.png")
        segments = plan_scene_segments(0, IMAGES, 4.0, cta_image=cta)

        assert len(segments) == 1
        assert segments[0].image_path == cta
        assert segments[0].padded

    @pytest.mark.unit
    @pytest.mark.parametrize("duration", [4.0, 7.3, 12.25, 31.0])
    def test_segments_tile_the_audio(self, duration):
        for cta in (None, Path("cta.png")):
            segments = plan_scene_segments(0, IMAGES, duration, cta_image=cta)
            assert sum(s.duration for s in segments) == pytest.approx(duration)
            for prev, nxt in zip(segments, segments[1:]):
                assert nxt.start_offset == pytest.approx(prev.end_offset)

    @pytest.mark.unit
    def test_invalid_input(self):
        with pytest.raises(ValueError):
            plan_scene_segments(0, [], 5.0)
        with pytest.raises(ValueError):
            plan_scene_segments(0, IMAGES, 0)


class TestCallToActionPolicy:
    """Tests for the end-card policies."""

    @pytest.mark.unit
    def test_end_card_only_on_last_scene(self, temp_dir):
        image = temp_dir / "cta.png"
        image.write_bytes(b"png")
        policy = EndCardCallToAction(image)

        assert policy.cta_image(0, is_last_scene=False) is None
        assert policy.cta_image(4, is_last_scene=True) == image

    @pytest.mark.unit
    def test_missing_image_disables_end_card(self, temp_dir):
        policy = EndCardCallToAction(temp_dir / "missing.png")
        assert policy.cta_image(0, is_last_scene=True) is None

    @pytest.mark.unit
    def test_build_policy(self, temp_dir):
        assert isinstance(build_cta_policy(None), NoCallToAction)
        assert isinstance(build_cta_policy(str(temp_dir / "cta.png")), EndCardCallToAction)


class TestSceneClipAssembler:
    """Tests for SceneClipAssembler.assemble()."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_single_image_renders_one_clip(self, temp_dir):
        transcoder = FakeTranscoder()
        assembler = SceneClipAssembler(transcoder)

        clip = await assembler.assemble(
            0, IMAGES[:1], Path("a.wav"), 4.0, temp_dir / "s_clip_1.mp4"
        )

        assert transcoder.calls == [("clip", IMAGES[0], 4.0, 0)]
        assert clip.path == temp_dir / "s_clip_1.mp4"
        assert clip.sub_clip_paths == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_multiple_images_render_sub_clips_and_join(self, temp_dir):
        transcoder = FakeTranscoder()
        assembler = SceneClipAssembler(transcoder)
        output = temp_dir / "s_clip_2.mp4"

        clip = await assembler.assemble(1, IMAGES[:2], Path("a.wav"), 6.0, output)

        segment_calls = [c for c in transcoder.calls if c[0] == "segment"]
        assert [(c[2], c[3]) for c in segment_calls] == [(0.0, 3.0), (3.0, 3.0)]
        assert clip.sub_clip_paths == [
            temp_dir / "s_clip_2_sub1.mp4",
            temp_dir / "s_clip_2_sub2.mp4",
        ]
        assert transcoder.calls[-1] == ("concat", clip.sub_clip_paths, output)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_last_scene_gets_end_card(self, temp_dir):
        cta = temp_dir / "cta.png"
        cta.write_bytes(b"png")
        transcoder = FakeTranscoder()
        assembler = SceneClipAssembler(transcoder, EndCardCallToAction(cta))

        clip = await assembler.assemble(
            2, IMAGES[:1], Path("a.wav"), 12.0, temp_dir / "s_clip_3.mp4", is_last_scene=True
        )

        segment_calls = [c for c in transcoder.calls if c[0] == "segment"]
        assert [c[1] for c in segment_calls] == [IMAGES[0], cta]
        assert [c[3] for c in segment_calls] == pytest.approx([7.0, 5.0])
        assert len(clip.segments) == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_concat_failure_propagates(self, temp_dir):
        assembler = SceneClipAssembler(FakeTranscoder(fail_concat=True))

        with pytest.raises(TranscoderError):
            await assembler.assemble(0, IMAGES, Path("a.wav"), 6.0, temp_dir / "c.mp4")
