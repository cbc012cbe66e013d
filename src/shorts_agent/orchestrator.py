"""Session orchestrator - drives one video-creation session end to end.

topic -> script -> (preview) -> images -> narration -> scene clips ->
final video -> (upload) -> thumbnails -> complete

Each session runs as its own asyncio task. Progress is reported to a
ProgressSink; session state lives in a SessionStore until the terminal
event has been published.
"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Optional

from models.media import FinalVideo, SceneClip
from models.progress import ProgressEvent, ProgressStatus, ProgressStep
from models.session import RequestParams, Session, SessionNotFoundError, SessionState
from services.ai_service import AIService
from services.image_generation_service import ImageGenerationService
from services.tts_service import TTSService
from services.video_storage import VideoStorage, build_video_storage
from shorts_agent.clip_assembler import SceneClipAssembler, build_cta_policy
from shorts_agent.media_transcoder import MediaTranscoder
from shorts_agent.script_generator import ScriptGenerator
from utils.config import load_config
from utils.logging import set_session_context, set_stage
from utils.retry import Sleep

logger = logging.getLogger(__name__)

# Pacing between consecutive upstream calls (seconds)
IMAGE_PACING_SECONDS = 1.0
AUDIO_PACING_SECONDS = 0.5

# Silence prepended to the first scene's narration
LEAD_IN_SECONDS = 1.0

DEFAULT_FAILURE_MESSAGE = "Video processing failed"


class SessionOrchestrator:
    """Runs video-creation sessions and reports their progress."""

    def __init__(
        self,
        script_generator: ScriptGenerator,
        image_service: ImageGenerationService,
        tts_service: TTSService,
        transcoder: MediaTranscoder,
        assembler: SceneClipAssembler,
        video_storage: VideoStorage,
        progress_sink,
        session_store,
        temp_dir: Path,
        output_dir: Path,
        background_music_path: Optional[Path] = None,
        background_music_volume: float = 0.15,
        image_pacing_seconds: float = IMAGE_PACING_SECONDS,
        audio_pacing_seconds: float = AUDIO_PACING_SECONDS,
        lead_in_seconds: float = LEAD_IN_SECONDS,
        preview_ttl_seconds: int = 0,
        sleep: Optional[Sleep] = None,
    ):
        """Initialize with all collaborators.

        Args:
            script_generator: Produces the Script for a topic
            image_service: Renders one image per prompt (never raises upstream errors)
            tts_service: Synthesizes scene narration
            transcoder: ffmpeg facade
            assembler: Builds one clip per scene
            video_storage: Publishes the final video and thumbnails
            progress_sink: Receives every progress event (``async publish``)
            session_store: Holds sessions until their terminal event
            temp_dir: Shared directory for per-session intermediate files
            output_dir: Directory for final videos and thumbnails
            background_music_path: Optional music mixed under the narration
            background_music_volume: Music volume (0-1)
            image_pacing_seconds: Wait between image requests
            audio_pacing_seconds: Wait between narration requests
            lead_in_seconds: Silence before the first scene's narration
            preview_ttl_seconds: Drop unconfirmed previews older than this (0 disables)
            sleep: Async sleep used for pacing
        """
        self.script_generator = script_generator
        self.image_service = image_service
        self.tts = tts_service
        self.transcoder = transcoder
        self.assembler = assembler
        self.video_storage = video_storage
        self.progress = progress_sink
        self.store = session_store
        self.temp_dir = Path(temp_dir)
        self.output_dir = Path(output_dir)
        self.background_music_path = (
            Path(background_music_path) if background_music_path else None
        )
        self.background_music_volume = background_music_volume
        self.image_pacing_seconds = image_pacing_seconds
        self.audio_pacing_seconds = audio_pacing_seconds
        self.lead_in_seconds = lead_in_seconds
        self.preview_ttl_seconds = preview_ttl_seconds
        self.sleep = sleep or asyncio.sleep

        self.temp_dir.mkdir(parents=True, exist_ok=True)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        # Strong references so running sessions are not garbage collected
        self._background_tasks: set[asyncio.Task] = set()

    @classmethod
    def from_config(
        cls, progress_sink, session_store, config: Optional[dict] = None
    ) -> "SessionOrchestrator":
        """Build an orchestrator and its services from configuration.

        Args:
            progress_sink: Receives progress events
            session_store: Session storage
            config: Config dict (loaded from the environment if not provided)
        """
        if config is None:
            config = load_config()

        ai = AIService(
            api_key=config.get("gemini_api_key") or "",
            model_name=config.get("gemini_script_model", "gemini-2.5-pro"),
        )
        models = [config.get("gemini_script_model", "gemini-2.5-pro")]
        models += [m for m in config.get("gemini_fallback_models", []) if m not in models]

        temp_dir = Path(config.get("temp_dir") or "temp")
        transcoder = MediaTranscoder(temp_dir=temp_dir)

        return cls(
            script_generator=ScriptGenerator(ai, models=models),
            image_service=ImageGenerationService(
                api_key=config.get("gemini_api_key") or "",
                model=config.get("gemini_image_model", "gemini-2.5-flash-image"),
            ),
            tts_service=TTSService(
                api_key=config.get("cartesia_api_key") or "",
                voice_id=config.get("cartesia_voice_id"),
                model=config.get("cartesia_model"),
            ),
            transcoder=transcoder,
            assembler=SceneClipAssembler(
                transcoder, cta_policy=build_cta_policy(config.get("cta_image_path"))
            ),
            video_storage=build_video_storage(config),
            progress_sink=progress_sink,
            session_store=session_store,
            temp_dir=temp_dir,
            output_dir=Path(config.get("output_dir") or "output"),
            background_music_path=config.get("background_music_path"),
            background_music_volume=config.get("background_music_volume", 0.15),
            preview_ttl_seconds=config.get("preview_ttl_seconds", 0),
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def start(self, params: RequestParams) -> str:
        """Create a session and start it in the background.

        Args:
            params: Validated request parameters

        Returns:
            The new session id
        """
        if self.preview_ttl_seconds > 0:
            await self.store.expire_pending(self.preview_ttl_seconds)

        session = Session(params=params)
        await self.store.put(session)
        logger.info(
            f"Session {session.session_id} created: genre={params.genre.value}, "
            f"language={params.language.value}, duration={params.duration_seconds}s, "
            f"preview={params.preview}"
        )
        self._spawn(self._run_new(session), session.session_id)
        return session.session_id

    async def confirm(self, session_id: str) -> None:
        """Resume a session that is waiting for preview approval.

        Raises:
            SessionNotFoundError: If the id is unknown, not waiting, or already confirmed
        """
        session = await self.store.take_pending(session_id) if session_id else None
        if session is None:
            raise SessionNotFoundError(session_id)

        session.advance(SessionState.IMAGES_PENDING)
        await self.store.put(session)
        logger.info(f"Session {session_id} confirmed, resuming production")
        self._spawn(self._run_confirmed(session), session_id)

    async def drain(self) -> None:
        """Wait for every running session task to finish."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    @property
    def active_sessions(self) -> int:
        return len(self._background_tasks)

    async def close(self) -> None:
        """Clean up HTTP clients."""
        await self.tts.close()
        await self.image_service.close()

    def _spawn(self, coro: Awaitable, session_id: str) -> None:
        task = asyncio.create_task(coro, name=f"session-{session_id}")
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    # ------------------------------------------------------------------
    # Session tasks
    # ------------------------------------------------------------------

    async def _run_new(self, session: Session) -> None:
        set_session_context(session.session_id)
        try:
            await self._generate_script(session)
            if session.params.preview:
                await self._wait_for_preview(session)
                return
            session.advance(SessionState.IMAGES_PENDING)
            await self.store.put(session)
            await self._produce(session)
        except Exception as e:
            await self._fail(session, e)

    async def _run_confirmed(self, session: Session) -> None:
        set_session_context(session.session_id)
        try:
            await self._produce(session)
        except Exception as e:
            await self._fail(session, e)

    async def _emit(
        self,
        session: Session,
        step: ProgressStep,
        status: ProgressStatus,
        message: str,
        **fields,
    ) -> None:
        set_stage(step.value)
        await self.progress.publish(
            session.session_id, ProgressEvent(step=step, status=status, message=message, **fields)
        )

    async def _advance(self, session: Session, *states: SessionState) -> None:
        for state in states:
            session.advance(state)
        await self.store.put(session)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _generate_script(self, session: Session) -> None:
        params = session.params
        await self._advance(session, SessionState.SCRIPT_PENDING)
        await self._emit(
            session,
            ProgressStep.SCRIPT,
            ProgressStatus.IN_PROGRESS,
            f"Generating {params.genre.value} script...",
            scene_index=0,
            total_scenes=0,
        )

        script = await self.script_generator.generate(
            params.effective_topic,
            target_duration_seconds=params.duration_seconds,
            genre=params.genre,
            comedy_level=params.comedy_level,
            language=params.language,
        )
        script.validate()

        session.script = script
        await self._advance(session, SessionState.SCRIPT_READY)
        await self._emit(
            session,
            ProgressStep.SCRIPT,
            ProgressStatus.COMPLETED,
            f'Generated {len(script.scenes)} scenes - "{script.video_title}"',
            scene_index=0,
            total_scenes=len(script.scenes),
        )

    async def _wait_for_preview(self, session: Session) -> None:
        script = session.script
        await self._advance(session, SessionState.PREVIEW_WAITING)
        logger.info(f"Session {session.session_id} waiting for preview approval")
        await self._emit(
            session,
            ProgressStep.PREVIEW_READY,
            ProgressStatus.WAITING,
            "Script ready for review",
            data={
                "videoTitle": script.video_title,
                "scenes": [scene.to_dict() for scene in script.scenes],
                "language": session.params.language.value,
                "youtubeMetadata": (
                    script.youtube_metadata.to_dict() if script.youtube_metadata else None
                ),
            },
        )

    async def _produce(self, session: Session) -> None:
        """Everything after the script: session must be in IMAGES_PENDING."""
        script = session.script
        sid = session.session_id
        total = len(script.scenes)
        logger.info(f"=== PRODUCTION START: '{script.video_title}' ({total} scenes) ===")

        image_paths = await self._generate_images(session)
        await self._advance(session, SessionState.IMAGES_READY, SessionState.AUDIO_PENDING)

        audio_paths, durations = await self._generate_audio(session)
        await self._advance(session, SessionState.AUDIO_READY, SessionState.CLIPS_PENDING)

        clips = await self._build_clips(session, image_paths, audio_paths, durations)
        await self._advance(session, SessionState.ASSEMBLING)

        final_path = await self._assemble(session, clips)

        if self.video_storage.is_remote:
            await self._advance(session, SessionState.UPLOADING)
            await self._emit(
                session, ProgressStep.UPLOAD, ProgressStatus.IN_PROGRESS, "Uploading video..."
            )
        video_url = await self.video_storage.publish(final_path)
        if self.video_storage.is_remote:
            await self._emit(
                session, ProgressStep.UPLOAD, ProgressStatus.COMPLETED, "Video uploaded"
            )

        thumbnails = await self._generate_thumbnails(session)
        final = FinalVideo(
            path=final_path,
            url=video_url,
            duration=sum(durations),
            thumbnails=thumbnails,
        )

        self._cleanup_temp(sid)
        await self._advance(session, SessionState.COMPLETED)

        metadata = script.youtube_metadata.to_dict() if script.youtube_metadata else {}
        metadata["thumbnails"] = final.thumbnails
        await self._emit(
            session,
            ProgressStep.COMPLETE,
            ProgressStatus.COMPLETED,
            "Video ready!",
            video_url=final.url,
            youtube_metadata=metadata,
        )
        await self.store.delete(sid)
        logger.info(f"=== VIDEO COMPLETE: {final_path} ({final.duration:.1f}s) ===")

    async def _generate_images(self, session: Session) -> list[list[Path]]:
        script = session.script
        sid = session.session_id
        total_scenes = len(script.scenes)
        total_images = script.total_images

        await self._emit(
            session,
            ProgressStep.IMAGE,
            ProgressStatus.IN_PROGRESS,
            f"Generating {total_images} images...",
            scene_index=0,
            total_scenes=total_scenes,
        )

        image_paths: list[list[Path]] = []
        generated = 0
        for s, scene in enumerate(script.scenes):
            scene_images = []
            for i, prompt in enumerate(scene.image_prompts):
                if generated:
                    await self.sleep(self.image_pacing_seconds)
                await self._emit(
                    session,
                    ProgressStep.IMAGE,
                    ProgressStatus.IN_PROGRESS,
                    f"Scene {s + 1} - Image {i + 1} of {len(scene.image_prompts)}...",
                    scene_index=s + 1,
                    total_scenes=total_scenes,
                )
                path = self.temp_dir / f"{sid}_scene{s + 1}_img{i + 1}.png"
                scene_images.append(await self.image_service.generate_image(prompt, path))
                generated += 1
            image_paths.append(scene_images)

        await self._emit(
            session,
            ProgressStep.IMAGE,
            ProgressStatus.COMPLETED,
            f"All {total_images} images generated",
            scene_index=total_scenes,
            total_scenes=total_scenes,
        )
        return image_paths

    async def _generate_audio(self, session: Session) -> tuple[list[Path], list[float]]:
        script = session.script
        sid = session.session_id
        language = session.params.language
        total = len(script.scenes)

        await self._emit(
            session,
            ProgressStep.AUDIO,
            ProgressStatus.IN_PROGRESS,
            f"Generating {language.display_name} voiceover...",
            scene_index=0,
            total_scenes=total,
        )

        audio_paths: list[Path] = []
        for i, scene in enumerate(script.scenes):
            if i:
                await self.sleep(self.audio_pacing_seconds)
            path = self.temp_dir / f"{sid}_scene_{i + 1}.wav"
            await self.tts.generate_audio(scene.narration_text, path, language=language.value)
            if i == 0 and self.lead_in_seconds > 0:
                await self.transcoder.delay_audio_start(path, self.lead_in_seconds)
            audio_paths.append(path)

        durations = [await self.transcoder.probe_duration(path) for path in audio_paths]
        logger.info(
            f"Narration durations: {', '.join(f'{d:.2f}s' for d in durations)} "
            f"(total {sum(durations):.1f}s)"
        )

        await self._emit(
            session,
            ProgressStep.AUDIO,
            ProgressStatus.COMPLETED,
            f"Voiceover generated for {total} scenes",
            scene_index=total,
            total_scenes=total,
        )
        return audio_paths, durations

    async def _build_clips(
        self,
        session: Session,
        image_paths: list[list[Path]],
        audio_paths: list[Path],
        durations: list[float],
    ) -> list[SceneClip]:
        sid = session.session_id
        total = len(image_paths)

        await self._emit(
            session,
            ProgressStep.CLIP,
            ProgressStatus.IN_PROGRESS,
            f"Creating {total} scene clips...",
            scene_index=0,
            total_scenes=total,
        )

        clips: list[SceneClip] = []
        for i in range(total):
            clip = await self.assembler.assemble(
                i,
                image_paths[i],
                audio_paths[i],
                durations[i],
                self.temp_dir / f"{sid}_clip_{i + 1}.mp4",
                is_last_scene=i == total - 1,
            )
            clips.append(clip)
            await self._emit(
                session,
                ProgressStep.CLIP,
                ProgressStatus.IN_PROGRESS,
                f"Scene {i + 1}/{total} complete",
                scene_index=i + 1,
                total_scenes=total,
            )

        await self._emit(
            session,
            ProgressStep.CLIP,
            ProgressStatus.COMPLETED,
            f"All {total} clips created",
            scene_index=total,
            total_scenes=total,
        )
        return clips

    async def _assemble(self, session: Session, clips: list[SceneClip]) -> Path:
        sid = session.session_id
        total = len(clips)
        await self._emit(
            session,
            ProgressStep.ASSEMBLY,
            ProgressStatus.IN_PROGRESS,
            "Assembling final video...",
            scene_index=total,
            total_scenes=total,
        )

        final_path = self.output_dir / f"{session.script.video_title}_{sid}.mp4"
        clip_paths = [clip.path for clip in clips]

        music = self.background_music_path
        if music is not None and music.is_file():
            joined = self.temp_dir / f"{sid}_joined.mp4"
            await self.transcoder.concatenate(clip_paths, joined)
            await self.transcoder.mix_background_music(
                joined, music, final_path, self.background_music_volume
            )
        else:
            if music is not None:
                logger.warning(f"Background music not found, skipping: {music}")
            await self.transcoder.concatenate(clip_paths, final_path)

        await self._emit(
            session,
            ProgressStep.ASSEMBLY,
            ProgressStatus.COMPLETED,
            "Final video assembled",
            scene_index=total,
            total_scenes=total,
        )
        return final_path

    async def _generate_thumbnails(self, session: Session) -> list[str]:
        """Render and publish thumbnails. Failures are logged and skipped."""
        metadata = session.script.youtube_metadata
        prompts = metadata.thumbnail_prompts if metadata else []
        if not prompts:
            return []

        await self._emit(
            session,
            ProgressStep.THUMBNAIL,
            ProgressStatus.IN_PROGRESS,
            f"Generating {len(prompts)} thumbnails...",
        )

        urls = []
        for i, prompt in enumerate(prompts):
            path = self.output_dir / f"{session.session_id}_thumbnail_{i + 1}.png"
            try:
                await self.image_service.generate_image(prompt, path)
                urls.append(await self.video_storage.publish(path))
            except Exception as e:
                logger.warning(f"Thumbnail {i + 1} failed: {e}")

        await self._emit(
            session,
            ProgressStep.THUMBNAIL,
            ProgressStatus.COMPLETED,
            f"{len(urls)} thumbnails ready",
        )
        return urls

    # ------------------------------------------------------------------
    # Failure and cleanup
    # ------------------------------------------------------------------

    async def _fail(self, session: Session, error: Exception) -> None:
        if session.state == SessionState.COMPLETED:
            # Terminal event already sent; only the release failed
            logger.error(f"Session {session.session_id} cleanup after completion failed: {error}")
            return
        message = str(error) or DEFAULT_FAILURE_MESSAGE
        logger.error(
            f"Session {session.session_id} failed in state {session.state.value}: {message}",
            exc_info=error,
        )
        if session.can_advance(SessionState.FAILED):
            session.fail(message)
        self._cleanup_temp(session.session_id)
        try:
            await self._emit(session, ProgressStep.ERROR, ProgressStatus.FAILED, message)
        finally:
            await self.store.delete(session.session_id)

    def _cleanup_temp(self, session_id: str) -> None:
        """Remove every intermediate file of a session from the temp dir."""
        removed = 0
        for path in self.temp_dir.glob(f"{session_id}_*"):
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                logger.warning(f"Could not remove temp file {path.name}: {e}")
        logger.debug(f"Removed {removed} temp file(s) for session {session_id}")
