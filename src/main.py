"""Main application entry point for shortsmith."""

import argparse
import asyncio
import logging
import sys
from typing import Dict, Optional

from tqdm import tqdm

from api.session_store import InMemorySessionStore
from models.progress import ProgressEvent, ProgressStep
from models.session import InvalidRequestError, RequestParams
from services.interactive_ui import InteractiveUI
from shorts_agent.orchestrator import SessionOrchestrator
from utils.config import load_config, setup_logging, validate_config

logger = logging.getLogger(__name__)

# Steps rendered as per-scene progress bars
BAR_STEPS = (ProgressStep.IMAGE.value, ProgressStep.AUDIO.value, ProgressStep.CLIP.value)

# Events after which the CLI has to act
PAUSE_STEPS = (
    ProgressStep.PREVIEW_READY.value,
    ProgressStep.COMPLETE.value,
    ProgressStep.ERROR.value,
)


class ProgressBarSink:
    """Progress sink that renders events as tqdm progress bars."""

    def __init__(self):
        """Initialize progress bars."""
        self.progress_bars: Dict[str, tqdm] = {}
        self._pauses: asyncio.Queue = asyncio.Queue()

    async def publish(self, session_id: str, event) -> None:
        """Update progress bars based on an event.

        Args:
            session_id: Session the event belongs to
            event: ProgressEvent or event dict
        """
        payload = event.to_dict() if isinstance(event, ProgressEvent) else dict(event)
        step = payload.get("step")
        total = payload.get("totalScenes")

        if step in BAR_STEPS and total:
            bar = self.progress_bars.get(step)
            if bar is None:
                bar = tqdm(
                    total=total,
                    desc=f"  {step.title()}",
                    unit="scene",
                    position=len(self.progress_bars),
                    leave=True,
                )
                self.progress_bars[step] = bar
            bar.n = min(payload.get("sceneIndex") or 0, total)
            bar.set_postfix_str(payload.get("message", ""), refresh=False)
            bar.refresh()
        else:
            tqdm.write(f"[{step}] {payload.get('message')}")

        if step in PAUSE_STEPS:
            await self._pauses.put(payload)

    async def wait_for_pause(self) -> dict:
        """Wait for the next preview or terminal event."""
        return await self._pauses.get()

    def close(self):
        """Close all progress bars."""
        for bar in self.progress_bars.values():
            bar.close()


class ShortsmithApp:
    """Runs a single video-creation session from the terminal."""

    def __init__(self, params: RequestParams, config: Optional[dict] = None):
        self.params = params
        self.config = config or load_config()
        self.ui = InteractiveUI()

    async def run(self) -> int:
        """Produce one video. Returns the process exit code."""
        problems = validate_config(self.config)
        if problems:
            for problem in problems:
                self.ui.display_error(problem)
            return 1

        self.ui.display_welcome(
            self.params.effective_topic,
            self.params.genre.value,
            self.params.language.display_name,
            self.params.duration_seconds,
        )

        store = InMemorySessionStore()
        sink = ProgressBarSink()
        orchestrator = SessionOrchestrator.from_config(sink, store, self.config)

        try:
            session_id = await orchestrator.start(self.params)
            event = await sink.wait_for_pause()

            if event["step"] == ProgressStep.PREVIEW_READY.value:
                self.ui.display_script_preview(event.get("data") or {})
                # Rich prompt blocks on stdin
                confirmed = await asyncio.to_thread(self.ui.confirm_script)
                if not confirmed:
                    await store.delete(session_id)
                    self.ui.display_error("Script not confirmed. Exiting.")
                    return 0
                await orchestrator.confirm(session_id)
                event = await sink.wait_for_pause()

            await orchestrator.drain()
        finally:
            sink.close()
            await orchestrator.close()

        if event["step"] == ProgressStep.COMPLETE.value:
            self.ui.display_success(f"Video ready: {event.get('videoUrl')}")
            thumbnails = (event.get("youtubeMetadata") or {}).get("thumbnails") or []
            for url in thumbnails:
                self.ui.display_processing_status(f"Thumbnail: {url}", style="cyan")
            return 0

        self.ui.display_error(event.get("message", "Video processing failed"))
        return 1


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Shortsmith AI short-video generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  shortsmith --topic "Volcanoes" --language english
  shortsmith --genre didyouknow --hook "Octopuses have three hearts" --fact "..."
  shortsmith --topic "Monday mornings" --genre comedy --comedy-level spicy --preview
        """
    )
    parser.add_argument("--topic", help="Video topic")
    parser.add_argument("--hook", help="Hook line (didyouknow genre)")
    parser.add_argument("--fact", help="Fact to reveal (didyouknow genre)")
    parser.add_argument("--duration", default=60, help="Target duration in seconds (30-300)")
    parser.add_argument(
        "--genre",
        default="informative",
        help="informative, comedy, storytelling, motivational or didyouknow",
    )
    parser.add_argument("--comedy-level", default="mild", help="mild, medium or spicy")
    parser.add_argument("--language", default="gujarati", help="gujarati, hindi or english")
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Review the generated script before rendering"
    )

    args = parser.parse_args()

    config = load_config()
    setup_logging(config.get("log_level", "INFO"))

    try:
        params = RequestParams.from_payload({
            "topic": args.topic,
            "hook": args.hook,
            "fact": args.fact,
            "duration": args.duration,
            "genre": args.genre,
            "comedyLevel": args.comedy_level,
            "language": args.language,
            "preview": args.preview,
        })
    except InvalidRequestError as e:
        parser.error(str(e))

    app = ShortsmithApp(params, config)

    try:
        sys.exit(asyncio.run(app.run()))
    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
