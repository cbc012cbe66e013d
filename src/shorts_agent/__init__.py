"""Shorts agent - AI short-video production pipeline.

topic -> script -> images -> narration -> Ken Burns scene clips -> final video
"""

from shorts_agent.clip_assembler import SceneClipAssembler, plan_scene_segments
from shorts_agent.media_transcoder import MediaTranscoder, TranscoderError
from shorts_agent.orchestrator import SessionOrchestrator
from shorts_agent.script_generator import ScriptGenerator, ScriptGenerationError

__all__ = [
    "MediaTranscoder",
    "SceneClipAssembler",
    "ScriptGenerationError",
    "ScriptGenerator",
    "SessionOrchestrator",
    "TranscoderError",
    "plan_scene_segments",
]
