# Data models for shortsmith
from .script import Script, Scene, YoutubeMetadata, ScriptSchemaError, sanitize_title
from .session import (
    ComedyLevel,
    Genre,
    InvalidRequestError,
    InvalidTransitionError,
    Language,
    RequestParams,
    Session,
    SessionNotFoundError,
    SessionState,
)
from .media import ClipSegment, FinalVideo, SceneClip
from .progress import ProgressEvent, ProgressStatus, ProgressStep

__all__ = [
    # Script
    "Script",
    "Scene",
    "YoutubeMetadata",
    "ScriptSchemaError",
    "sanitize_title",
    # Session
    "ComedyLevel",
    "Genre",
    "InvalidRequestError",
    "InvalidTransitionError",
    "Language",
    "RequestParams",
    "Session",
    "SessionNotFoundError",
    "SessionState",
    # Media
    "ClipSegment",
    "FinalVideo",
    "SceneClip",
    # Progress
    "ProgressEvent",
    "ProgressStatus",
    "ProgressStep",
]
