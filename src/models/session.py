"""Session data models: request parameters and the per-session state machine."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from models.script import Script

MIN_DURATION_SECONDS = 30
MAX_DURATION_SECONDS = 300
DEFAULT_DURATION_SECONDS = 60
UNPARSEABLE_DURATION_SECONDS = 45


class InvalidRequestError(ValueError):
    """Raised when a create-video request is missing required fields."""

    pass


class SessionNotFoundError(KeyError):
    """Raised when a session id is unknown, expired or already resumed."""

    def __init__(self, session_id: str):
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Session not found or expired: {self.session_id}"


class InvalidTransitionError(RuntimeError):
    """Raised when a session is moved to a state its current state cannot reach."""

    pass


class Genre(str, Enum):
    """Video genres. FACT_REVEAL takes a hook and a fact instead of a topic."""

    INFORMATIVE = "informative"
    COMEDY = "comedy"
    STORYTELLING = "storytelling"
    MOTIVATIONAL = "motivational"
    FACT_REVEAL = "factreveal"

    @classmethod
    def parse(cls, value: Any) -> "Genre":
        text = str(value or "").strip().lower()
        if text == "didyouknow":
            return cls.FACT_REVEAL
        try:
            return cls(text)
        except ValueError:
            return cls.INFORMATIVE


class ComedyLevel(str, Enum):
    """Comedy intensity (only meaningful for the comedy genre)."""

    MILD = "mild"
    MEDIUM = "medium"
    SPICY = "spicy"

    @classmethod
    def parse(cls, value: Any) -> "ComedyLevel":
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.MILD


class Language(str, Enum):
    """Narration languages."""

    GUJARATI = "gujarati"
    HINDI = "hindi"
    ENGLISH = "english"

    @classmethod
    def parse(cls, value: Any) -> "Language":
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.GUJARATI

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def narration_field(self) -> str:
        """JSON field the script model writes this language's narration into."""
        return f"audio_script_{self.value}"


def _normalize_duration(value: Any) -> int:
    if value is None or value == "":
        return DEFAULT_DURATION_SECONDS
    try:
        seconds = int(float(value))
    except (TypeError, ValueError):
        seconds = 0
    if seconds == 0:
        seconds = UNPARSEABLE_DURATION_SECONDS
    return max(MIN_DURATION_SECONDS, min(MAX_DURATION_SECONDS, seconds))


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class RequestParams:
    """Validated, normalized parameters of one video-creation request."""

    topic: Optional[str] = None
    hook: Optional[str] = None
    fact: Optional[str] = None
    duration_seconds: int = DEFAULT_DURATION_SECONDS
    genre: Genre = Genre.INFORMATIVE
    comedy_level: ComedyLevel = ComedyLevel.MILD
    language: Language = Language.GUJARATI
    preview: bool = False

    @classmethod
    def from_payload(cls, payload: dict) -> "RequestParams":
        """Build request parameters from a loosely typed payload.

        Invalid enum values fall back to their defaults; the duration is
        clamped to the supported range.

        Args:
            payload: Dict with topic/hook/fact, duration, genre, comedyLevel
                (or comedy_level), language and preview

        Returns:
            Normalized RequestParams

        Raises:
            InvalidRequestError: If the genre's required text fields are missing
        """
        genre = Genre.parse(payload.get("genre"))
        comedy_level = ComedyLevel.parse(
            payload.get("comedyLevel", payload.get("comedy_level"))
        )
        if genre != Genre.COMEDY:
            comedy_level = ComedyLevel.MILD

        params = cls(
            topic=_clean(payload.get("topic")),
            hook=_clean(payload.get("hook")),
            fact=_clean(payload.get("fact")),
            duration_seconds=_normalize_duration(
                payload.get("duration", payload.get("duration_seconds"))
            ),
            genre=genre,
            comedy_level=comedy_level,
            language=Language.parse(payload.get("language")),
            preview=bool(payload.get("preview", False)),
        )
        params.validate()
        return params

    def validate(self) -> None:
        if self.genre == Genre.FACT_REVEAL:
            if not self.hook or not self.fact:
                raise InvalidRequestError("Hook and Fact required")
        elif not self.topic:
            raise InvalidRequestError("Topic is required")

    @property
    def effective_topic(self) -> str:
        if self.genre == Genre.FACT_REVEAL:
            return f"HOOK: {self.hook}\n\nFACT: {self.fact}"
        return self.topic or ""

    def to_dict(self) -> dict:
        return {
            "topic": self.topic,
            "hook": self.hook,
            "fact": self.fact,
            "duration": self.duration_seconds,
            "genre": self.genre.value,
            "comedyLevel": self.comedy_level.value,
            "language": self.language.value,
            "preview": self.preview,
        }


class SessionState(str, Enum):
    """Lifecycle states of a video-creation session."""

    CREATED = "created"
    SCRIPT_PENDING = "script_pending"
    SCRIPT_READY = "script_ready"
    PREVIEW_WAITING = "preview_waiting"
    IMAGES_PENDING = "images_pending"
    IMAGES_READY = "images_ready"
    AUDIO_PENDING = "audio_pending"
    AUDIO_READY = "audio_ready"
    CLIPS_PENDING = "clips_pending"
    ASSEMBLING = "assembling"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.FAILED)


_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.CREATED: {SessionState.SCRIPT_PENDING},
    SessionState.SCRIPT_PENDING: {SessionState.SCRIPT_READY},
    SessionState.SCRIPT_READY: {SessionState.PREVIEW_WAITING, SessionState.IMAGES_PENDING},
    SessionState.PREVIEW_WAITING: {SessionState.IMAGES_PENDING},
    SessionState.IMAGES_PENDING: {SessionState.IMAGES_READY},
    SessionState.IMAGES_READY: {SessionState.AUDIO_PENDING},
    SessionState.AUDIO_PENDING: {SessionState.AUDIO_READY},
    SessionState.AUDIO_READY: {SessionState.CLIPS_PENDING},
    SessionState.CLIPS_PENDING: {SessionState.ASSEMBLING},
    SessionState.ASSEMBLING: {SessionState.UPLOADING, SessionState.COMPLETED},
    SessionState.UPLOADING: {SessionState.COMPLETED},
    SessionState.COMPLETED: set(),
    SessionState.FAILED: set(),
}


def new_session_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Session:
    """One video-creation run, owned by the orchestrator while it is active."""

    params: RequestParams
    session_id: str = field(default_factory=new_session_id)
    state: SessionState = SessionState.CREATED
    script: Optional[Script] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def can_advance(self, target: SessionState) -> bool:
        if target == SessionState.FAILED:
            return not self.state.is_terminal
        return target in _TRANSITIONS[self.state]

    def advance(self, target: SessionState) -> None:
        """Move to ``target``, enforcing the lifecycle transition table.

        Raises:
            InvalidTransitionError: If ``target`` is not reachable from the current state
        """
        if not self.can_advance(target):
            raise InvalidTransitionError(
                f"Session {self.session_id}: cannot move from "
                f"{self.state.value} to {target.value}"
            )
        self.state = target
        self.updated_at = datetime.now()

    def fail(self, message: str) -> None:
        self.advance(SessionState.FAILED)
        self.error = message

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "params": self.params.to_dict(),
            "script": self.script.to_dict() if self.script else None,
            "error": self.error,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        script = data.get("script")
        return cls(
            params=RequestParams.from_payload(data["params"]),
            session_id=data["session_id"],
            state=SessionState(data["state"]),
            script=Script.from_dict(script) if script else None,
            error=data.get("error"),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )
