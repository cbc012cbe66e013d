"""Structured logging for the shortsmith server.

Every record, whether it comes from structlog or from a plain
``logging.getLogger(__name__)`` call, is rendered by the same structlog chain.
Records emitted inside a session task carry that session's id and the
pipeline stage it is in.
"""

import logging
import sys
from contextvars import ContextVar

import structlog

# Each session runs in its own task, so each task sees its own values
current_session_id: ContextVar[str | None] = ContextVar("current_session_id", default=None)
current_stage: ContextVar[str | None] = ContextVar("current_stage", default=None)

# Third-party loggers that only log at WARNING and above
QUIET_LOGGERS = (
    "httpx",
    "httpcore",
    "google_genai",
    "google_genai.models",
    "botocore",
    "boto3",
    "urllib3.connectionpool",
    "aiosqlite",
)


def add_pipeline_context(_logger, _method_name, event_dict):
    """Structlog processor adding ``session_id`` and ``stage`` when set."""
    session_id = current_session_id.get()
    if session_id:
        event_dict.setdefault("session_id", session_id)
    stage = current_stage.get()
    if stage:
        event_dict.setdefault("stage", stage)
    return event_dict


def quiet_third_party_loggers() -> None:
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Route all logging through structlog.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        json_output: One JSON object per line instead of colored console output
    """
    pre_chain = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_pipeline_context,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            *pre_chain,
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # The console renderer prints tracebacks itself; JSON needs them as a string
    final = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if json_output:
        final.append(structlog.processors.format_exc_info)
    final.append(renderer)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(foreign_pre_chain=pre_chain, processors=final)
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    quiet_third_party_loggers()


def set_session_context(session_id: str) -> None:
    """Tag the current task's log records with a session id.

    Also resets the stage, since a resumed session starts a new task.
    """
    current_session_id.set(session_id)
    current_stage.set(None)


def set_stage(stage: str) -> None:
    """Tag the current task's log records with the pipeline stage."""
    current_stage.set(stage)
