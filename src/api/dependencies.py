"""Service singletons and dependency injection for the shortsmith API."""

import logging

from api.progress_channel import ProgressChannel
from api.session_store import SessionStore, build_session_store
from shorts_agent.orchestrator import SessionOrchestrator
from utils.config import load_config

logger = logging.getLogger(__name__)

# Service singletons
_progress_channel: ProgressChannel | None = None
_session_store: SessionStore | None = None
_orchestrator: SessionOrchestrator | None = None


def get_progress_channel() -> ProgressChannel:
    """Get or create the progress channel instance."""
    global _progress_channel
    if _progress_channel is None:
        _progress_channel = ProgressChannel()
    return _progress_channel


def get_session_store() -> SessionStore:
    """Get or create the session store instance."""
    global _session_store
    if _session_store is None:
        _session_store = build_session_store(load_config())
    return _session_store


def get_orchestrator() -> SessionOrchestrator:
    """Get or create the session orchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = SessionOrchestrator.from_config(
            progress_sink=get_progress_channel(),
            session_store=get_session_store(),
            config=load_config(),
        )
    return _orchestrator


async def shutdown_services() -> None:
    """Wait for running sessions, then release clients and the store."""
    global _progress_channel, _session_store, _orchestrator
    if _orchestrator is not None:
        if _orchestrator.active_sessions:
            logger.info(f"Waiting for {_orchestrator.active_sessions} running session(s)")
        await _orchestrator.drain()
        await _orchestrator.close()
    if _session_store is not None:
        await _session_store.close()
    _progress_channel = None
    _session_store = None
    _orchestrator = None
