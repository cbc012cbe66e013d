"""Per-session progress fan-out for the shortsmith API.

Each session has at most one live subscriber (an SSE stream or a WebSocket).
A newer subscriber replaces the older one. Events published while nobody is
listening are dropped.
"""

import asyncio
import logging
from typing import Any, Optional, Protocol, Union

from models.progress import ProgressEvent

logger = logging.getLogger(__name__)

_CLOSED = object()


class ProgressSink(Protocol):
    """What the orchestrator publishes progress to."""

    async def publish(self, session_id: str, event: Union[ProgressEvent, dict]) -> None:
        ...


class ProgressSubscription:
    """Async iterator over the event dicts of one session."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self._queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def push(self, event: dict) -> None:
        if not self.closed:
            self._queue.put_nowait(event)

    def close(self) -> None:
        """End iteration once the already queued events are consumed."""
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> "ProgressSubscription":
        return self

    async def __anext__(self) -> dict:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class ProgressChannel:
    """Routes progress events to the current subscriber of each session."""

    def __init__(self):
        """Initialize the channel with no subscribers."""
        self.subscribers: dict[str, ProgressSubscription] = {}

    def subscribe(self, session_id: str) -> ProgressSubscription:
        """Register a subscriber, closing any previous one for the session.

        Args:
            session_id: Session to follow

        Returns:
            Subscription yielding event dicts
        """
        previous = self.subscribers.pop(session_id, None)
        if previous is not None:
            logger.info(f"Replacing progress subscriber for session {session_id}")
            previous.close()
        subscription = ProgressSubscription(session_id)
        self.subscribers[session_id] = subscription
        return subscription

    def unsubscribe(self, session_id: str, subscription: Optional[ProgressSubscription] = None) -> None:
        """Deregister a subscriber.

        Args:
            session_id: Session id
            subscription: Only removed if it is still the current subscriber;
                None removes whatever is registered
        """
        current = self.subscribers.get(session_id)
        if current is None:
            return
        if subscription is None or subscription is current:
            self.subscribers.pop(session_id, None)
            current.close()
        else:
            subscription.close()

    def has_subscriber(self, session_id: str) -> bool:
        return session_id in self.subscribers

    async def publish(self, session_id: str, event: Union[ProgressEvent, dict[str, Any]]) -> None:
        """Deliver an event to the session's subscriber, or drop it.

        Args:
            session_id: Session id
            event: ProgressEvent or an already rendered event dict
        """
        payload = event.to_dict() if isinstance(event, ProgressEvent) else dict(event)
        logger.info(
            f"[{session_id}] {payload.get('step')}/{payload.get('status')}: {payload.get('message')}"
        )

        subscription = self.subscribers.get(session_id)
        if subscription is None:
            logger.debug(f"No subscriber for session {session_id}, event dropped")
            return
        subscription.push(payload)
