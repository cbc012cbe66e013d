"""Unit tests for ProgressChannel fan-out and the SSE renderer."""

import asyncio
import json

import pytest

from api.progress_channel import ProgressChannel
from api.routers.videos import sse_events
from models.progress import ProgressEvent, ProgressStatus, ProgressStep


def _event(step=ProgressStep.IMAGE, status=ProgressStatus.IN_PROGRESS, message="working"):
    return ProgressEvent(step=step, status=status, message=message)


async def _drain(subscription) -> list[dict]:
    subscription.close()
    return [event async for event in subscription]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_publish_reaches_subscriber_in_order():
    channel = ProgressChannel()
    subscription = channel.subscribe("s1")

    await channel.publish("s1", _event(message="one"))
    await channel.publish("s1", {"step": "image", "status": "completed", "message": "two"})

    events = await _drain(subscription)
    assert [e["message"] for e in events] == ["one", "two"]
    assert events[0] == {"step": "image", "status": "in_progress", "message": "one"}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_events_without_subscriber_are_dropped():
    channel = ProgressChannel()
    await channel.publish("s1", _event(message="lost"))

    subscription = channel.subscribe("s1")
    await channel.publish("s1", _event(message="kept"))

    assert [e["message"] for e in await _drain(subscription)] == ["kept"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_new_subscriber_replaces_old_one():
    channel = ProgressChannel()
    first = channel.subscribe("s1")
    second = channel.subscribe("s1")

    await channel.publish("s1", _event(message="for second"))

    assert first.closed
    assert [e async for e in first] == []
    assert [e["message"] for e in await _drain(second)] == ["for second"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unsubscribe_stale_subscription_keeps_current():
    channel = ProgressChannel()
    first = channel.subscribe("s1")
    second = channel.subscribe("s1")

    channel.unsubscribe("s1", first)

    assert channel.has_subscriber("s1")
    channel.unsubscribe("s1", second)
    assert not channel.has_subscriber("s1")
    await channel.publish("s1", _event())  # no-op


@pytest.mark.unit
@pytest.mark.asyncio
async def test_sessions_are_isolated():
    channel = ProgressChannel()
    a = channel.subscribe("a")
    b = channel.subscribe("b")

    await channel.publish("a", _event(message="for a"))

    assert [e["message"] for e in await _drain(a)] == ["for a"]
    assert await _drain(b) == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_sse_stream_ends_after_terminal_event():
    channel = ProgressChannel()
    subscription = channel.subscribe("s1")

    await channel.publish("s1", _event(message="working"))
    await channel.publish(
        "s1", _event(ProgressStep.COMPLETE, ProgressStatus.COMPLETED, "Video ready!")
    )
    await channel.publish("s1", _event(message="after the end"))

    frames = [frame async for frame in sse_events(channel, subscription)]

    assert len(frames) == 2
    assert all(frame.startswith("data: ") and frame.endswith("\n\n") for frame in frames)
    assert json.loads(frames[1][len("data: "):])["step"] == "complete"
    assert not channel.has_subscriber("s1")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_subscriber_waits_for_events():
    channel = ProgressChannel()
    subscription = channel.subscribe("s1")

    async def publish_later():
        await asyncio.sleep(0)
        await channel.publish("s1", _event(ProgressStep.ERROR, ProgressStatus.FAILED, "boom"))

    task = asyncio.create_task(publish_later())
    frames = [frame async for frame in sse_events(channel, subscription)]
    await task

    assert json.loads(frames[0][len("data: "):]) == {
        "step": "error",
        "status": "failed",
        "message": "boom",
    }
