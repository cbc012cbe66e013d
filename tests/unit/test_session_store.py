"""Unit tests for the in-memory and SQLite session stores."""

import asyncio
from datetime import datetime, timedelta

import pytest
import pytest_asyncio

from api.session_store import InMemorySessionStore, SqliteSessionStore, build_session_store
from models.script import Scene, Script
from models.session import RequestParams, Session, SessionState


def _waiting_session(age_seconds: int = 0) -> Session:
    session = Session(params=RequestParams.from_payload({"topic": "Volcanoes", "preview": True}))
    session.advance(SessionState.SCRIPT_PENDING)
    session.script = Script("volcanoes", [Scene(["Volcano at dawn"], "Magma rises.", 1)])
    session.advance(SessionState.SCRIPT_READY)
    session.advance(SessionState.PREVIEW_WAITING)
    session.updated_at = datetime.now() - timedelta(seconds=age_seconds)
    return session


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def store(request, temp_dir):
    if request.param == "memory":
        store = InMemorySessionStore()
    else:
        store = SqliteSessionStore(str(temp_dir / "db" / "sessions.db"))
    await store.connect()
    yield store
    await store.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_put_get_delete(store):
    session = _waiting_session()
    await store.put(session)

    loaded = await store.get(session.session_id)
    assert loaded.session_id == session.session_id
    assert loaded.state == SessionState.PREVIEW_WAITING
    assert loaded.script.scenes[0].narration_text == "Magma rises."

    assert await store.delete(session.session_id) is True
    assert await store.get(session.session_id) is None
    assert await store.delete(session.session_id) is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_take_pending_only_once(store):
    session = _waiting_session()
    await store.put(session)

    taken = await store.take_pending(session.session_id)

    assert taken is not None
    assert taken.session_id == session.session_id
    assert await store.take_pending(session.session_id) is None
    assert await store.get(session.session_id) is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_concurrent_takes_have_one_winner(store):
    session = _waiting_session()
    await store.put(session)

    results = await asyncio.gather(
        *(store.take_pending(session.session_id) for _ in range(5))
    )

    assert sum(result is not None for result in results) == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_take_pending_ignores_running_sessions(store):
    session = Session(params=RequestParams.from_payload({"topic": "Volcanoes"}))
    session.advance(SessionState.SCRIPT_PENDING)
    await store.put(session)

    assert await store.take_pending(session.session_id) is None
    assert await store.get(session.session_id) is not None
    assert await store.take_pending("unknown") is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_expire_pending(store):
    old = _waiting_session(age_seconds=3600)
    fresh = _waiting_session(age_seconds=10)
    await store.put(old)
    await store.put(fresh)

    assert await store.expire_pending(600) == 1
    assert await store.get(old.session_id) is None
    assert await store.get(fresh.session_id) is not None


@pytest.mark.unit
def test_build_session_store(temp_dir):
    assert isinstance(build_session_store({}), InMemorySessionStore)
    store = build_session_store({"session_store_path": str(temp_dir / "s.db")})
    assert isinstance(store, SqliteSessionStore)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_sqlite_requires_connect(temp_dir):
    store = SqliteSessionStore(str(temp_dir / "s.db"))
    with pytest.raises(RuntimeError, match="connect"):
        await store.get("x")
