import pytest

from support_relay.relay_types import ConflictError, StoreFailureError
from support_relay.store import MemorySessionStore, guard_store


def _session(session_id="S1", status="waiting"):
    return {"id": session_id, "status": status, "userEmail": "a@x.com",
            "createdAt": "2024-01-01T00:00:00.000Z", "updatedAt": "2024-01-01T00:00:00.000Z"}


@pytest.mark.asyncio
async def test_session_documents_are_copies(store):
    doc = _session()
    await store.insert_session(doc)
    doc["status"] = "closed"

    found = await store.find_session("S1")
    assert found["status"] == "waiting"
    found["status"] = "closed"
    assert (await store.find_session("S1"))["status"] == "waiting"


@pytest.mark.asyncio
async def test_duplicate_session_id(store):
    await store.insert_session(_session())
    with pytest.raises(ConflictError):
        await store.insert_session(_session(status="active"))
    assert store.session_count == 1


@pytest.mark.asyncio
async def test_conditional_update_matches_status(store):
    await store.insert_session(_session())

    assert await store.conditional_update_session("S1", "waiting", {"status": "active", "agentId": "A1"})
    assert not await store.conditional_update_session("S1", "waiting", {"status": "active", "agentId": "A2"})
    assert not await store.conditional_update_session("missing", "waiting", {"status": "active"})
    assert (await store.find_session("S1"))["agentId"] == "A1"


@pytest.mark.asyncio
async def test_unconditional_update(store):
    await store.insert_session(_session())
    assert await store.unconditional_update_session("S1", {"status": "closed"})
    assert not await store.unconditional_update_session("missing", {"status": "closed"})
    assert (await store.find_session("S1"))["status"] == "closed"


@pytest.mark.asyncio
async def test_messages(store):
    await store.insert_message({"id": "m1", "sessionId": "S1", "message": "one"})
    await store.insert_message({"sessionId": "S1", "message": "two"})
    await store.insert_message({"sessionId": "S1", "message": "two"})
    await store.insert_message({"id": "m2", "sessionId": "S2", "message": "other"})

    with pytest.raises(ConflictError):
        await store.insert_message({"id": "m1", "sessionId": "S1", "message": "again"})

    assert (await store.find_message("m1"))["message"] == "one"
    assert await store.find_message("missing") is None
    assert [m["message"] for m in store.messages_for_session("S1")] == ["one", "two", "two"]


@pytest.mark.asyncio
async def test_close_is_a_no_op():
    store = MemorySessionStore()
    await store.close()
    await store.insert_session(_session())
    assert store.session_count == 1


class _TimingOutStore(MemorySessionStore):
    async def insert_message(self, doc: dict) -> dict:
        raise TimeoutError("write timed out")


@pytest.mark.asyncio
async def test_guarded_store_translates_backend_errors():
    guarded = guard_store(_TimingOutStore())

    with pytest.raises(StoreFailureError, match="write timed out") as exc_info:
        await guarded.insert_message({"id": "m1", "sessionId": "S1", "message": "hi"})
    assert isinstance(exc_info.value.__cause__, TimeoutError)


@pytest.mark.asyncio
async def test_guarded_store_passes_relay_errors_through(store):
    guarded = guard_store(store)
    assert guard_store(guarded) is guarded

    await guarded.insert_session(_session())
    with pytest.raises(ConflictError):
        await guarded.insert_session(_session())
    assert (await guarded.find_session("S1"))["status"] == "waiting"
