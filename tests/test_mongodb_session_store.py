import asyncio
import os
import uuid

import pytest
import pytest_asyncio

from support_relay.api import RelayHub
from support_relay.relay_types import ConflictError

MONGODB_URI = os.environ.get("MONGODB_CONNECTION")
pytestmark = pytest.mark.skipif(not MONGODB_URI, reason="MONGODB_CONNECTION not set")


@pytest_asyncio.fixture
async def mongo_store():
    from support_relay.store import MongoDBSessionStore

    db_name = "test_support_relay"
    suffix = uuid.uuid4().hex[:8]
    store = MongoDBSessionStore(
        mongo_uri=MONGODB_URI,
        mongo_db=db_name,
        sessions_collection=f"sessions_test_{suffix}",
        messages_collection=f"messages_test_{suffix}",
    )
    await store.ping()
    await store.ensure_indexes()
    yield store
    # Cleanup
    await store._db.drop_collection(f"sessions_test_{suffix}")
    await store._db.drop_collection(f"messages_test_{suffix}")
    await store.close()


def _session(session_id="S1", status="waiting"):
    return {
        "id": session_id,
        "status": status,
        "userEmail": "a@x.com",
        "createdAt": "2024-01-01T00:00:00.000Z",
        "updatedAt": "2024-01-01T00:00:00.000Z",
    }


@pytest.mark.asyncio
async def test_insert_and_find_session(mongo_store):
    stored = await mongo_store.insert_session(_session())
    assert "_id" not in stored

    found = await mongo_store.find_session("S1")
    assert found == _session()
    assert await mongo_store.find_session("missing") is None

    with pytest.raises(ConflictError):
        await mongo_store.insert_session(_session())


@pytest.mark.asyncio
async def test_conditional_update(mongo_store):
    await mongo_store.insert_session(_session())

    assert await mongo_store.conditional_update_session("S1", "waiting", {"status": "active", "agentId": "A1"})
    assert not await mongo_store.conditional_update_session("S1", "waiting", {"status": "active", "agentId": "A2"})
    assert not await mongo_store.conditional_update_session("missing", "waiting", {"status": "active"})

    found = await mongo_store.find_session("S1")
    assert (found["status"], found["agentId"]) == ("active", "A1")

    assert await mongo_store.unconditional_update_session("S1", {"status": "closed"})
    assert not await mongo_store.unconditional_update_session("missing", {"status": "closed"})


@pytest.mark.asyncio
async def test_message_ids_are_unique_but_optional(mongo_store):
    message = {"id": "m1", "sessionId": "S1", "sender": "customer", "message": "hi",
               "createdAt": "t", "serverReceivedAt": "t"}
    await mongo_store.insert_message(message)
    with pytest.raises(ConflictError):
        await mongo_store.insert_message(message)
    assert (await mongo_store.find_message("m1"))["message"] == "hi"

    # Messages without id are not covered by the unique index
    anonymous = {k: v for k, v in message.items() if k != "id"}
    await mongo_store.insert_message(anonymous)
    await mongo_store.insert_message(anonymous)


@pytest.mark.asyncio
async def test_concurrent_claims_against_mongodb(mongo_store):
    hub = RelayHub(mongo_store)
    await hub.lifecycle.create("S1", "a@x.com")

    results = await asyncio.gather(
        *(hub.lifecycle.claim_by_agent("S1", f"A{i}", f"Agent {i}") for i in range(5)),
        return_exceptions=True,
    )

    winners = [r for r in results if not isinstance(r, Exception)]
    assert len(winners) == 1
    found = await mongo_store.find_session("S1")
    assert found["agentId"] == winners[0].agent_id
