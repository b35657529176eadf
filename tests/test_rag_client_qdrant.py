import asyncio
import uuid

import pytest

from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.rag.models.VectorPoint import MessageVectorPayload
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from shared.errors import RemoteServiceError, VectorDimensionError
from shared.models.search import SearchOptions
from tests.fakes import embed_text


def _payload(message_id, user_id="u1", chat_id="c1", role="user", timestamp="2026-03-01T10:00:00+00:00", text="hiking in the alps"):
    return MessageVectorPayload(
        user_id=user_id,
        chat_id=chat_id,
        message_id=message_id,
        role=role,
        timestamp=timestamp,
        content_preview=text,
    )


def _run(config, transport, steps):
    async def scenario():
        client = RAGClientQdrant(helper_config=config)
        await client.boot(transport=transport)
        try:
            return await steps(client)
        finally:
            await client.close()

    return asyncio.run(scenario())


async def _index(client, message_id, text, **payload_fields):
    await client.do_ensure_collection()
    return await client.do_upsert_point(message_id, embed_text(text), _payload(message_id, text=text, **payload_fields))


def test_manager_builds_qdrant_client(config):
    client = RAGClientManager(helper_config=config).get_client()
    assert isinstance(client, RAGClientQdrant)
    assert client.get_collection_name() == "chat_messages"
    assert client.get_vector_size() == 8


def test_ensure_collection_creates_once_with_indexes(config, transport, qdrant):
    async def steps(client):
        return await client.do_ensure_collection(), await client.do_ensure_collection()

    first, second = _run(config, transport, steps)
    assert (first, second) == (True, False)
    collection = qdrant.collections["chat_messages"]
    assert collection["size"] == 8
    assert collection["indexes"] == {"user_id": "keyword", "chat_id": "keyword", "timestamp": "datetime"}
    creates = [m for m in qdrant.mutations() if m == ("PUT", "/collections/chat_messages")]
    assert len(creates) == 1


def test_ensure_collection_tolerates_concurrent_creation(config, transport, qdrant):
    async def steps(client):
        original = client.do_existence_check
        calls = {"n": 0}

        # first check misses, then another writer creates the collection
        async def racing_check():
            calls["n"] += 1
            if calls["n"] == 1:
                qdrant.collections["chat_messages"] = {"size": 8, "points": {}, "indexes": {}}
                return False
            return await original()

        client.do_existence_check = racing_check
        return await client.do_ensure_collection()

    assert _run(config, transport, steps) is False


def test_ensure_collection_propagates_unavailable_store(config, transport, qdrant):
    qdrant.fail_with = 503
    with pytest.raises(RemoteServiceError):
        _run(config, transport, lambda client: client.do_ensure_collection())


def test_upsert_same_message_overwrites_point(config, transport, qdrant):
    async def steps(client):
        await _index(client, "msg-1", "hiking in the alps")
        await _index(client, "msg-1", "pasta recipe for dinner")

    _run(config, transport, steps)
    points = qdrant.points()
    assert len(points) == 1
    (stored,) = points.values()
    assert stored["payload"]["content_preview"] == "pasta recipe for dinner"
    assert stored["payload"]["message_id"] == "msg-1"


def test_upsert_rejects_wrong_dimension_before_sending(config, transport, qdrant):
    async def steps(client):
        await client.do_ensure_collection()
        await client.do_upsert_point("msg-1", [0.1, 0.2, 0.3], _payload("msg-1"))

    with pytest.raises(VectorDimensionError) as excinfo:
        _run(config, transport, steps)
    assert (excinfo.value.expected, excinfo.value.actual) == (8, 3)
    assert qdrant.points() == {}


def test_upsert_rejects_mismatched_payload_message_id(config, transport):
    async def steps(client):
        await client.do_upsert_point("msg-1", embed_text("hiking"), _payload("msg-2"))

    with pytest.raises(ValueError):
        _run(config, transport, steps)


def test_point_id_mapping_is_deterministic(config):
    client = RAGClientQdrant(helper_config=config)
    message_uuid = "3f2504e0-4f89-11d3-9a0c-0305e82c3301"
    assert client.get_point_id(message_uuid) == message_uuid
    assert client.get_point_id("12345") == 12345
    derived = client.get_point_id("msg-abc")
    assert derived == client.get_point_id("msg-abc")
    assert derived != client.get_point_id("msg-abd")
    uuid.UUID(derived)


def test_point_id_mapping_is_one_to_one(config):
    client = RAGClientQdrant(helper_config=config)
    assert client.get_point_id("7") == 7
    # leading zeros and other spellings of the same value get their own point
    assert client.get_point_id("007") not in (7, client.get_point_id("7"))
    uuid.UUID(client.get_point_id("007"))
    upper = "3F2504E0-4F89-11D3-9A0C-0305E82C3301"
    assert client.get_point_id(upper) != client.get_point_id(upper.lower())
    # beyond the unsigned 64-bit range Qdrant accepts
    assert client.get_point_id(str(2 ** 64 - 1)) == 2 ** 64 - 1
    too_big = client.get_point_id(str(2 ** 64))
    assert isinstance(too_big, str)
    uuid.UUID(too_big)


def test_distinct_numeric_ids_keep_separate_points(config, transport, qdrant):
    async def steps(client):
        await _index(client, "7", "hiking in the alps")
        await _index(client, "007", "pasta recipe for dinner")
        await _index(client, str(2 ** 64), "paris france")
        await client.do_delete_by_message_id("7")

    _run(config, transport, steps)
    stored = sorted(point["payload"]["message_id"] for point in qdrant.points().values())
    assert stored == ["007", str(2 ** 64)]


def test_failed_payload_indexes_are_created_on_next_ensure(config, qdrant):
    import httpx

    from tests.fakes import FakeEmbeddingProvider, make_transport

    inner = make_transport(qdrant, FakeEmbeddingProvider())
    outage = {"index": True}

    async def handler(request):
        if outage["index"] and request.method == "PUT" and request.url.path.endswith("/index"):
            return httpx.Response(503, json={"status": {"error": "unavailable"}})
        return await inner.handle_async_request(request)

    async def steps(client):
        with pytest.raises(RemoteServiceError):
            await client.do_ensure_collection()
        outage["index"] = False
        second = await client.do_ensure_collection()
        third = await client.do_ensure_collection()
        return second, third

    second, third = _run(config, httpx.MockTransport(handler), steps)
    assert (second, third) == (False, False)
    assert qdrant.collections["chat_messages"]["indexes"] == {
        "user_id": "keyword", "chat_id": "keyword", "timestamp": "datetime",
    }
    index_puts = [m for m in qdrant.requests if m == ("PUT", "/collections/chat_messages/index")]
    # three from the repair, none once all indexes exist
    assert len(index_puts) == 3


def test_search_after_chat_delete_returns_only_other_chats(config, transport):
    async def steps(client):
        await _index(client, "a", "hiking in the alps", chat_id="c1")
        await _index(client, "b", "hiking trip", chat_id="c1")
        await _index(client, "c", "mountain hiking", chat_id="c2")
        await client.do_delete_by_chat_id("c1")
        return await client.do_search(embed_text("hiking"), "u1", SearchOptions(score_threshold=0.5))

    hits = _run(config, transport, steps)
    assert [hit.message_id for hit in hits] == ["c"]

def test_search_is_scoped_to_user(config, transport):
    async def steps(client):
        await _index(client, "m-u1", "hiking in the alps", user_id="u1")
        await _index(client, "m-u2", "hiking in the alps", user_id="u2")
        return await client.do_search(embed_text("mountain trips"), "u1", SearchOptions(score_threshold=0.5))

    hits = _run(config, transport, steps)
    assert [hit.message_id for hit in hits] == ["m-u1"]
    assert all(hit.payload.user_id == "u1" for hit in hits)


def test_search_applies_threshold_limit_and_order(config, transport):
    async def steps(client):
        await _index(client, "exact", "hiking alps")
        await _index(client, "partial", "hiking alps pasta")
        await _index(client, "unrelated", "paris france")
        return await client.do_search(embed_text("hiking in the mountains"), "u1", SearchOptions(limit=5, score_threshold=0.7))

    hits = _run(config, transport, steps)
    assert [hit.message_id for hit in hits] == ["exact", "partial"]
    assert hits[0].score >= hits[1].score >= 0.7


def test_search_filters_by_chat_role_and_time(config, transport):
    async def steps(client):
        await _index(client, "early", "hiking trip", chat_id="c1", timestamp="2026-01-01T00:00:00+00:00")
        await _index(client, "late", "hiking trip", chat_id="c1", timestamp="2026-06-01T00:00:00+00:00")
        await _index(client, "other-chat", "hiking trip", chat_id="c2", timestamp="2026-06-01T00:00:00+00:00")
        await _index(client, "assistant", "hiking trip", chat_id="c1", role="assistant", timestamp="2026-06-01T00:00:00+00:00")
        options = SearchOptions(
            score_threshold=0.5,
            chat_id="c1",
            role="user",
            after_timestamp="2026-03-01T00:00:00+00:00",
        )
        return await client.do_search(embed_text("hiking"), "u1", options)

    hits = _run(config, transport, steps)
    assert [hit.message_id for hit in hits] == ["late"]


def test_search_filter_always_starts_with_user(config):
    client = RAGClientQdrant(helper_config=config)
    flt = client.build_search_filter(
        "u1", SearchOptions(after_timestamp="2026-01-01T00:00:00Z", before_timestamp="2026-02-01T00:00:00Z"),
    )
    assert flt["must"][0] == {"key": "user_id", "match": {"value": "u1"}}
    assert flt["must"][1] == {
        "key": "timestamp",
        "range": {"gte": "2026-01-01T00:00:00Z", "lte": "2026-02-01T00:00:00Z"},
    }
    with pytest.raises(ValueError):
        client.build_search_filter("", SearchOptions())


def test_delete_by_message_chat_and_user(config, transport, qdrant):
    async def steps(client):
        await _index(client, "a", "hiking", user_id="u1", chat_id="c1")
        await _index(client, "b", "hiking", user_id="u1", chat_id="c2")
        await _index(client, "c", "hiking", user_id="u1", chat_id="c2")
        await _index(client, "d", "hiking", user_id="u2", chat_id="c3")

        await client.do_delete_by_message_id("a")
        after_message = {p["payload"]["message_id"] for p in qdrant.points().values()}
        await client.do_delete_by_chat_id("c2")
        after_chat = {p["payload"]["message_id"] for p in qdrant.points().values()}
        await client.do_delete_by_user_id("u2")
        return after_message, after_chat

    after_message, after_chat = _run(config, transport, steps)
    assert after_message == {"b", "c", "d"}
    assert after_chat == {"d"}
    assert qdrant.points() == {}


def test_bulk_delete_requires_an_id(config, transport):
    with pytest.raises(ValueError):
        _run(config, transport, lambda client: client.do_delete_by_user_id(""))
