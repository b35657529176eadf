import asyncio
import importlib
from datetime import datetime, timezone

import pytest

from services.message_indexing.IndexingService import IndexingService
from shared.clients.embed.openrouter.EmbedClientOpenrouter import EmbedClientOpenrouter
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from shared.errors import RemoteServiceError, VectorDimensionError
from shared.models.indexing import IndexingJob


def _job(text, message_id="m1", role="user", extra_parts=()):
    parts = [{"type": "text", "text": text}] if text is not None else []
    parts.extend(extra_parts)
    return IndexingJob(message_id=message_id, chat_id="c1", user_id="u1", role=role, parts=parts)


def _process(config, transport, *jobs):
    async def scenario():
        rag_client = RAGClientQdrant(helper_config=config)
        embed_client = EmbedClientOpenrouter(helper_config=config)
        await rag_client.boot(transport=transport)
        await embed_client.boot(transport=transport)
        service = IndexingService(helper_config=config, rag_client=rag_client, embed_client=embed_client)
        try:
            return [await service.do_process_job(job) for job in jobs]
        finally:
            await rag_client.close()
            await embed_client.close()

    return asyncio.run(scenario())


def test_indexes_message_with_payload(config, transport, qdrant, provider):
    job = _job("I love hiking in the Alps", extra_parts=[{"type": "tool-search", "input": {}}])
    assert _process(config, transport, job) == [True]

    (point,) = qdrant.points().values()
    payload = point["payload"]
    assert payload["user_id"] == "u1"
    assert payload["chat_id"] == "c1"
    assert payload["message_id"] == "m1"
    assert payload["role"] == "user"
    assert payload["content_preview"] == "I love hiking in the Alps"
    assert payload["has_tool_calls"] is True
    assert datetime.fromisoformat(payload["timestamp"]).tzinfo is not None
    assert provider.requests == [["I love hiking in the Alps"]]


def test_short_message_is_skipped_without_side_effects(config, transport, qdrant, provider):
    assert _process(config, transport, _job("ok")) == [False]
    assert provider.call_count == 0
    assert qdrant.requests == []
    assert qdrant.collections == {}


def test_message_without_text_parts_is_skipped(config, transport, qdrant, provider):
    job = _job(None, extra_parts=[{"type": "file", "url": "https://example.com/x.png"}])
    assert _process(config, transport, job) == [False]
    assert provider.call_count == 0
    assert qdrant.requests == []


def test_minimum_length_is_inclusive(config, transport, qdrant):
    assert _process(config, transport, _job("0123456789"), _job("012345678", message_id="m2")) == [True, False]
    assert len(qdrant.points()) == 1


def test_preview_is_truncated(make_config, transport, qdrant):
    config = make_config(INDEX_PREVIEW_CHARS="20")
    _process(config, transport, _job("hiking " * 50))
    (point,) = qdrant.points().values()
    assert len(point["payload"]["content_preview"]) == 20


def test_reindexing_overwrites_previous_point(config, transport, qdrant):
    _process(config, transport, _job("I love hiking in the Alps"), _job("Actually I prefer pasta recipes"))
    (point,) = qdrant.points().values()
    assert point["payload"]["content_preview"] == "Actually I prefer pasta recipes"


def test_embedding_failure_leaves_store_untouched(config, transport, qdrant, provider):
    provider.fail_with = 500
    with pytest.raises(RemoteServiceError):
        _process(config, transport, _job("I love hiking in the Alps"))
    assert qdrant.points() == {}


def test_dimension_mismatch_is_reported(config, transport, qdrant, provider):
    provider.dimension_override = 4
    with pytest.raises(VectorDimensionError):
        _process(config, transport, _job("I love hiking in the Alps"))
    assert qdrant.points() == {}


def test_same_job_twice_keeps_one_point_with_latest_timestamp(config, transport, qdrant, monkeypatch):
    service_module = importlib.import_module("services.message_indexing.IndexingService")
    ticks = iter([
        datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc),
        datetime(2026, 3, 1, 11, 30, tzinfo=timezone.utc),
    ])

    class _Clock:
        @staticmethod
        def now(tz=None):
            return next(ticks)

    monkeypatch.setattr(service_module, "datetime", _Clock)
    job = _job("I love hiking in the Alps")

    assert _process(config, transport, job, job) == [True, True]
    (point,) = qdrant.points().values()
    assert point["payload"]["timestamp"] == "2026-03-01T11:30:00+00:00"
    assert point["payload"]["content_preview"] == "I love hiking in the Alps"
