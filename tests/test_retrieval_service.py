import asyncio

from services.message_indexing.IndexingService import IndexingService
from services.message_indexing.RetrievalService import RetrievalService
from shared.clients.embed.openrouter.EmbedClientOpenrouter import EmbedClientOpenrouter
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from shared.models.indexing import IndexingJob
from shared.models.search import SearchOptions, SearchRequest, TimeRange


def _job(text, message_id, user_id="u1", chat_id="c1"):
    return IndexingJob(message_id=message_id, chat_id=chat_id, user_id=user_id, role="user", parts=[{"type": "text", "text": text}])


def _run(config, transport, jobs, steps):
    async def scenario():
        rag_client = RAGClientQdrant(helper_config=config)
        embed_client = EmbedClientOpenrouter(helper_config=config)
        await rag_client.boot(transport=transport)
        await embed_client.boot(transport=transport)
        indexing = IndexingService(helper_config=config, rag_client=rag_client, embed_client=embed_client)
        retrieval = RetrievalService(helper_config=config, rag_client=rag_client, embed_client=embed_client)
        try:
            for job in jobs:
                await indexing.do_process_job(job)
            return await steps(retrieval)
        finally:
            await rag_client.close()
            await embed_client.close()

    return asyncio.run(scenario())


def test_finds_semantically_related_message(config, transport):
    jobs = [_job("I love hiking in the Alps", "m1"), _job("What is the capital of France?", "m2")]
    hits = _run(config, transport, jobs, lambda retrieval: retrieval.do_retrieve("mountain trips", "u1"))
    assert [hit.message_id for hit in hits] == ["m1"]
    assert hits[0].score >= 0.7
    assert hits[0].payload.content_preview == "I love hiking in the Alps"


def test_never_returns_other_users_messages(config, transport):
    jobs = [_job("I love hiking in the Alps", "m1", user_id="u1")]
    hits = _run(config, transport, jobs, lambda retrieval: retrieval.do_retrieve("mountain trips", "u2"))
    assert hits == []


def test_retrieve_on_fresh_store_creates_collection(config, transport, qdrant):
    hits = _run(config, transport, [], lambda retrieval: retrieval.do_retrieve("anything about hiking", "u1"))
    assert hits == []
    assert "chat_messages" in qdrant.collections


def test_retrieve_honours_explicit_options(config, transport):
    jobs = [_job("hiking trip", f"m{i}", chat_id="c1" if i % 2 else "c2") for i in range(6)]
    options = SearchOptions(limit=2, score_threshold=0.5, chat_id="c1")
    hits = _run(config, transport, jobs, lambda retrieval: retrieval.do_retrieve("hiking", "u1", options))
    assert len(hits) == 2
    assert all(hit.payload.chat_id == "c1" for hit in hits)


def test_search_history_returns_rounded_scores(config, transport):
    jobs = [_job("I love hiking in the Alps", "m1"), _job("hiking alps and pasta", "m2")]
    request = SearchRequest(query="mountain trips", user_id="u1", limit=5)
    response = _run(config, transport, jobs, lambda retrieval: retrieval.do_search_history(request))
    assert response.success is True
    assert response.total == 2
    assert [item.message_id for item in response.results] == ["m1", "m2"]
    for item in response.results:
        assert item.relevance_score == round(item.relevance_score, 2)
        assert item.relevance_score >= 0.65
    assert response.results[0].content == "I love hiking in the Alps"


def test_search_history_reports_no_results(config, transport):
    request = SearchRequest(query="photosynthesis in plants", user_id="u1")
    response = _run(config, transport, [_job("I love hiking in the Alps", "m1")], lambda retrieval: retrieval.do_search_history(request))
    assert response.success is True
    assert response.results == []
    assert response.message == "No relevant past conversations found."


def test_search_history_applies_time_range(config, transport):
    request = SearchRequest(
        query="mountain trips",
        user_id="u1",
        time_range=TimeRange(before="2000-01-01T00:00:00+00:00"),
    )
    response = _run(config, transport, [_job("I love hiking in the Alps", "m1")], lambda retrieval: retrieval.do_search_history(request))
    assert response.total == 0


def test_search_history_degrades_when_provider_fails(config, transport, provider):
    provider.fail_with = 503
    request = SearchRequest(query="mountain trips", user_id="u1")
    response = _run(config, transport, [], lambda retrieval: retrieval.do_search_history(request))
    assert response.success is False
    assert response.message == "Failed to search past conversations."
    assert response.results == []
    assert response.total == 0
