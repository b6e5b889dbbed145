"""Retrieval service: search and stats over the in-memory chunk store."""

import pytest

from conftest import OTHER_OWNER, OWNER, make_chunk
from core.exceptions import DependencyError, NotFoundError, ValidationError


@pytest.fixture
async def agent(agent_store):
    return await agent_store.create_agent(owner_id=OWNER, name="Helpdesk", role="response")


@pytest.mark.asyncio
async def test_search_without_collection_returns_empty(retrieval_service, agent, chunk_store):
    result = await retrieval_service.search(agent.agent_id, "refund policy", owner_id=OWNER)

    assert result["results"] == []
    assert result["total_results"] == 0
    assert result["collection_exists"] is False
    assert result["total_points_in_collection"] == 0
    assert result["search_metadata"]["agent_name"] == "Helpdesk"
    assert chunk_store.queries == []


@pytest.mark.asyncio
async def test_search_with_empty_collection_returns_empty(retrieval_service, agent, chunk_store):
    chunk_store.collections[agent.agent_id] = []
    result = await retrieval_service.search(agent.agent_id, "refund policy")
    assert result["results"] == []
    assert result["collection_exists"] is True


@pytest.mark.asyncio
async def test_search_ranks_and_summarizes(retrieval_service, agent, chunk_store):
    chunk_store.seed(agent.agent_id, [
        make_chunk(0.61, title="FAQ", doc_type="url", index=0),
        make_chunk(0.8734, title="Policy", index=3, source="policy.pdf"),
        make_chunk(0.75, title="FAQ", doc_type="url", index=1),
    ])

    result = await retrieval_service.search(agent.agent_id, "  refund policy  ", limit="2", owner_id=OWNER)

    assert result["query"] == "refund policy"
    assert result["total_results"] == 2
    assert result["total_chunks"] == 3
    assert result["collection_exists"] is True
    top = result["results"][0]
    assert top["id"] == "doc-policy_3"
    assert top["relevance_percentage"] == 87
    assert top["chunk_index"] == 4
    assert top["rank"] == 1
    assert top["source"] == "policy.pdf"
    assert [g["title"] for g in result["document_summary"]] == ["Policy", "FAQ"]
    assert result["search_metadata"]["limit"] == 2
    assert result["search_metadata"]["agent_id"] == agent.agent_id


@pytest.mark.asyncio
@pytest.mark.parametrize("limit, expected", [(0, 5), (-5, 5), ("abc", 5), (9999, 20)])
async def test_search_clamps_limit(retrieval_service, agent, chunk_store, limit, expected):
    chunk_store.seed(agent.agent_id, [make_chunk(0.5, index=i) for i in range(30)])
    result = await retrieval_service.search(agent.agent_id, "anything useful", limit=limit)
    assert result["search_metadata"]["limit"] == expected
    assert result["total_results"] == expected
    assert chunk_store.queries[-1]["top_k"] == expected


@pytest.mark.asyncio
async def test_search_passes_filters(retrieval_service, agent, chunk_store):
    chunk_store.seed(agent.agent_id, [
        make_chunk(0.9, title="FAQ", doc_type="url"),
        make_chunk(0.8, title="Manual", doc_type="file"),
    ])
    result = await retrieval_service.search(agent.agent_id, "manual", filters={"documentType": "file"})
    assert [r["document_title"] for r in result["results"]] == ["Manual"]


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["", "   ", "<>", None])
async def test_search_rejects_empty_query_before_store_access(retrieval_service, agent, chunk_store, query):
    chunk_store.info_error = RuntimeError("must not be called")
    with pytest.raises(ValidationError) as exc_info:
        await retrieval_service.search(agent.agent_id, query)
    assert exc_info.value.code == "InvalidQuery"
    assert chunk_store.queries == []


@pytest.mark.asyncio
async def test_search_unknown_or_foreign_agent(retrieval_service, agent):
    with pytest.raises(NotFoundError):
        await retrieval_service.search("missing", "refund")
    with pytest.raises(NotFoundError):
        await retrieval_service.search(agent.agent_id, "refund", owner_id=OTHER_OWNER)


@pytest.mark.asyncio
async def test_search_store_failure_propagates(retrieval_service, agent, chunk_store):
    chunk_store.seed(agent.agent_id, [make_chunk(0.5)])
    chunk_store.query_error = ConnectionError("chroma down")
    with pytest.raises(DependencyError):
        await retrieval_service.search(agent.agent_id, "refund")


@pytest.mark.asyncio
async def test_stats_with_documents_and_chunks(retrieval_service, agent_store, agent, chunk_store):
    await agent_store.add_document(agent.agent_id, "file", "Manual")
    await agent_store.add_document(agent.agent_id, "url", "FAQ")
    chunk_store.seed(agent.agent_id, [
        make_chunk(0.9, title="Manual"),
        make_chunk(0.8, title="Manual", index=1),
        make_chunk(0.7, title="FAQ", doc_type="url"),
    ])

    stats = await retrieval_service.get_stats(agent.agent_id, owner_id=OWNER)

    assert stats["agent"] == {"id": agent.agent_id, "name": "Helpdesk"}
    assert stats["mongo_documents"] == {"total": 2, "by_type": {"file": 1, "url": 1, "website": 0}}
    assert stats["rag_collection"] == {
        "exists": True,
        "points_count": 3,
        "vectors_count": 3,
        "collection_name": f"agent_{agent.agent_id}",
    }
    assert stats["detailed"]["total_documents_with_chunks"] == 2
    assert stats["detailed"]["chunks_by_type"] == {"file": 2, "url": 1, "website": 0}
    assert stats["summary"] == {
        "mongo_documents_count": 2,
        "rag_chunks_count": 3,
        "rag_available": True,
        "documents_processed_into_rag": 2,
    }
    # Sample goes through the fetch path, not the clamped search
    assert chunk_store.queries[-1]["top_k"] == 50


@pytest.mark.asyncio
async def test_stats_sampling_failure_is_swallowed(retrieval_service, agent, chunk_store):
    chunk_store.seed(agent.agent_id, [make_chunk(0.9)])
    chunk_store.query_error = ConnectionError("timeout")

    stats = await retrieval_service.get_stats(agent.agent_id)

    assert stats["detailed"] is None
    assert stats["rag_collection"]["points_count"] == 1
    assert stats["summary"]["rag_available"] is True
    assert stats["summary"]["documents_processed_into_rag"] == 0


@pytest.mark.asyncio
async def test_stats_without_collection(retrieval_service, agent, chunk_store):
    stats = await retrieval_service.get_stats(agent.agent_id)
    assert stats["rag_collection"]["exists"] is False
    assert stats["rag_collection"]["collection_name"] is None
    assert stats["detailed"] is None
    assert stats["summary"]["rag_available"] is False
    assert chunk_store.queries == []


@pytest.mark.asyncio
async def test_stats_collection_metadata_failure_is_fatal(retrieval_service, agent, chunk_store):
    chunk_store.info_error = DependencyError("unreachable")
    with pytest.raises(DependencyError):
        await retrieval_service.get_stats(agent.agent_id)


@pytest.mark.asyncio
async def test_health(retrieval_service):
    assert await retrieval_service.health() == {"status": "ok", "chunk_store": True}
