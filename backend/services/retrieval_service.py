"""
Retrieval service - orchestrates knowledge search: sanitize → chunk store query → ranking
"""

import logging
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional
from domain.pipeline.types import Agent
from domain.rag.retrieval import (
    KnowledgeChunk,
    RetrievalRanker,
    clamp_limit,
    count_documents,
    sanitize_query,
    tabulate_sample,
)
from storage.base import BaseAgentStore, BaseChunkStore
from services.base import BaseService
from core.config import settings
from core.exceptions import DependencyError, InboxAgentsException, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class RetrievalService(BaseService):
    """
    Orchestrates retrieval against an agent's knowledge collection.

    Search: sanitize query → check collection → query chunk store → rank → group by document.
    Stats: reconcile the agent's document list with chunk store metadata and a chunk sample.
    """

    def __init__(
        self,
        chunk_store: BaseChunkStore,
        agent_store: BaseAgentStore,
        ranker: Optional[RetrievalRanker] = None
    ):
        self.chunk_store = chunk_store
        self.agent_store = agent_store
        self.ranker = ranker or RetrievalRanker()

    async def _get_agent(self, agent_id: str, owner_id: Optional[str]) -> Agent:
        agent = await self.agent_store.get_agent(agent_id)
        if agent is None or (owner_id is not None and agent.owner_id != owner_id):
            raise NotFoundError("Agent not found", code="AgentNotFound", details={"agentId": agent_id})
        return agent

    async def fetch_chunks(
        self,
        agent_id: str,
        text: str,
        top_k: int,
        filter: Optional[Dict[str, Any]] = None
    ) -> List[KnowledgeChunk]:
        """
        Raw chunk hits for a query, best first.

        Not subject to the search limit clamp; callers choose top_k.
        """
        try:
            return await self.chunk_store.query(agent_id, text, top_k=top_k, filter=filter)
        except InboxAgentsException:
            raise
        except Exception as e:
            logger.error(f"Error fetching chunks for agent {agent_id}: {e}")
            raise DependencyError(f"Chunk store query failed: {e}", code="ChunkStoreUnavailable")

    async def search(
        self,
        agent_id: str,
        query: Any,
        limit: Any = None,
        filters: Optional[Dict[str, Any]] = None,
        owner_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Semantic search in an agent's knowledge base.

        Args:
            agent_id: Agent whose collection is searched
            query: Raw query text; sanitized before use
            limit: Requested number of results; clamped to [1, max], never rejected
            filters: Optional {"documentType": ..., "language": ...}
            owner_id: Caller; when given, the agent must belong to them

        Returns:
            Dict with 'query', 'results', 'total_results', 'total_chunks',
            'collection_exists', 'document_summary' and 'search_metadata'.

        Raises:
            ValidationError: Query is empty after sanitizing
            NotFoundError: Agent missing or not the caller's
            DependencyError: Chunk store failed
        """
        cleaned = sanitize_query(query)
        if not cleaned:
            raise ValidationError("Search query is required", code="InvalidQuery")
        limit = clamp_limit(limit)

        agent = await self._get_agent(agent_id, owner_id)
        info = await self.chunk_store.collection_info(agent_id)

        search_metadata = {
            "limit": limit,
            "agent_id": agent_id,
            "agent_name": agent.name,
            "searched_at": datetime.now(timezone.utc).isoformat(),
        }

        if not info.exists or info.points_count == 0:
            logger.info(f"No indexed chunks for agent {agent_id}; returning empty search result")
            return {
                "query": cleaned,
                "results": [],
                "total_results": 0,
                "total_chunks": info.points_count,
                "collection_exists": info.exists,
                "total_points_in_collection": info.points_count,
                "document_summary": [],
                "search_metadata": search_metadata,
            }

        chunks = await self.fetch_chunks(agent_id, cleaned, top_k=limit, filter=filters)
        results = self.ranker.rank(chunks, limit)
        logger.info(f"Search for agent {agent_id} returned {len(results)} results")

        return {
            "query": cleaned,
            "results": results,
            "total_results": len(results),
            "total_chunks": info.points_count,
            "collection_exists": True,
            "total_points_in_collection": info.points_count,
            "document_summary": self.ranker.summarize_documents(results),
            "search_metadata": search_metadata,
        }

    async def get_stats(self, agent_id: str, owner_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Knowledge base statistics for an agent.

        The detailed chunk breakdown is best-effort: if sampling fails it is
        logged and returned as None. Collection metadata failures propagate.
        """
        agent = await self._get_agent(agent_id, owner_id)
        documents = count_documents(agent.documents)

        info = await self.chunk_store.collection_info(agent_id)
        rag_collection = {
            "exists": info.exists,
            "points_count": info.points_count,
            "vectors_count": info.vectors_count,
            "collection_name": self.chunk_store.collection_name(agent_id) if info.exists else None,
        }

        detailed = None
        if info.exists and info.points_count > 0:
            try:
                sample = await self.fetch_chunks(
                    agent_id,
                    settings.rag_stats_sample_query,
                    top_k=settings.rag_stats_sample_size,
                )
                detailed = tabulate_sample(sample)
            except Exception as e:
                logger.warning(f"Could not get detailed chunk stats for agent {agent_id}: {e}")

        return {
            "agent": {"id": agent.agent_id, "name": agent.name},
            "mongo_documents": documents,
            "rag_collection": rag_collection,
            "detailed": detailed,
            "summary": {
                "mongo_documents_count": documents["total"],
                "rag_chunks_count": info.points_count,
                "rag_available": info.exists and info.points_count > 0,
                "documents_processed_into_rag": detailed["total_documents_with_chunks"] if detailed else 0,
            },
        }

    async def health(self) -> Dict[str, Any]:
        healthy = await self.chunk_store.heartbeat()
        return {"status": "ok" if healthy else "unavailable", "chunk_store": healthy}
