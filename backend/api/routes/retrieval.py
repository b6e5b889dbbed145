"""
Agent knowledge search and statistics endpoints
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Path, status
from api.dependencies import get_current_user_id, get_retrieval_service
from api.errors import to_http_exception
from api.schemas.retrieval import HealthResponse, SearchRequest, SearchResponse, StatsResponse
from services.retrieval_service import RetrievalService
from core.exceptions import InboxAgentsException

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["retrieval"])


@router.post("/agents/{agent_id}/rag/search", response_model=SearchResponse)
async def search_agent_knowledge(
    request: SearchRequest,
    agent_id: str = Path(..., description="Agent whose knowledge base is searched"),
    user_id: str = Depends(get_current_user_id),
    retrieval_service: RetrievalService = Depends(get_retrieval_service)
):
    """
    Semantic search in an agent's knowledge base.

    Args:
        request: SearchRequest containing:
            - query: Search text (sanitized; empty after sanitizing is a 400)
            - limit: Number of results, clamped to 1..20 (default 5)
            - filters: Optional documentType / language restriction

    Returns:
        Ranked results with relevance percentages, a per-document summary and
        search metadata. An agent without indexed chunks gets an empty result,
        not an error.
    """
    try:
        filters = request.filters.model_dump(by_alias=True, exclude_none=True) if request.filters else None
        result = await retrieval_service.search(
            agent_id,
            request.query,
            limit=request.limit,
            filters=filters or None,
            owner_id=user_id,
        )
        return SearchResponse(**result)
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error searching agent {agent_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to search knowledge base"
        )


@router.get("/agents/{agent_id}/rag/stats", response_model=StatsResponse)
async def get_agent_knowledge_stats(
    agent_id: str = Path(..., description="Agent ID"),
    user_id: str = Depends(get_current_user_id),
    retrieval_service: RetrievalService = Depends(get_retrieval_service)
):
    """
    Knowledge base statistics: documents recorded on the agent, chunk
    collection metadata and (best-effort) a chunk breakdown by document.
    """
    try:
        result = await retrieval_service.get_stats(agent_id, owner_id=user_id)
        return StatsResponse(**result)
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error getting stats for agent {agent_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get knowledge base stats"
        )


@router.get("/rag/health", response_model=HealthResponse)
async def rag_health(
    retrieval_service: RetrievalService = Depends(get_retrieval_service)
):
    """Chunk store heartbeat"""
    result = await retrieval_service.health()
    return HealthResponse(**result)
