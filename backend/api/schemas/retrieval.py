"""
Pydantic models for retrieval endpoints
"""

from typing import List, Dict, Any, Optional
from pydantic import Field
from api.schemas.base import CamelModel


class SearchFilters(CamelModel):
    """Optional metadata restrictions on a search"""
    document_type: Optional[str] = None
    language: Optional[str] = None


class SearchRequest(CamelModel):
    """
    Request for knowledge search.

    query and limit are loosely typed: the service sanitizes the query and
    clamps the limit instead of rejecting odd values.
    """
    query: Any = None
    limit: Any = None
    filters: Optional[SearchFilters] = None


class SearchResult(CamelModel):
    """Single ranked chunk"""
    id: str
    text: str
    score: float
    relevance_percentage: int
    document_title: str
    document_type: str
    chunk_index: int
    source: Optional[str] = None
    language: Optional[str] = None
    rank: int


class DocumentSummary(CamelModel):
    """Results grouped by source document"""
    title: str
    type: str
    source: Optional[str] = None
    chunks: int
    best_score: float


class SearchMetadata(CamelModel):
    limit: int
    agent_id: str
    agent_name: str
    searched_at: str


class SearchResponse(CamelModel):
    """Response from search"""
    query: str
    results: List[SearchResult]
    total_results: int
    total_chunks: int
    collection_exists: bool
    total_points_in_collection: int
    document_summary: List[DocumentSummary]
    search_metadata: SearchMetadata


class AgentRef(CamelModel):
    id: str
    name: str


class DocumentCounts(CamelModel):
    total: int
    by_type: Dict[str, int]


class RagCollectionInfo(CamelModel):
    exists: bool
    points_count: int
    vectors_count: int
    collection_name: Optional[str] = None


class DocumentChunkCount(CamelModel):
    type: str
    title: str
    chunks: int


class DetailedStats(CamelModel):
    chunks_by_type: Dict[str, int]
    total_documents_with_chunks: int
    document_chunk_counts: List[DocumentChunkCount]


class StatsSummary(CamelModel):
    mongo_documents_count: int
    rag_chunks_count: int
    rag_available: bool
    documents_processed_into_rag: int = Field(alias="documentsProcessedIntoRAG")


class StatsResponse(CamelModel):
    """Knowledge base statistics for one agent"""
    agent: AgentRef
    mongo_documents: DocumentCounts
    rag_collection: RagCollectionInfo
    detailed: Optional[DetailedStats] = None
    summary: StatsSummary


class HealthResponse(CamelModel):
    status: str
    chunk_store: bool
