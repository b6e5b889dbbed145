"""
Retrieval: ranking, query handling and knowledge base statistics
"""

from domain.rag.retrieval.ranker import RetrievalRanker, relevance_percentage
from domain.rag.retrieval.query import clamp_limit, preprocess_query, sanitize_query
from domain.rag.retrieval.stats import count_documents, tabulate_sample
from domain.rag.retrieval.types import CollectionInfo, KnowledgeChunk

__all__ = [
    "CollectionInfo",
    "KnowledgeChunk",
    "RetrievalRanker",
    "clamp_limit",
    "count_documents",
    "preprocess_query",
    "relevance_percentage",
    "sanitize_query",
    "tabulate_sample",
]
