"""
Ranking of chunk hits into search results and per-document summaries
"""

import math
from typing import Any, Dict, List
from domain.rag.retrieval.types import KnowledgeChunk


def relevance_percentage(score: float) -> int:
    """Score in [0, 1] as a whole percentage, halves rounded up (0.8734 -> 87)."""
    return int(math.floor(score * 100 + 0.5))


class RetrievalRanker:
    """Orders chunk hits, scores them as percentages and groups them by document"""

    def rank(self, chunks: List[KnowledgeChunk], limit: int) -> List[Dict[str, Any]]:
        """
        Turn chunk hits into ranked search results.

        Args:
            chunks: Hits from the chunk store
            limit: Maximum number of results (already clamped by the caller)

        Returns:
            List of result dicts, best first. Each contains:
            - 'id': str - "<documentId>_<chunkIndex>" (0-based index)
            - 'text', 'score', 'relevance_percentage'
            - 'document_title', 'document_type', 'source', 'language'
            - 'chunk_index': int - 1-based position within the document
            - 'rank': int - 1-based position in this result list
        """
        # Stable sort: equal scores keep the store's order
        ordered = sorted(chunks, key=lambda c: c.score, reverse=True)[:limit]

        return [
            {
                "id": f"{chunk.document_id}_{chunk.chunk_index}",
                "text": chunk.text,
                "score": chunk.score,
                "relevance_percentage": relevance_percentage(chunk.score),
                "document_title": chunk.document_title,
                "document_type": chunk.document_type,
                "chunk_index": chunk.chunk_index + 1,
                "source": chunk.source,
                "language": chunk.language,
                "rank": position,
            }
            for position, chunk in enumerate(ordered, start=1)
        ]

    def summarize_documents(self, results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Group ranked results by (document_title, document_type).

        Groups come out in order of first occurrence in `results`.
        """
        groups: Dict[tuple, Dict[str, Any]] = {}
        for result in results:
            key = (result["document_title"], result["document_type"])
            if key not in groups:
                groups[key] = {
                    "title": result["document_title"],
                    "type": result["document_type"],
                    "source": result["source"],
                    "chunks": 0,
                    "best_score": 0.0,
                }
            group = groups[key]
            group["chunks"] += 1
            group["best_score"] = max(group["best_score"], result["score"])
        return list(groups.values())
