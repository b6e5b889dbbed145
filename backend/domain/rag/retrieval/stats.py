"""
Knowledge base statistics: document counts and chunk sample tabulation
"""

from typing import Any, Dict, List
from domain.pipeline.types import AgentDocument, DOCUMENT_TYPES
from domain.rag.retrieval.types import KnowledgeChunk


def count_documents(documents: List[AgentDocument]) -> Dict[str, Any]:
    """Documents the agent record says were added, by type."""
    by_type = {doc_type: 0 for doc_type in DOCUMENT_TYPES}
    for document in documents:
        by_type[document.type] = by_type.get(document.type, 0) + 1
    return {"total": len(documents), "by_type": by_type}


def tabulate_sample(chunks: List[KnowledgeChunk]) -> Dict[str, Any]:
    """Chunk counts by document type and by (type, title) over a chunk sample."""
    chunks_by_type = {doc_type: 0 for doc_type in DOCUMENT_TYPES}
    chunks_by_document: Dict[tuple, int] = {}

    for chunk in chunks:
        chunks_by_type[chunk.document_type] = chunks_by_type.get(chunk.document_type, 0) + 1
        key = (chunk.document_type, chunk.document_title)
        chunks_by_document[key] = chunks_by_document.get(key, 0) + 1

    return {
        "chunks_by_type": chunks_by_type,
        "total_documents_with_chunks": len(chunks_by_document),
        "document_chunk_counts": [
            {"type": doc_type, "title": title, "chunks": count}
            for (doc_type, title), count in chunks_by_document.items()
        ],
    }
