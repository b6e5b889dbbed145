"""
Retrieval data types
"""

from typing import Optional
from pydantic import BaseModel, Field


class KnowledgeChunk(BaseModel):
    """
    One chunk hit from the chunk store.

    Chunk stores return List[KnowledgeChunk] ordered by descending score.
    """
    text: str
    score: float = Field(ge=0.0, le=1.0)
    document_id: str
    document_title: str
    document_type: str
    chunk_index: int = 0  # 0-based position within the document
    source: Optional[str] = None
    language: Optional[str] = None


class CollectionInfo(BaseModel):
    """Chunk store metadata for one agent collection"""
    exists: bool = False
    points_count: int = 0
    vectors_count: int = 0
