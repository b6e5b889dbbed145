"""
Shared fixtures: in-memory SQLite database, in-memory chunk store, wired services.
No external services; ChromaDB is only touched through mocks in test_chunk_store.
"""

from typing import Any, Dict, List, Optional

import pytest

from core.database import Database
from domain.rag.retrieval.types import CollectionInfo, KnowledgeChunk
from services.agent_service import AgentService
from services.inbox_service import InboxService
from services.pipeline_service import PipelineService
from services.retrieval_service import RetrievalService
from storage.agent_sql_store import AgentSQLStore
from storage.base import BaseChunkStore
from storage.inbox_sql_store import InboxSQLStore


OWNER = "user-1"
OTHER_OWNER = "user-2"


class InMemoryChunkStore(BaseChunkStore):
    """
    Chunk store double. Chunks are kept per agent in insertion order; query
    returns them by descending score like a real store.
    """

    def __init__(self):
        self.collections: Dict[str, List[KnowledgeChunk]] = {}
        self.query_error: Optional[Exception] = None
        self.info_error: Optional[Exception] = None
        self.delete_error: Optional[Exception] = None
        self.queries: List[Dict[str, Any]] = []

    def seed(self, agent_id: str, chunks: List[KnowledgeChunk]) -> None:
        self.collections.setdefault(agent_id, []).extend(chunks)

    def collection_name(self, agent_id: str) -> str:
        return f"agent_{agent_id}"

    async def collection_info(self, agent_id: str) -> CollectionInfo:
        if self.info_error:
            raise self.info_error
        if agent_id not in self.collections:
            return CollectionInfo(exists=False)
        count = len(self.collections[agent_id])
        return CollectionInfo(exists=True, points_count=count, vectors_count=count)

    async def query(self, agent_id, text, top_k=5, filter=None):
        self.queries.append({"agent_id": agent_id, "text": text, "top_k": top_k, "filter": filter})
        if self.query_error:
            raise self.query_error
        chunks = list(self.collections.get(agent_id, []))
        if filter:
            if filter.get("documentType"):
                chunks = [c for c in chunks if c.document_type == filter["documentType"]]
            if filter.get("language"):
                chunks = [c for c in chunks if c.language == filter["language"]]
        return sorted(chunks, key=lambda c: c.score, reverse=True)[:top_k]

    async def add_chunks(self, agent_id, document_id, chunks, metadata):
        self.seed(agent_id, [
            KnowledgeChunk(
                text=text,
                score=0.5,
                document_id=document_id,
                document_title=metadata.get("documentTitle", ""),
                document_type=metadata.get("documentType", ""),
                chunk_index=index,
                source=metadata.get("source"),
                language=metadata.get("language"),
            )
            for index, text in enumerate(chunks)
        ])
        return len(chunks)

    async def delete_document_chunks(self, agent_id, document_id):
        if self.delete_error:
            raise self.delete_error
        if agent_id in self.collections:
            self.collections[agent_id] = [
                c for c in self.collections[agent_id] if c.document_id != document_id
            ]

    async def count_document_chunks(self, agent_id, document_id):
        return sum(1 for c in self.collections.get(agent_id, []) if c.document_id == document_id)

    async def heartbeat(self):
        return True


def make_chunk(score: float, title: str = "Guide", doc_type: str = "file", index: int = 0, **kwargs) -> KnowledgeChunk:
    return KnowledgeChunk(
        text=kwargs.pop("text", f"{title} chunk {index}"),
        score=score,
        document_id=kwargs.pop("document_id", f"doc-{title.lower()}"),
        document_title=title,
        document_type=doc_type,
        chunk_index=index,
        **kwargs,
    )


# === FIXTURES ===


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.init()
    yield db
    db.close()


@pytest.fixture
def agent_store(database) -> AgentSQLStore:
    return AgentSQLStore(database)


@pytest.fixture
def inbox_store(database) -> InboxSQLStore:
    return InboxSQLStore(database)


@pytest.fixture
def chunk_store() -> InMemoryChunkStore:
    return InMemoryChunkStore()


@pytest.fixture
def pipeline_service(inbox_store, agent_store) -> PipelineService:
    return PipelineService(inbox_store=inbox_store, agent_store=agent_store)


@pytest.fixture
def retrieval_service(chunk_store, agent_store) -> RetrievalService:
    return RetrievalService(chunk_store=chunk_store, agent_store=agent_store)


@pytest.fixture
def agent_service(agent_store, chunk_store) -> AgentService:
    return AgentService(agent_store=agent_store, chunk_store=chunk_store)


@pytest.fixture
def inbox_service(inbox_store) -> InboxService:
    return InboxService(inbox_store=inbox_store)
