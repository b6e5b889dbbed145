"""
Per-agent chunk store implementation using ChromaDB.
Supports embedded (dev) and HTTP server (production) deployment modes.
"""

import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional
import chromadb
from chromadb.config import Settings as ChromaSettings
from core.config import settings
from core.exceptions import DependencyError
from domain.rag.retrieval.query import preprocess_query
from domain.rag.retrieval.types import CollectionInfo, KnowledgeChunk
from storage.base import BaseChunkStore

logger = logging.getLogger(__name__)


class ChromaChunkStore(BaseChunkStore):
    """
    Chunk store using ChromaDB, one collection per agent.

    The deployment mode is determined by settings.chunk_store_backend:
    - "chromadb_embedded": Local persistent storage (default for dev)
    - "chromadb_http": Connect to a Chroma server

    Embeddings are computed by the collection's embedding function
    (Chroma's default unless one is passed in).
    """

    def __init__(
        self,
        backend_type: Optional[str] = None,
        client: Any = None,
        embedding_function: Any = None,
    ):
        """
        Args:
            backend_type: "chromadb_embedded" or "chromadb_http".
                         If None, uses settings.chunk_store_backend.
            client: Pre-built Chroma client. Skips backend initialization.
            embedding_function: Optional Chroma embedding function for new collections.
        """
        self.prefix = settings.chunk_store_collection_prefix
        self.embedding_function = embedding_function

        if client is not None:
            self.client = client
            return

        backend_type = backend_type or settings.chunk_store_backend
        if backend_type == "chromadb_embedded":
            self._init_embedded()
        elif backend_type == "chromadb_http":
            self._init_http()
        else:
            raise ValueError(
                f"Unsupported chunk store backend: {backend_type}. "
                f"Supported: chromadb_embedded, chromadb_http"
            )
        logger.info(f"Initialized ChromaChunkStore with backend: {backend_type}")

    def _init_embedded(self, store_path: Optional[Path] = None):
        """Initialize ChromaDB embedded mode (local persistent storage)"""
        store_path = Path(store_path or settings.chunk_store_path)

        # Resolve relative paths relative to backend directory
        if not store_path.is_absolute():
            backend_dir = Path(__file__).parent.parent
            store_path = (backend_dir / store_path).resolve()

        store_path.mkdir(parents=True, exist_ok=True)

        self.client = chromadb.PersistentClient(
            path=str(store_path),
            settings=ChromaSettings(anonymized_telemetry=False)
        )
        logger.info(f"ChromaDB embedded store initialized at: {store_path}")

    def _init_http(self, host: str = None, port: int = None):
        """Initialize ChromaDB client/server mode"""
        self.client = chromadb.HttpClient(
            host=host or settings.chromadb_host,
            port=port or settings.chromadb_port,
            settings=ChromaSettings(anonymized_telemetry=False)
        )
        logger.info(f"ChromaDB HTTP client configured for {settings.chromadb_host}:{settings.chromadb_port}")

    def collection_name(self, agent_id: str) -> str:
        return f"{self.prefix}{agent_id}"

    def _get_collection(self, agent_id: str):
        """Existing collection for an agent, or None"""
        name = self.collection_name(agent_id)
        # Newer Chroma returns names, older returns Collection objects
        existing = [c if isinstance(c, str) else c.name for c in self.client.list_collections()]
        if name not in existing:
            return None
        if self.embedding_function is not None:
            return self.client.get_collection(name=name, embedding_function=self.embedding_function)
        return self.client.get_collection(name=name)

    def _get_or_create_collection(self, agent_id: str):
        kwargs = {"name": self.collection_name(agent_id), "metadata": {"hnsw:space": "cosine"}}
        if self.embedding_function is not None:
            kwargs["embedding_function"] = self.embedding_function
        return self.client.get_or_create_collection(**kwargs)

    async def collection_info(self, agent_id: str) -> CollectionInfo:
        try:
            collection = self._get_collection(agent_id)
            if collection is None:
                return CollectionInfo(exists=False)
            count = collection.count()
            # Chroma stores one vector per point
            return CollectionInfo(exists=True, points_count=count, vectors_count=count)
        except Exception as e:
            logger.error(f"Error getting collection info for agent {agent_id}: {e}")
            raise DependencyError(f"Failed to get collection info: {e}", code="ChunkStoreUnavailable")

    async def query(
        self,
        agent_id: str,
        text: str,
        top_k: int = 5,
        filter: Optional[Dict[str, Any]] = None
    ) -> List[KnowledgeChunk]:
        """
        Query an agent's collection.

        Args:
            agent_id: Collection owner
            text: Query text (stop words are dropped before embedding)
            top_k: Number of results to return
            filter: Optional {"documentType": ..., "language": ...} restriction

        Returns:
            Chunks ordered by descending similarity (1 - cosine distance)
        """
        try:
            collection = self._get_collection(agent_id)
            if collection is None:
                return []
            count = collection.count()
            if count == 0:
                return []

            conditions = [{"agentId": agent_id}]
            for key in ("documentType", "language"):
                if filter and filter.get(key):
                    conditions.append({key: filter[key]})
            where = conditions[0] if len(conditions) == 1 else {"$and": conditions}

            results = collection.query(
                query_texts=[preprocess_query(text)],
                n_results=min(top_k, count),
                where=where,
                include=["documents", "metadatas", "distances"],
            )

            chunks = []
            if results["ids"] and len(results["ids"][0]) > 0:
                for i in range(len(results["ids"][0])):
                    metadata = results["metadatas"][0][i] or {}
                    score = 1.0 - results["distances"][0][i]  # Convert distance to similarity
                    chunks.append(KnowledgeChunk(
                        text=results["documents"][0][i] or "",
                        score=min(1.0, max(0.0, score)),
                        document_id=metadata.get("documentId", ""),
                        document_title=metadata.get("documentTitle", ""),
                        document_type=metadata.get("documentType", ""),
                        chunk_index=int(metadata.get("chunkIndex", 0)),
                        source=metadata.get("source") or None,
                        language=metadata.get("language") or None,
                    ))
            return chunks
        except Exception as e:
            logger.error(f"Error querying chunks for agent {agent_id}: {e}")
            raise DependencyError(f"Chunk search failed: {e}", code="ChunkStoreUnavailable")

    async def add_chunks(
        self,
        agent_id: str,
        document_id: str,
        chunks: List[str],
        metadata: Dict[str, Any]
    ) -> int:
        try:
            if not chunks:
                return 0
            collection = self._get_or_create_collection(agent_id)
            collection.add(
                ids=[str(uuid.uuid4()) for _ in chunks],
                documents=chunks,
                metadatas=[
                    {
                        "agentId": agent_id,
                        "documentId": document_id,
                        "documentType": metadata.get("documentType", ""),
                        "documentTitle": metadata.get("documentTitle", ""),
                        "chunkIndex": index,
                        "language": metadata.get("language", ""),
                        # Chroma metadata values cannot be None
                        "source": metadata.get("source") or "",
                    }
                    for index in range(len(chunks))
                ],
            )
            logger.info(f"Stored {len(chunks)} chunks for document {document_id} in {self.collection_name(agent_id)}")
            return len(chunks)
        except Exception as e:
            logger.error(f"Error adding chunks for document {document_id}: {e}")
            raise DependencyError(f"Failed to store chunks: {e}", code="ChunkStoreUnavailable")

    async def delete_document_chunks(self, agent_id: str, document_id: str) -> None:
        try:
            collection = self._get_collection(agent_id)
            if collection is None:
                logger.debug(f"Collection {self.collection_name(agent_id)} doesn't exist yet - no chunks to delete")
                return
            collection.delete(where={"documentId": document_id})
        except Exception as e:
            logger.error(f"Error deleting chunks for document {document_id}: {e}")
            raise DependencyError(f"Failed to delete chunks: {e}", code="ChunkStoreUnavailable")

    async def count_document_chunks(self, agent_id: str, document_id: str) -> int:
        try:
            collection = self._get_collection(agent_id)
            if collection is None:
                return 0
            results = collection.get(where={"documentId": document_id}, include=[])
            return len(results["ids"])
        except Exception as e:
            logger.error(f"Error counting chunks for document {document_id}: {e}")
            raise DependencyError(f"Failed to count chunks: {e}", code="ChunkStoreUnavailable")

    async def heartbeat(self) -> bool:
        try:
            return bool(self.client.heartbeat())
        except Exception as e:
            logger.warning(f"Chunk store heartbeat failed: {e}")
            return False
