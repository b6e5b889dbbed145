"""
Agent service - agent lifecycle and knowledge document ingestion
"""

import logging
from typing import List, Dict, Any, Optional
from domain.pipeline.types import Agent
from domain.rag.ingestion import TextSplitter, detect_language
from storage.base import BaseAgentStore, BaseChunkStore
from services.base import BaseService
from core.exceptions import InboxAgentsException, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def agent_to_dict(agent: Agent) -> Dict[str, Any]:
    data = agent.model_dump()
    data["agent_type"] = agent.agent_type
    return data


class AgentService(BaseService):
    """
    Orchestrates agents and their context documents.

    Integrates:
    - AgentStore: Agent records and document metadata
    - ChunkStore: Chunked document text in the agent's collection
    """

    def __init__(
        self,
        agent_store: BaseAgentStore,
        chunk_store: BaseChunkStore,
        splitter: Optional[TextSplitter] = None
    ):
        self.agent_store = agent_store
        self.chunk_store = chunk_store
        self.splitter = splitter or TextSplitter()

    async def _get_owned_agent(self, agent_id: str, owner_id: Optional[str]) -> Agent:
        agent = await self.agent_store.get_agent(agent_id)
        if agent is None or (owner_id is not None and agent.owner_id != owner_id):
            raise NotFoundError("Agent not found", code="AgentNotFound", details={"agentId": agent_id})
        return agent

    async def create_agent(
        self,
        owner_id: str,
        name: str,
        role: str,
        stage: Optional[str] = None,
        description: Optional[str] = None,
        settings: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        if not name or not name.strip():
            raise ValidationError("Agent name is required", code="InvalidInput")
        agent = await self.agent_store.create_agent(
            owner_id=owner_id,
            name=name.strip(),
            role=role,
            stage=stage,
            description=description,
            settings=settings,
        )
        logger.info(f"Created {agent.role} agent {agent.agent_id} ({agent.name}) for {owner_id}")
        return agent_to_dict(agent)

    async def get_agent(self, agent_id: str, owner_id: Optional[str] = None) -> Dict[str, Any]:
        return agent_to_dict(await self._get_owned_agent(agent_id, owner_id))

    async def list_agents(self, owner_id: str) -> List[Dict[str, Any]]:
        return [agent_to_dict(agent) for agent in await self.agent_store.list_agents(owner_id)]

    async def delete_agent(self, agent_id: str, owner_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Delete an agent, its document records and its chunks.

        Raises:
            NotFoundError: Agent missing or not the caller's
            ConflictError: Agent still assigned to an inbox (AgentInUse)
        """
        agent = await self._get_owned_agent(agent_id, owner_id)
        await self.agent_store.delete_agent(agent_id)

        # Best-effort: a stale chunk is harmless once the agent is gone
        for document in agent.documents:
            try:
                await self.chunk_store.delete_document_chunks(agent_id, document.document_id)
            except Exception as e:
                logger.warning(f"Failed to delete chunks for document {document.document_id}: {e}")

        logger.info(f"Deleted agent {agent_id}")
        return {"agent_id": agent_id, "status": "deleted"}

    # ------------------------
    # Context documents
    # ------------------------

    async def add_document(
        self,
        agent_id: str,
        doc_type: str,
        title: str,
        content: str,
        source: Optional[str] = None,
        owner_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Add a context document: record it, split its text and index the chunks.

        If indexing fails the document record is removed again and the error
        propagates.

        Returns:
            Document dict with 'chunks_count' and 'language'
        """
        if not title or not title.strip():
            raise ValidationError("Document title is required", code="InvalidInput")
        await self._get_owned_agent(agent_id, owner_id)

        chunks = self.splitter.split(content or "")
        language = detect_language(content)

        document = await self.agent_store.add_document(agent_id, doc_type, title.strip(), source)
        try:
            stored = await self.chunk_store.add_chunks(
                agent_id,
                document.document_id,
                chunks,
                {
                    "documentType": document.type,
                    "documentTitle": document.title,
                    "language": language,
                    "source": source,
                },
            )
            await self.agent_store.update_document_chunks(document.document_id, stored)
        except InboxAgentsException:
            await self.agent_store.delete_document(agent_id, document.document_id)
            raise

        logger.info(f"Added document {document.document_id} ({title}) to agent {agent_id}: {stored} chunks")
        result = document.model_dump()
        result.update({"chunks_count": stored, "language": language})
        return result

    async def list_documents(self, agent_id: str, owner_id: Optional[str] = None) -> List[Dict[str, Any]]:
        agent = await self._get_owned_agent(agent_id, owner_id)
        return [document.model_dump() for document in agent.documents]

    async def remove_document(
        self,
        agent_id: str,
        document_id: str,
        owner_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Delete a context document.

        Critical: the document record. Best-effort: its chunks (failures are
        logged and the record is still removed).
        """
        agent = await self._get_owned_agent(agent_id, owner_id)
        if not any(d.document_id == document_id for d in agent.documents):
            raise NotFoundError("Document not found", code="DocumentNotFound", details={"documentId": document_id})

        try:
            await self.chunk_store.delete_document_chunks(agent_id, document_id)
        except Exception as e:
            logger.warning(f"Failed to delete chunks for document {document_id}: {e}")

        await self.agent_store.delete_document(agent_id, document_id)
        logger.info(f"Removed document {document_id} from agent {agent_id}")
        return {"document_id": document_id, "status": "deleted"}

    async def document_rag_status(
        self,
        agent_id: str,
        document_id: str,
        owner_id: Optional[str] = None
    ) -> Dict[str, Any]:
        agent = await self._get_owned_agent(agent_id, owner_id)
        if not any(d.document_id == document_id for d in agent.documents):
            raise NotFoundError("Document not found", code="DocumentNotFound", details={"documentId": document_id})

        chunks_count = await self.chunk_store.count_document_chunks(agent_id, document_id)
        return {"document_id": document_id, "in_rag": chunks_count > 0, "chunks_count": chunks_count}
