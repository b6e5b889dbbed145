"""
Abstract base classes for storage
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar
from domain.pipeline.roster import InboxRoster
from domain.pipeline.types import Agent, AgentDocument
from domain.rag.retrieval.types import CollectionInfo, KnowledgeChunk

T = TypeVar("T")


class BaseChunkStore(ABC):
    """
    Abstract base class for per-agent chunk stores.

    Each agent owns one collection; the store computes embeddings and
    answers similarity queries against it.
    """

    @abstractmethod
    def collection_name(self, agent_id: str) -> str:
        """Name of the collection holding an agent's chunks"""
        pass

    @abstractmethod
    async def collection_info(self, agent_id: str) -> CollectionInfo:
        """Existence and point counts of an agent's collection"""
        pass

    @abstractmethod
    async def query(
        self,
        agent_id: str,
        text: str,
        top_k: int = 5,
        filter: Optional[Dict[str, Any]] = None
    ) -> List[KnowledgeChunk]:
        """
        Similarity search in an agent's collection.

        Returns:
            Up to top_k chunks ordered by descending score. Empty if the
            collection does not exist.
        """
        pass

    @abstractmethod
    async def add_chunks(
        self,
        agent_id: str,
        document_id: str,
        chunks: List[str],
        metadata: Dict[str, Any]
    ) -> int:
        """Embed and store a document's chunks; returns the number stored"""
        pass

    @abstractmethod
    async def delete_document_chunks(self, agent_id: str, document_id: str) -> None:
        """Delete every chunk of a document"""
        pass

    @abstractmethod
    async def count_document_chunks(self, agent_id: str, document_id: str) -> int:
        """Number of chunks stored for a document"""
        pass

    @abstractmethod
    async def heartbeat(self) -> bool:
        """Whether the backing service is reachable"""
        pass


class BaseAgentStore(ABC):
    """Abstract base class for agent stores"""

    @abstractmethod
    async def create_agent(
        self,
        owner_id: str,
        name: str,
        role: str,
        stage: Optional[str] = None,
        description: Optional[str] = None,
        settings: Optional[Dict[str, Any]] = None
    ) -> Agent:
        """Create an agent. Role is fixed for the agent's lifetime."""
        pass

    @abstractmethod
    async def get_agent(self, agent_id: str) -> Optional[Agent]:
        """Get an agent with its documents"""
        pass

    @abstractmethod
    async def list_agents(self, owner_id: str) -> List[Agent]:
        """List agents owned by a user"""
        pass

    @abstractmethod
    async def delete_agent(self, agent_id: str) -> None:
        """Delete an agent; rejected while any inbox references it"""
        pass

    @abstractmethod
    async def add_document(
        self,
        agent_id: str,
        doc_type: str,
        title: str,
        source: Optional[str] = None
    ) -> AgentDocument:
        """Record a context document for an agent"""
        pass

    @abstractmethod
    async def update_document_chunks(self, document_id: str, chunks_count: int) -> None:
        """Record how many chunks a document produced"""
        pass

    @abstractmethod
    async def delete_document(self, agent_id: str, document_id: str) -> None:
        """Delete a context document record"""
        pass


class BaseInboxStore(ABC):
    """Abstract base class for inbox stores"""

    @abstractmethod
    async def create_inbox(self, owner_id: str, name: str, channel_type: str) -> Dict[str, Any]:
        """Create an inbox with an empty roster"""
        pass

    @abstractmethod
    async def get_inbox(self, inbox_id: str) -> Optional[Dict[str, Any]]:
        """Get inbox metadata"""
        pass

    @abstractmethod
    async def list_inboxes(self, owner_id: str) -> List[Dict[str, Any]]:
        """List inboxes owned by a user"""
        pass

    @abstractmethod
    async def delete_inbox(self, inbox_id: str) -> None:
        """Delete an inbox and its assignments"""
        pass

    @abstractmethod
    async def load_roster(self, inbox_id: str) -> Optional[Tuple[Dict[str, Any], InboxRoster]]:
        """Read one consistent snapshot of an inbox and its roster"""
        pass

    @abstractmethod
    async def mutate_roster(
        self,
        inbox_id: str,
        mutation: Callable[[InboxRoster], T],
        owner_id: Optional[str] = None,
        agent_id: Optional[str] = None
    ) -> Tuple[Dict[str, Any], InboxRoster, T]:
        """
        Apply `mutation` to the inbox roster and persist it atomically.

        The inbox row is locked for the duration; if `mutation` raises, nothing
        is written. When `agent_id` is given, the agent row is locked in the same
        transaction and a missing agent raises AgentNotFound.
        """
        pass
