"""
Storage layer: SQL stores for agents/inboxes, vector store for chunks
"""

from storage.base import BaseChunkStore, BaseAgentStore, BaseInboxStore
from storage.agent_sql_store import AgentSQLStore
from storage.inbox_sql_store import InboxSQLStore
from storage.chunk_store import ChromaChunkStore

__all__ = [
    "BaseChunkStore",
    "BaseAgentStore",
    "BaseInboxStore",
    "AgentSQLStore",
    "InboxSQLStore",
    "ChromaChunkStore",
]
