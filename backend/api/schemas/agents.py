"""
Request/Response schemas for agents and their context documents
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from api.schemas.base import CamelModel


class CreateAgentRequest(CamelModel):
    """Request to create an agent. The role cannot be changed afterwards."""
    name: str
    role: str
    stage: Optional[str] = None
    description: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None


class DocumentInfo(CamelModel):
    """Context document metadata"""
    document_id: str
    type: str
    title: str
    source: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    chunks_count: int = 0


class AgentInfo(CamelModel):
    """Agent with its context documents"""
    agent_id: str
    owner_id: str
    name: str
    description: Optional[str] = None
    role: str
    agent_type: str
    stage: Optional[str] = None
    is_active: bool
    settings: Dict[str, Any] = {}
    documents: List[DocumentInfo] = []
    created_at: Optional[datetime] = None


class AgentListResponse(CamelModel):
    agents: List[AgentInfo]
    total: int


class AgentDeleteResponse(CamelModel):
    agent_id: str
    status: str


class AddDocumentRequest(CamelModel):
    """Text document to add to an agent's knowledge base"""
    type: str
    title: str
    content: str
    source: Optional[str] = None


class AddDocumentResponse(DocumentInfo):
    language: str


class DocumentListResponse(CamelModel):
    documents: List[DocumentInfo]
    total: int


class DocumentDeleteResponse(CamelModel):
    document_id: str
    status: str


class DocumentRagStatusResponse(CamelModel):
    document_id: str
    in_rag: bool
    chunks_count: int
