"""
Agent and pipeline data types
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


AgentRole = Literal["response", "processing"]
ProcessingStage = Literal["pre-process", "analytics", "moderation", "routing", "post-process"]
DocumentType = Literal["file", "url", "website"]

DOCUMENT_TYPES = ("file", "url", "website")
MIN_PRIORITY = 1
MAX_PRIORITY = 999


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AgentDocument(BaseModel):
    """Context document attached to an agent's knowledge base"""
    document_id: str
    type: DocumentType
    title: str
    source: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    chunks_count: int = 0


class BaseAgent(BaseModel):
    """Fields shared by every agent, whatever its role"""
    model_config = ConfigDict(frozen=True)

    agent_id: str
    owner_id: str
    name: str
    description: Optional[str] = None
    is_active: bool = True
    settings: Dict[str, Any] = Field(default_factory=dict)
    documents: List[AgentDocument] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class ResponseAgent(BaseAgent):
    """Terminal agent: produces the inbox's final reply. Occupies the response slot only."""
    role: Literal["response"] = "response"

    @property
    def agent_type(self) -> str:
        return "response"


class ProcessingAgent(BaseAgent):
    """Pipeline stage agent. Occupies the priority-ordered processing list only."""
    role: Literal["processing"] = "processing"
    stage: ProcessingStage = "pre-process"

    @property
    def agent_type(self) -> str:
        return self.stage


# Pydantic discriminates on the 'role' Literal field
Agent = Annotated[Union[ResponseAgent, ProcessingAgent], Field(discriminator="role")]

agent_adapter: TypeAdapter = TypeAdapter(Agent)


class ResponseSlot(BaseModel):
    """The single response agent bound to an inbox"""
    agent_id: str
    name: str
    agent_type: str = "response"
    assigned_at: datetime = Field(default_factory=utcnow)
    config: Dict[str, Any] = Field(default_factory=dict)


class AgentAssignment(BaseModel):
    """Processing agent entry in an inbox's pipeline"""
    agent_id: str
    name: str
    agent_type: str
    priority: int = Field(default=100, ge=MIN_PRIORITY, le=MAX_PRIORITY)
    is_active: bool = True
    config: Dict[str, Any] = Field(default_factory=dict)
    assigned_at: datetime = Field(default_factory=utcnow)
