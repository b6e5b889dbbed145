"""
Request/Response schemas for inbox agent pipelines
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from api.schemas.base import CamelModel


class AssignResponseAgentRequest(CamelModel):
    """Request to put an agent in the response slot"""
    agent_id: str
    config: Optional[Dict[str, Any]] = None


class AddProcessingAgentRequest(CamelModel):
    """Request to add an agent to the processing pipeline"""
    agent_id: str
    priority: Optional[int] = None
    config: Optional[Dict[str, Any]] = None


class UpdateProcessingAgentRequest(CamelModel):
    """Partial update of a pipeline entry; omitted fields are left alone"""
    priority: Optional[int] = None
    is_active: Optional[bool] = None
    config: Optional[Dict[str, Any]] = None


class ResponseSlotInfo(CamelModel):
    agent_id: str
    name: str
    agent_type: str
    assigned_at: datetime
    config: Dict[str, Any] = {}


class AssignmentInfo(CamelModel):
    agent_id: str
    name: str
    agent_type: str
    priority: int
    is_active: bool
    assigned_at: datetime
    config: Dict[str, Any] = {}


class AssignmentSummary(CamelModel):
    total_agents: int
    active_agents: int


class ProcessingAgentResponse(CamelModel):
    """Response after adding, updating or removing a pipeline entry"""
    agent: AssignmentInfo
    summary: AssignmentSummary


class InboxRef(CamelModel):
    id: str
    name: str
    channel_type: str


class RosterEntry(CamelModel):
    """Entry of the combined response + processing list"""
    agent_id: str
    name: str
    agent_type: str
    role: str
    assigned_at: datetime
    config: Dict[str, Any] = {}
    priority: Optional[int] = None
    is_active: Optional[bool] = None


class RosterSummary(CamelModel):
    total_agents: int
    has_response_agent: bool
    processing_count: int
    active_processing_count: int


class InboxAgentsResponse(CamelModel):
    """All agents attached to an inbox"""
    inbox: InboxRef
    response_agent: Optional[ResponseSlotInfo] = None
    processing_agents: List[AssignmentInfo]
    all_agents: List[RosterEntry]
    summary: RosterSummary


class PipelineResponse(CamelModel):
    """Active pipeline in execution order"""
    inbox_id: str
    processing_agents: List[AssignmentInfo]
    response_agent: Optional[ResponseSlotInfo] = None
