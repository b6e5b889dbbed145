"""
Request/Response schemas for inboxes
"""

from typing import List, Optional
from api.schemas.base import CamelModel


class CreateInboxRequest(CamelModel):
    name: str
    channel_type: Optional[str] = None


class InboxInfo(CamelModel):
    inbox_id: str
    owner_id: str
    name: str
    channel_type: str
    created_at: Optional[str] = None
    response_agent_assigned: bool
    agent_count: int
    active_agent_count: int


class InboxListResponse(CamelModel):
    inboxes: List[InboxInfo]
    total: int


class InboxDeleteResponse(CamelModel):
    inbox_id: str
    status: str
