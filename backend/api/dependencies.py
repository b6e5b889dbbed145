"""
FastAPI dependencies
"""

from typing import Optional
from fastapi import Header, Request, HTTPException, status
from services.agent_service import AgentService
from services.inbox_service import InboxService
from services.pipeline_service import PipelineService
from services.retrieval_service import RetrievalService


def get_pipeline_service(request: Request) -> PipelineService:
    return request.app.state.pipeline_service


def get_retrieval_service(request: Request) -> RetrievalService:
    return request.app.state.retrieval_service


def get_agent_service(request: Request) -> AgentService:
    return request.app.state.agent_service


def get_inbox_service(request: Request) -> InboxService:
    return request.app.state.inbox_service


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """
    Caller identity, set by the authenticating proxy in front of this service.

    Ownership checks in the services compare against this id.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "Unauthorized", "message": "Authentication required"}
        )
    return x_user_id.strip()
