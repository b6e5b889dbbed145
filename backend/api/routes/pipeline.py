"""
Inbox agent pipeline endpoints
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from api.dependencies import get_current_user_id, get_pipeline_service
from api.errors import to_http_exception
from api.schemas.pipeline import (
    AddProcessingAgentRequest,
    AssignResponseAgentRequest,
    InboxAgentsResponse,
    PipelineResponse,
    ProcessingAgentResponse,
    ResponseSlotInfo,
    UpdateProcessingAgentRequest,
)
from services.pipeline_service import PipelineService
from core.exceptions import InboxAgentsException

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/inboxes", tags=["pipeline"])


def _unexpected(action: str, e: Exception) -> HTTPException:
    logger.error(f"Unexpected error {action}: {e}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed {action}"
    )


# Response slot routes come first so "response" is not captured as an agent id

@router.put("/{inbox_id}/agents/response", response_model=ResponseSlotInfo)
async def assign_response_agent(
    request: AssignResponseAgentRequest,
    inbox_id: str = Path(..., description="Inbox ID"),
    user_id: str = Depends(get_current_user_id),
    pipeline_service: PipelineService = Depends(get_pipeline_service)
):
    """
    Assign the inbox's response agent, replacing the current one if any.

    Fails with 409 if the agent is not a response agent (RoleMismatch) or is
    already in this inbox's processing pipeline (AlreadyAssignedElsewhere).
    """
    try:
        slot = await pipeline_service.assign_response_agent(
            inbox_id, request.agent_id, config=request.config, owner_id=user_id
        )
        return ResponseSlotInfo(**slot)
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected("assigning response agent", e)


@router.delete("/{inbox_id}/agents/response", response_model=ResponseSlotInfo)
async def remove_response_agent(
    inbox_id: str = Path(..., description="Inbox ID"),
    user_id: str = Depends(get_current_user_id),
    pipeline_service: PipelineService = Depends(get_pipeline_service)
):
    """Clear the response slot. 404 (NothingAssigned) if it is already empty."""
    try:
        slot = await pipeline_service.remove_response_agent(inbox_id, owner_id=user_id)
        return ResponseSlotInfo(**slot)
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected("removing response agent", e)


@router.get("/{inbox_id}/agents", response_model=InboxAgentsResponse)
async def list_inbox_agents(
    inbox_id: str = Path(..., description="Inbox ID"),
    user_id: str = Depends(get_current_user_id),
    pipeline_service: PipelineService = Depends(get_pipeline_service)
):
    """Response agent, priority-sorted processing agents and counts."""
    try:
        result = await pipeline_service.list_agents(inbox_id, owner_id=user_id)
        return InboxAgentsResponse(**result)
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected("listing inbox agents", e)


@router.post("/{inbox_id}/agents", response_model=ProcessingAgentResponse, status_code=status.HTTP_201_CREATED)
async def add_processing_agent(
    request: AddProcessingAgentRequest,
    inbox_id: str = Path(..., description="Inbox ID"),
    user_id: str = Depends(get_current_user_id),
    pipeline_service: PipelineService = Depends(get_pipeline_service)
):
    """
    Add a processing agent to the pipeline (default priority 100).

    Lower priority runs first; equal priorities keep insertion order.
    """
    try:
        result = await pipeline_service.add_processing_agent(
            inbox_id,
            request.agent_id,
            priority=request.priority,
            config=request.config,
            owner_id=user_id,
        )
        return ProcessingAgentResponse(**result)
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected("adding processing agent", e)


@router.put("/{inbox_id}/agents/{agent_id}", response_model=ProcessingAgentResponse)
async def update_processing_agent(
    request: UpdateProcessingAgentRequest,
    inbox_id: str = Path(..., description="Inbox ID"),
    agent_id: str = Path(..., description="Agent ID"),
    user_id: str = Depends(get_current_user_id),
    pipeline_service: PipelineService = Depends(get_pipeline_service)
):
    """Change priority, active flag or config (shallow merge) of a pipeline entry."""
    try:
        result = await pipeline_service.update_processing_agent(
            inbox_id,
            agent_id,
            priority=request.priority,
            is_active=request.is_active,
            config=request.config,
            owner_id=user_id,
        )
        return ProcessingAgentResponse(**result)
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected("updating processing agent", e)


@router.delete("/{inbox_id}/agents/{agent_id}", response_model=ProcessingAgentResponse)
async def remove_processing_agent(
    inbox_id: str = Path(..., description="Inbox ID"),
    agent_id: str = Path(..., description="Agent ID"),
    user_id: str = Depends(get_current_user_id),
    pipeline_service: PipelineService = Depends(get_pipeline_service)
):
    try:
        result = await pipeline_service.remove_processing_agent(inbox_id, agent_id, owner_id=user_id)
        return ProcessingAgentResponse(**result)
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected("removing processing agent", e)


@router.get("/{inbox_id}/pipeline", response_model=PipelineResponse)
async def get_pipeline(
    inbox_id: str = Path(..., description="Inbox ID"),
    min_priority: Optional[int] = Query(None, alias="minPriority", ge=1, le=999),
    max_priority: Optional[int] = Query(None, alias="maxPriority", ge=1, le=1000),
    user_id: str = Depends(get_current_user_id),
    pipeline_service: PipelineService = Depends(get_pipeline_service)
):
    """
    Active processing agents in execution order, plus the response agent.

    With minPriority/maxPriority only agents with min <= priority < max are returned.
    """
    try:
        result = await pipeline_service.get_pipeline(
            inbox_id, min_priority=min_priority, max_priority=max_priority, owner_id=user_id
        )
        return PipelineResponse(**result)
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected("getting pipeline", e)
