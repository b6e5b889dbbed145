"""
Agent and context document endpoints
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Path, status
from api.dependencies import get_agent_service, get_current_user_id
from api.errors import to_http_exception
from api.schemas.agents import (
    AddDocumentRequest,
    AddDocumentResponse,
    AgentDeleteResponse,
    AgentInfo,
    AgentListResponse,
    CreateAgentRequest,
    DocumentDeleteResponse,
    DocumentInfo,
    DocumentListResponse,
    DocumentRagStatusResponse,
)
from services.agent_service import AgentService
from core.exceptions import InboxAgentsException

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/agents", tags=["agents"])


@router.get("", response_model=AgentListResponse)
async def list_agents(
    user_id: str = Depends(get_current_user_id),
    agent_service: AgentService = Depends(get_agent_service)
):
    """List the caller's agents."""
    try:
        agents = await agent_service.list_agents(user_id)
        return AgentListResponse(agents=[AgentInfo(**agent) for agent in agents], total=len(agents))
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error listing agents: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list agents"
        )


@router.post("", response_model=AgentInfo, status_code=status.HTTP_201_CREATED)
async def create_agent(
    request: CreateAgentRequest,
    user_id: str = Depends(get_current_user_id),
    agent_service: AgentService = Depends(get_agent_service)
):
    """
    Create an agent.

    role is "response" or "processing" and is fixed for the agent's lifetime.
    Processing agents take a stage (pre-process, analytics, moderation,
    routing, post-process; default pre-process).
    """
    try:
        agent = await agent_service.create_agent(
            owner_id=user_id,
            name=request.name,
            role=request.role,
            stage=request.stage,
            description=request.description,
            settings=request.settings,
        )
        return AgentInfo(**agent)
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error creating agent: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create agent"
        )


@router.get("/{agent_id}", response_model=AgentInfo)
async def get_agent(
    agent_id: str = Path(..., description="Agent ID"),
    user_id: str = Depends(get_current_user_id),
    agent_service: AgentService = Depends(get_agent_service)
):
    try:
        return AgentInfo(**await agent_service.get_agent(agent_id, owner_id=user_id))
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error getting agent {agent_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get agent"
        )


@router.delete("/{agent_id}", response_model=AgentDeleteResponse)
async def delete_agent(
    agent_id: str = Path(..., description="Agent ID"),
    user_id: str = Depends(get_current_user_id),
    agent_service: AgentService = Depends(get_agent_service)
):
    """
    Delete an agent with its documents and chunks.

    Rejected with 409 (AgentInUse) while any inbox still references the agent.
    """
    try:
        return AgentDeleteResponse(**await agent_service.delete_agent(agent_id, owner_id=user_id))
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error deleting agent {agent_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete agent"
        )


@router.get("/{agent_id}/documents", response_model=DocumentListResponse)
async def list_documents(
    agent_id: str = Path(..., description="Agent ID"),
    user_id: str = Depends(get_current_user_id),
    agent_service: AgentService = Depends(get_agent_service)
):
    try:
        documents = await agent_service.list_documents(agent_id, owner_id=user_id)
        return DocumentListResponse(
            documents=[DocumentInfo(**doc) for doc in documents],
            total=len(documents)
        )
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error listing documents for agent {agent_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list documents"
        )


@router.post("/{agent_id}/documents", response_model=AddDocumentResponse, status_code=status.HTTP_201_CREATED)
async def add_document(
    request: AddDocumentRequest,
    agent_id: str = Path(..., description="Agent ID"),
    user_id: str = Depends(get_current_user_id),
    agent_service: AgentService = Depends(get_agent_service)
):
    """
    Add a text document to the agent's knowledge base.

    The content is split into overlapping word chunks and indexed in the
    agent's collection.
    """
    try:
        result = await agent_service.add_document(
            agent_id,
            doc_type=request.type,
            title=request.title,
            content=request.content,
            source=request.source,
            owner_id=user_id,
        )
        return AddDocumentResponse(**result)
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error adding document to agent {agent_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to add document"
        )


@router.delete("/{agent_id}/documents/{document_id}", response_model=DocumentDeleteResponse)
async def remove_document(
    agent_id: str = Path(..., description="Agent ID"),
    document_id: str = Path(..., description="Document ID"),
    user_id: str = Depends(get_current_user_id),
    agent_service: AgentService = Depends(get_agent_service)
):
    try:
        result = await agent_service.remove_document(agent_id, document_id, owner_id=user_id)
        return DocumentDeleteResponse(**result)
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error removing document {document_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to remove document"
        )


@router.get("/{agent_id}/documents/{document_id}/rag-status", response_model=DocumentRagStatusResponse)
async def get_document_rag_status(
    agent_id: str = Path(..., description="Agent ID"),
    document_id: str = Path(..., description="Document ID"),
    user_id: str = Depends(get_current_user_id),
    agent_service: AgentService = Depends(get_agent_service)
):
    """Whether a document's chunks are present in the agent's collection."""
    try:
        result = await agent_service.document_rag_status(agent_id, document_id, owner_id=user_id)
        return DocumentRagStatusResponse(**result)
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error getting RAG status of document {document_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get document RAG status"
        )
