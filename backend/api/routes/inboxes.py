"""
Inbox endpoints
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Path, status
from api.dependencies import get_current_user_id, get_inbox_service
from api.errors import to_http_exception
from api.schemas.inboxes import CreateInboxRequest, InboxDeleteResponse, InboxInfo, InboxListResponse
from services.inbox_service import InboxService
from core.exceptions import InboxAgentsException

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/inboxes", tags=["inboxes"])


@router.get("", response_model=InboxListResponse)
async def list_inboxes(
    user_id: str = Depends(get_current_user_id),
    inbox_service: InboxService = Depends(get_inbox_service)
):
    try:
        inboxes = await inbox_service.list_inboxes(user_id)
        return InboxListResponse(inboxes=[InboxInfo(**inbox) for inbox in inboxes], total=len(inboxes))
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error listing inboxes: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list inboxes"
        )


@router.post("", response_model=InboxInfo, status_code=status.HTTP_201_CREATED)
async def create_inbox(
    request: CreateInboxRequest,
    user_id: str = Depends(get_current_user_id),
    inbox_service: InboxService = Depends(get_inbox_service)
):
    """Create an inbox with no agents attached."""
    try:
        inbox = await inbox_service.create_inbox(user_id, request.name, request.channel_type)
        return InboxInfo(**inbox)
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error creating inbox: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create inbox"
        )


@router.get("/{inbox_id}", response_model=InboxInfo)
async def get_inbox(
    inbox_id: str = Path(..., description="Inbox ID"),
    user_id: str = Depends(get_current_user_id),
    inbox_service: InboxService = Depends(get_inbox_service)
):
    try:
        return InboxInfo(**await inbox_service.get_inbox(inbox_id, owner_id=user_id))
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error getting inbox {inbox_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get inbox"
        )


@router.delete("/{inbox_id}", response_model=InboxDeleteResponse)
async def delete_inbox(
    inbox_id: str = Path(..., description="Inbox ID"),
    user_id: str = Depends(get_current_user_id),
    inbox_service: InboxService = Depends(get_inbox_service)
):
    """Delete an inbox and all its agent assignments."""
    try:
        return InboxDeleteResponse(**await inbox_service.delete_inbox(inbox_id, owner_id=user_id))
    except InboxAgentsException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error deleting inbox {inbox_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete inbox"
        )
