"""
Inbox service - inbox lifecycle
"""

import logging
from typing import List, Dict, Any, Optional
from storage.base import BaseInboxStore
from services.base import BaseService
from core.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class InboxService(BaseService):
    """Creates, lists and deletes inboxes. Agent assignment lives in PipelineService."""

    def __init__(self, inbox_store: BaseInboxStore):
        self.inbox_store = inbox_store

    async def create_inbox(self, owner_id: str, name: str, channel_type: Optional[str] = None) -> Dict[str, Any]:
        if not name or not name.strip():
            raise ValidationError("Inbox name is required", code="InvalidInput")
        inbox = await self.inbox_store.create_inbox(owner_id, name.strip(), channel_type or "api")
        logger.info(f"Created inbox {inbox['inbox_id']} ({inbox['name']}) for {owner_id}")
        return inbox

    async def get_inbox(self, inbox_id: str, owner_id: Optional[str] = None) -> Dict[str, Any]:
        inbox = await self.inbox_store.get_inbox(inbox_id)
        if not inbox or (owner_id is not None and inbox["owner_id"] != owner_id):
            raise NotFoundError("Inbox not found", code="InboxNotFound", details={"inboxId": inbox_id})
        return inbox

    async def list_inboxes(self, owner_id: str) -> List[Dict[str, Any]]:
        return await self.inbox_store.list_inboxes(owner_id)

    async def delete_inbox(self, inbox_id: str, owner_id: Optional[str] = None) -> Dict[str, Any]:
        await self.get_inbox(inbox_id, owner_id)
        await self.inbox_store.delete_inbox(inbox_id)
        logger.info(f"Deleted inbox {inbox_id}")
        return {"inbox_id": inbox_id, "status": "deleted"}
