"""
Pipeline service - assigns agents to inboxes and serves pipeline views
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar
from domain.pipeline.roster import InboxRoster, check_assignable
from domain.pipeline.types import Agent
from storage.base import BaseAgentStore, BaseInboxStore
from services.base import BaseService
from core.config import settings
from core.exceptions import NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PipelineService(BaseService):
    """
    Inbox agent pipeline registry.

    Every mutation runs load -> check -> write on one inbox under an in-process
    lock for that inbox, and the inbox store holds a row lock for the same
    transaction. Reads take one snapshot and no lock.
    """

    def __init__(self, inbox_store: BaseInboxStore, agent_store: BaseAgentStore):
        self.inbox_store = inbox_store
        self.agent_store = agent_store
        # Per-inbox locks, dropped once nobody holds or waits on them
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    async def _require_inbox(self, inbox_id: str, owner_id: Optional[str]) -> Dict[str, Any]:
        inbox = await self.inbox_store.get_inbox(inbox_id)
        if not inbox or (owner_id is not None and inbox["owner_id"] != owner_id):
            raise NotFoundError("Inbox not found", code="InboxNotFound", details={"inboxId": inbox_id})
        return inbox

    async def _get_assignable_agent(self, agent_id: str, owner_id: Optional[str]) -> Agent:
        agent = await self.agent_store.get_agent(agent_id)
        if agent is None:
            raise NotFoundError("Agent not found", code="AgentNotFound", details={"agentId": agent_id})
        check_assignable(agent, owner_id)
        return agent

    @asynccontextmanager
    async def _inbox_lock(self, inbox_id: str):
        lock = self._locks.setdefault(inbox_id, asyncio.Lock())
        self._lock_users[inbox_id] = self._lock_users.get(inbox_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[inbox_id] -= 1
            if self._lock_users[inbox_id] == 0:
                del self._lock_users[inbox_id]
                del self._locks[inbox_id]

    async def _mutate(
        self,
        inbox_id: str,
        mutation: Callable[[InboxRoster], T],
        owner_id: Optional[str],
        agent_id: Optional[str] = None
    ) -> Tuple[Dict[str, Any], InboxRoster, T]:
        """Run `mutation` under the inbox lock. Callers check the inbox exists first."""
        async with self._inbox_lock(inbox_id):
            return await self.inbox_store.mutate_roster(inbox_id, mutation, owner_id=owner_id, agent_id=agent_id)

    @staticmethod
    def _processing_result(roster: InboxRoster, assignment) -> Dict[str, Any]:
        processing = roster.processing_agents
        return {
            "agent": assignment.model_dump(),
            "summary": {
                "total_agents": len(processing),
                "active_agents": sum(1 for a in processing if a.is_active),
            },
        }

    # ------------------------
    # Response slot
    # ------------------------

    async def assign_response_agent(
        self,
        inbox_id: str,
        agent_id: str,
        config: Optional[Dict[str, Any]] = None,
        owner_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Put an agent in the inbox's response slot, replacing any current holder.

        Raises:
            NotFoundError: Inbox or agent missing (or not the caller's / inactive)
            ConflictError: RoleMismatch or AlreadyAssignedElsewhere
        """
        await self._require_inbox(inbox_id, owner_id)
        agent = await self._get_assignable_agent(agent_id, owner_id)

        _, _, slot = await self._mutate(
            inbox_id, lambda roster: roster.assign_response(agent, config), owner_id, agent_id=agent_id
        )
        logger.info(f"Assigned response agent {agent_id} to inbox {inbox_id}")
        return slot.model_dump()

    async def remove_response_agent(self, inbox_id: str, owner_id: Optional[str] = None) -> Dict[str, Any]:
        await self._require_inbox(inbox_id, owner_id)
        _, _, removed = await self._mutate(inbox_id, lambda roster: roster.remove_response(), owner_id)
        logger.info(f"Removed response agent {removed.agent_id} from inbox {inbox_id}")
        return removed.model_dump()

    # ------------------------
    # Processing pipeline
    # ------------------------

    async def add_processing_agent(
        self,
        inbox_id: str,
        agent_id: str,
        priority: Any = None,
        config: Optional[Dict[str, Any]] = None,
        owner_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Add a processing agent to the inbox pipeline.

        Raises:
            NotFoundError: Inbox or agent missing
            ConflictError: RoleMismatch, AlreadyAssignedElsewhere or Duplicate
            ValidationError: Priority outside [1, 999]
        """
        await self._require_inbox(inbox_id, owner_id)
        agent = await self._get_assignable_agent(agent_id, owner_id)
        if priority is None:
            priority = settings.default_processing_priority

        _, roster, assignment = await self._mutate(
            inbox_id, lambda roster: roster.add_processing(agent, priority, config), owner_id, agent_id=agent_id
        )
        logger.info(f"Added processing agent {agent_id} to inbox {inbox_id} at priority {assignment.priority}")
        return self._processing_result(roster, assignment)

    async def update_processing_agent(
        self,
        inbox_id: str,
        agent_id: str,
        priority: Any = None,
        is_active: Any = None,
        config: Optional[Dict[str, Any]] = None,
        owner_id: Optional[str] = None
    ) -> Dict[str, Any]:
        await self._require_inbox(inbox_id, owner_id)
        _, roster, assignment = await self._mutate(
            inbox_id,
            lambda roster: roster.update_processing(agent_id, priority=priority, is_active=is_active, config=config),
            owner_id,
        )
        logger.info(f"Updated processing agent {agent_id} in inbox {inbox_id}")
        return self._processing_result(roster, assignment)

    async def remove_processing_agent(
        self,
        inbox_id: str,
        agent_id: str,
        owner_id: Optional[str] = None
    ) -> Dict[str, Any]:
        await self._require_inbox(inbox_id, owner_id)
        _, roster, removed = await self._mutate(
            inbox_id, lambda roster: roster.remove_processing(agent_id), owner_id
        )
        logger.info(f"Removed processing agent {agent_id} from inbox {inbox_id}")
        return self._processing_result(roster, removed)

    # ------------------------
    # Views
    # ------------------------

    async def _load(self, inbox_id: str, owner_id: Optional[str]) -> Tuple[Dict[str, Any], InboxRoster]:
        loaded = await self.inbox_store.load_roster(inbox_id)
        if loaded is None or (owner_id is not None and loaded[0]["owner_id"] != owner_id):
            raise NotFoundError("Inbox not found", code="InboxNotFound", details={"inboxId": inbox_id})
        return loaded

    async def list_agents(self, inbox_id: str, owner_id: Optional[str] = None) -> Dict[str, Any]:
        """Response slot, priority-sorted pipeline, and counts for one inbox"""
        inbox, roster = await self._load(inbox_id, owner_id)

        response_agent = roster.response_slot.model_dump() if roster.response_slot else None
        processing_agents = [a.model_dump() for a in roster.processing_agents]
        all_agents = (
            ([{**response_agent, "role": "response"}] if response_agent else [])
            + [{**a, "role": "processing"} for a in processing_agents]
        )
        return {
            "inbox": {
                "id": inbox["inbox_id"],
                "name": inbox["name"],
                "channel_type": inbox["channel_type"],
            },
            "response_agent": response_agent,
            "processing_agents": processing_agents,
            "all_agents": all_agents,
            "summary": roster.summary(),
        }

    async def get_pipeline(
        self,
        inbox_id: str,
        min_priority: Optional[int] = None,
        max_priority: Optional[int] = None,
        owner_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Active processing agents in execution order plus the response agent.

        With a priority range, only agents with min_priority <= priority < max_priority
        are returned.
        """
        _, roster = await self._load(inbox_id, owner_id)
        stages = roster.active_processing(min_priority, max_priority)
        return {
            "inbox_id": inbox_id,
            "processing_agents": [a.model_dump() for a in stages],
            "response_agent": roster.response_slot.model_dump() if roster.response_slot else None,
        }
