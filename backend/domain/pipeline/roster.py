"""
Inbox roster aggregate: the response slot plus the ordered processing list.

All role, uniqueness and ordering rules live here. The roster is loaded,
mutated and written back inside one transaction by the inbox store, so a
mutation either leaves every rule satisfied or changes nothing.
"""

import logging
from typing import Any, Dict, List, Optional
from domain.pipeline.types import (
    AgentAssignment,
    BaseAgent,
    ProcessingAgent,
    ResponseAgent,
    ResponseSlot,
    MIN_PRIORITY,
    MAX_PRIORITY,
    utcnow,
)
from core.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def validate_priority(priority: Any) -> int:
    """Reject anything that is not an integer in [1, 999]."""
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise ValidationError(
            f"Priority must be an integer between {MIN_PRIORITY} and {MAX_PRIORITY}",
            code="InvalidPriority",
            details={"priority": priority},
        )
    if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
        raise ValidationError(
            f"Priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}",
            code="InvalidPriority",
            details={"priority": priority},
        )
    return priority


def validate_config(config: Any) -> Dict[str, Any]:
    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ValidationError("Config must be an object", code="InvalidConfig")
    return config


class InboxRoster:
    """Agents attached to one inbox"""

    def __init__(
        self,
        inbox_id: str,
        response_slot: Optional[ResponseSlot] = None,
        processing: Optional[List[AgentAssignment]] = None,
    ):
        self.inbox_id = inbox_id
        self.response_slot = response_slot
        # Stored order is authoritative; sorted() is stable so ties keep it
        self._processing: List[AgentAssignment] = list(processing or [])

    @property
    def processing_agents(self) -> List[AgentAssignment]:
        return list(self._processing)

    def find_processing(self, agent_id: str) -> Optional[AgentAssignment]:
        return next((a for a in self._processing if a.agent_id == agent_id), None)

    def holds_response_slot(self, agent_id: str) -> bool:
        return self.response_slot is not None and self.response_slot.agent_id == agent_id

    def references(self, agent_id: str) -> bool:
        return self.holds_response_slot(agent_id) or self.find_processing(agent_id) is not None

    def _sort(self) -> None:
        self._processing = sorted(self._processing, key=lambda a: a.priority)

    # ------------------------
    # Response slot
    # ------------------------

    def assign_response(self, agent: ResponseAgent, config: Optional[Dict[str, Any]] = None) -> ResponseSlot:
        """Put `agent` in the response slot, replacing whoever held it."""
        if self.find_processing(agent.agent_id) is not None:
            raise ConflictError(
                "Agent is in the processing pipeline. Remove it from the pipeline first.",
                code="AlreadyAssignedElsewhere",
                details={"agentId": agent.agent_id},
            )
        if not isinstance(agent, ResponseAgent):
            raise ConflictError(
                "Only response agents can be assigned as response agent",
                code="RoleMismatch",
                details={"agentId": agent.agent_id, "role": getattr(agent, "role", None)},
            )

        previous = self.response_slot
        self.response_slot = ResponseSlot(
            agent_id=agent.agent_id,
            name=agent.name,
            agent_type=agent.agent_type,
            assigned_at=utcnow(),
            config=dict(validate_config(config)),
        )
        if previous is not None and previous.agent_id != agent.agent_id:
            logger.info(f"Inbox {self.inbox_id}: response agent {previous.agent_id} replaced by {agent.agent_id}")
        return self.response_slot

    def remove_response(self) -> ResponseSlot:
        if self.response_slot is None:
            raise NotFoundError(
                "No response agent is currently assigned",
                code="NothingAssigned",
                details={"inboxId": self.inbox_id},
            )
        removed, self.response_slot = self.response_slot, None
        return removed

    # ------------------------
    # Processing list
    # ------------------------

    def add_processing(
        self,
        agent: ProcessingAgent,
        priority: int = 100,
        config: Optional[Dict[str, Any]] = None,
    ) -> AgentAssignment:
        """Insert `agent` into the pipeline and keep the list priority-sorted."""
        if self.holds_response_slot(agent.agent_id):
            raise ConflictError(
                "Agent is already assigned as response agent. Cannot add to processing pipeline.",
                code="AlreadyAssignedElsewhere",
                details={"agentId": agent.agent_id},
            )
        if not isinstance(agent, ProcessingAgent):
            raise ConflictError(
                "Response agents must be assigned as response agent, not in the processing pipeline",
                code="RoleMismatch",
                details={"agentId": agent.agent_id, "role": getattr(agent, "role", None)},
            )
        if self.find_processing(agent.agent_id) is not None:
            raise ConflictError(
                "Agent is already assigned to this inbox",
                code="Duplicate",
                details={"agentId": agent.agent_id},
            )

        assignment = AgentAssignment(
            agent_id=agent.agent_id,
            name=agent.name,
            agent_type=agent.agent_type,
            priority=validate_priority(priority),
            is_active=True,
            config=dict(validate_config(config)),
            assigned_at=utcnow(),
        )
        self._processing.append(assignment)
        self._sort()
        return assignment

    def update_processing(
        self,
        agent_id: str,
        priority: Optional[int] = None,
        is_active: Optional[bool] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> AgentAssignment:
        assignment = self.find_processing(agent_id)
        if assignment is None:
            raise NotFoundError(
                "Agent is not assigned to this inbox",
                code="NotAssigned",
                details={"agentId": agent_id},
            )

        # Validate everything before touching the assignment
        if priority is not None:
            validate_priority(priority)
        if is_active is not None and not isinstance(is_active, bool):
            raise ValidationError("isActive must be a boolean", code="InvalidInput")
        config = validate_config(config) if config is not None else None

        if is_active is not None:
            assignment.is_active = is_active
        if config is not None:
            assignment.config = {**assignment.config, **config}
        if priority is not None:
            assignment.priority = priority
            self._sort()
        return assignment

    def remove_processing(self, agent_id: str) -> AgentAssignment:
        assignment = self.find_processing(agent_id)
        if assignment is None:
            raise NotFoundError(
                "Agent is not assigned to this inbox",
                code="NotAssigned",
                details={"agentId": agent_id},
            )
        self._processing.remove(assignment)
        return assignment

    # ------------------------
    # Views
    # ------------------------

    def active_processing(
        self,
        min_priority: Optional[int] = None,
        max_priority: Optional[int] = None,
    ) -> List[AgentAssignment]:
        """Active agents in pipeline order, optionally within [min_priority, max_priority)."""
        agents = [a for a in self._processing if a.is_active]
        if min_priority is not None:
            agents = [a for a in agents if a.priority >= min_priority]
        if max_priority is not None:
            agents = [a for a in agents if a.priority < max_priority]
        return agents

    def summary(self) -> Dict[str, Any]:
        processing_count = len(self._processing)
        has_response = self.response_slot is not None
        return {
            "total_agents": processing_count + (1 if has_response else 0),
            "has_response_agent": has_response,
            "processing_count": processing_count,
            "active_processing_count": len(self.active_processing()),
        }


def check_assignable(agent: BaseAgent, owner_id: Optional[str] = None) -> None:
    """An agent can only be assigned if it is active and (when given) owned by the caller."""
    if not agent.is_active or (owner_id is not None and agent.owner_id != owner_id):
        raise NotFoundError("Agent not found", code="AgentNotFound", details={"agentId": agent.agent_id})
