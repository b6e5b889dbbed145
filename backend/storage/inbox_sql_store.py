"""
Inbox SQL store: inboxes, response slots and processing assignments
"""

import logging
import uuid
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import relationship
from core.database import Base, Database
from core.exceptions import InboxAgentsException, NotFoundError, StorageError
from domain.pipeline.roster import InboxRoster
from domain.pipeline.types import AgentAssignment, ResponseSlot, utcnow
from storage.base import BaseInboxStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InboxModel(Base):
    __tablename__ = "inboxes"

    inbox_id = Column(String, primary_key=True)
    owner_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    channel_type = Column(String, nullable=False, default="api")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Response slot (at most one per inbox)
    response_agent_id = Column(String, ForeignKey("agents.agent_id"), nullable=True, index=True)
    response_agent_name = Column(String, nullable=True)
    response_agent_type = Column(String, nullable=True)
    response_assigned_at = Column(DateTime(timezone=True), nullable=True)
    response_config = Column(JSON, nullable=False, default=dict)

    assignments = relationship(
        "AgentAssignmentModel",
        back_populates="inbox",
        cascade="all, delete-orphan",
        order_by="AgentAssignmentModel.position",
    )


class AgentAssignmentModel(Base):
    __tablename__ = "agent_assignments"
    __table_args__ = (UniqueConstraint("inbox_id", "agent_id", name="uq_assignment_inbox_agent"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    inbox_id = Column(String, ForeignKey("inboxes.inbox_id"), nullable=False, index=True)
    agent_id = Column(String, ForeignKey("agents.agent_id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    agent_type = Column(String, nullable=False)
    priority = Column(Integer, nullable=False, default=100)
    is_active = Column(Boolean, nullable=False, default=True)
    config = Column(JSON, nullable=False, default=dict)
    assigned_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    # Index in the pipeline; keeps tie order between equal priorities
    position = Column(Integer, nullable=False, default=0)

    inbox = relationship("InboxModel", back_populates="assignments")


def _inbox_to_dict(inbox: InboxModel) -> Dict[str, Any]:
    return {
        "inbox_id": inbox.inbox_id,
        "owner_id": inbox.owner_id,
        "name": inbox.name,
        "channel_type": inbox.channel_type,
        "created_at": inbox.created_at.isoformat() if inbox.created_at else None,
        "response_agent_assigned": inbox.response_agent_id is not None,
        "agent_count": len(inbox.assignments),
        "active_agent_count": sum(1 for a in inbox.assignments if a.is_active),
    }


def _roster_from_model(inbox: InboxModel) -> InboxRoster:
    response_slot = None
    if inbox.response_agent_id:
        response_slot = ResponseSlot(
            agent_id=inbox.response_agent_id,
            name=inbox.response_agent_name or "",
            agent_type=inbox.response_agent_type or "response",
            assigned_at=inbox.response_assigned_at or utcnow(),
            config=dict(inbox.response_config or {}),
        )
    processing = [
        AgentAssignment(
            agent_id=row.agent_id,
            name=row.name,
            agent_type=row.agent_type,
            priority=row.priority,
            is_active=row.is_active,
            config=dict(row.config or {}),
            assigned_at=row.assigned_at,
        )
        for row in sorted(inbox.assignments, key=lambda r: r.position)
    ]
    return InboxRoster(inbox.inbox_id, response_slot=response_slot, processing=processing)


def _write_roster(inbox: InboxModel, roster: InboxRoster) -> None:
    """Sync rows with the roster: update in place, add new, drop removed."""
    slot = roster.response_slot
    inbox.response_agent_id = slot.agent_id if slot else None
    inbox.response_agent_name = slot.name if slot else None
    inbox.response_agent_type = slot.agent_type if slot else None
    inbox.response_assigned_at = slot.assigned_at if slot else None
    inbox.response_config = dict(slot.config) if slot else {}

    rows = {row.agent_id: row for row in inbox.assignments}
    keep = set()
    for position, assignment in enumerate(roster.processing_agents):
        keep.add(assignment.agent_id)
        row = rows.get(assignment.agent_id)
        if row is None:
            row = AgentAssignmentModel(
                agent_id=assignment.agent_id,
                name=assignment.name,
                agent_type=assignment.agent_type,
                assigned_at=assignment.assigned_at,
            )
            inbox.assignments.append(row)
        row.priority = assignment.priority
        row.is_active = assignment.is_active
        # New dict so the JSON column registers the change
        row.config = dict(assignment.config)
        row.position = position

    for agent_id, row in rows.items():
        if agent_id not in keep:
            inbox.assignments.remove(row)


class InboxSQLStore(BaseInboxStore):
    """Inbox store using SQLAlchemy"""

    def __init__(self, database: Database):
        self.database = database

    async def create_inbox(self, owner_id: str, name: str, channel_type: str = "api") -> Dict[str, Any]:
        try:
            inbox_id = str(uuid.uuid4())
            with self.database.session() as session:
                inbox = InboxModel(
                    inbox_id=inbox_id,
                    owner_id=owner_id,
                    name=name,
                    channel_type=channel_type,
                    created_at=utcnow(),
                    response_config={},
                )
                session.add(inbox)
                session.flush()
                return _inbox_to_dict(inbox)
        except Exception as e:
            logger.error(f"Error creating inbox {name}: {e}")
            raise StorageError(f"Failed to create inbox: {e}")

    async def get_inbox(self, inbox_id: str) -> Optional[Dict[str, Any]]:
        try:
            with self.database.session() as session:
                inbox = session.get(InboxModel, inbox_id)
                if not inbox:
                    return None
                return _inbox_to_dict(inbox)
        except Exception as e:
            logger.error(f"Error getting inbox {inbox_id}: {e}")
            raise StorageError(f"Failed to get inbox: {e}")

    async def list_inboxes(self, owner_id: str) -> List[Dict[str, Any]]:
        try:
            with self.database.session() as session:
                inboxes = session.scalars(
                    select(InboxModel).filter_by(owner_id=owner_id).order_by(InboxModel.created_at)
                ).all()
                return [_inbox_to_dict(inbox) for inbox in inboxes]
        except Exception as e:
            logger.error(f"Error listing inboxes for {owner_id}: {e}")
            raise StorageError(f"Failed to list inboxes: {e}")

    async def delete_inbox(self, inbox_id: str) -> None:
        """Delete inbox and all its assignments (cascade delete)"""
        try:
            with self.database.session() as session:
                inbox = session.get(InboxModel, inbox_id)
                if inbox:
                    session.delete(inbox)
        except Exception as e:
            logger.error(f"Error deleting inbox {inbox_id}: {e}")
            raise StorageError(f"Failed to delete inbox: {e}")

    async def load_roster(self, inbox_id: str) -> Optional[Tuple[Dict[str, Any], InboxRoster]]:
        try:
            with self.database.session() as session:
                inbox = session.get(InboxModel, inbox_id)
                if not inbox:
                    return None
                return _inbox_to_dict(inbox), _roster_from_model(inbox)
        except Exception as e:
            logger.error(f"Error loading roster for inbox {inbox_id}: {e}")
            raise StorageError(f"Failed to load inbox agents: {e}")

    async def mutate_roster(
        self,
        inbox_id: str,
        mutation: Callable[[InboxRoster], T],
        owner_id: Optional[str] = None,
        agent_id: Optional[str] = None
    ) -> Tuple[Dict[str, Any], InboxRoster, T]:
        try:
            with self.database.session() as session:
                # Row lock: concurrent writers on this inbox wait here
                inbox = session.scalars(
                    select(InboxModel).filter_by(inbox_id=inbox_id).with_for_update()
                ).first()
                if not inbox or (owner_id is not None and inbox.owner_id != owner_id):
                    raise NotFoundError("Inbox not found", code="InboxNotFound", details={"inboxId": inbox_id})

                # Agent row lock: delete_agent waits for this transaction, then sees the reference
                if agent_id is not None:
                    agents = Base.metadata.tables["agents"]
                    agent_row = session.execute(
                        select(agents.c.agent_id).where(agents.c.agent_id == agent_id).with_for_update()
                    ).first()
                    if agent_row is None:
                        raise NotFoundError("Agent not found", code="AgentNotFound", details={"agentId": agent_id})

                roster = _roster_from_model(inbox)
                result = mutation(roster)
                _write_roster(inbox, roster)
                session.flush()
                return _inbox_to_dict(inbox), roster, result
        except InboxAgentsException:
            # Domain errors (not found, conflicts, validation) pass through; the transaction rolled back
            raise
        except Exception as e:
            logger.error(f"Error updating roster for inbox {inbox_id}: {e}")
            raise StorageError(f"Failed to update inbox agents: {e}")

    async def find_referencing_inboxes(self, agent_id: str) -> List[Dict[str, Any]]:
        """Inboxes whose response slot or pipeline references an agent"""
        try:
            with self.database.session() as session:
                return _find_referencing_inboxes(session, agent_id)
        except Exception as e:
            logger.error(f"Error finding inboxes for agent {agent_id}: {e}")
            raise StorageError(f"Failed to find inboxes for agent: {e}")


def _find_referencing_inboxes(session, agent_id: str) -> List[Dict[str, Any]]:
    by_response = session.scalars(select(InboxModel).filter_by(response_agent_id=agent_id)).all()
    by_pipeline = session.scalars(
        select(InboxModel).join(AgentAssignmentModel).filter(AgentAssignmentModel.agent_id == agent_id)
    ).all()
    seen = {}
    for inbox in list(by_response) + list(by_pipeline):
        seen.setdefault(inbox.inbox_id, {"inbox_id": inbox.inbox_id, "name": inbox.name})
    return list(seen.values())
