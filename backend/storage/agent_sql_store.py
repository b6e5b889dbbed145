"""
Agent SQL store: agents and their context documents
"""

import enum
import logging
import uuid
from typing import Any, Dict, List, Optional
from sqlalchemy import JSON, Boolean, Column, DateTime, Enum, ForeignKey, Integer, String, select
from sqlalchemy.orm import relationship
from core.database import Base, Database
from core.exceptions import ConflictError, InboxAgentsException, StorageError, ValidationError
from domain.pipeline.types import Agent, AgentDocument, agent_adapter, utcnow
from storage.base import BaseAgentStore
from storage.inbox_sql_store import _find_referencing_inboxes

logger = logging.getLogger(__name__)


class AgentRole(enum.Enum):
    RESPONSE = "response"
    PROCESSING = "processing"


class ProcessingStage(enum.Enum):
    PRE_PROCESS = "pre-process"
    ANALYTICS = "analytics"
    MODERATION = "moderation"
    ROUTING = "routing"
    POST_PROCESS = "post-process"


class DocumentType(enum.Enum):
    FILE = "file"
    URL = "url"
    WEBSITE = "website"


class AgentModel(Base):
    __tablename__ = "agents"

    agent_id = Column(String, primary_key=True)
    owner_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    # Fixed at creation; pipeline rules key off it
    role = Column(Enum(AgentRole, name="agent_role"), nullable=False, index=True)
    stage = Column(Enum(ProcessingStage, name="processing_stage"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    settings = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    documents = relationship(
        "AgentDocumentModel",
        back_populates="agent",
        cascade="all, delete-orphan",
        order_by="AgentDocumentModel.uploaded_at",
    )


class AgentDocumentModel(Base):
    __tablename__ = "agent_documents"

    document_id = Column(String, primary_key=True)
    agent_id = Column(String, ForeignKey("agents.agent_id"), nullable=False, index=True)
    doc_type = Column(Enum(DocumentType, name="document_type"), nullable=False)
    title = Column(String, nullable=False)
    source = Column(String, nullable=True)
    uploaded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    chunks_count = Column(Integer, nullable=False, default=0)

    agent = relationship("AgentModel", back_populates="documents")


def _document_to_domain(doc: AgentDocumentModel) -> AgentDocument:
    return AgentDocument(
        document_id=doc.document_id,
        type=doc.doc_type.value if isinstance(doc.doc_type, DocumentType) else doc.doc_type,
        title=doc.title,
        source=doc.source,
        uploaded_at=doc.uploaded_at,
        chunks_count=doc.chunks_count or 0,
    )


def _agent_to_domain(agent: AgentModel) -> Agent:
    data: Dict[str, Any] = {
        "agent_id": agent.agent_id,
        "owner_id": agent.owner_id,
        "name": agent.name,
        "description": agent.description,
        "role": agent.role.value if isinstance(agent.role, AgentRole) else agent.role,
        "is_active": agent.is_active,
        "settings": dict(agent.settings or {}),
        "documents": [_document_to_domain(doc) for doc in agent.documents],
        "created_at": agent.created_at,
    }
    if data["role"] == AgentRole.PROCESSING.value and agent.stage is not None:
        data["stage"] = agent.stage.value if isinstance(agent.stage, ProcessingStage) else agent.stage
    return agent_adapter.validate_python(data)


class AgentSQLStore(BaseAgentStore):
    """Agent store using SQLAlchemy"""

    def __init__(self, database: Database):
        self.database = database

    async def create_agent(
        self,
        owner_id: str,
        name: str,
        role: str,
        stage: Optional[str] = None,
        description: Optional[str] = None,
        settings: Optional[Dict[str, Any]] = None
    ) -> Agent:
        try:
            try:
                role_enum = AgentRole(role)
            except ValueError:
                raise ValidationError(
                    f"Invalid role: {role}. Must be one of: {[e.value for e in AgentRole]}",
                    code="InvalidRole",
                )

            stage_enum = None
            if role_enum is AgentRole.PROCESSING:
                try:
                    stage_enum = ProcessingStage.PRE_PROCESS if stage is None else ProcessingStage(stage)
                except ValueError:
                    raise ValidationError(
                        f"Invalid stage: {stage}. Must be one of: {[e.value for e in ProcessingStage]}",
                        code="InvalidStage",
                    )
            elif stage is not None:
                raise ValidationError("Response agents do not have a processing stage", code="InvalidStage")

            with self.database.session() as session:
                agent = AgentModel(
                    agent_id=str(uuid.uuid4()),
                    owner_id=owner_id,
                    name=name,
                    description=description,
                    role=role_enum,
                    stage=stage_enum,
                    is_active=True,
                    settings=settings or {},
                    created_at=utcnow(),
                )
                session.add(agent)
                session.flush()
                return _agent_to_domain(agent)
        except InboxAgentsException:
            raise
        except Exception as e:
            logger.error(f"Error creating agent {name}: {e}")
            raise StorageError(f"Failed to create agent: {e}")

    async def get_agent(self, agent_id: str) -> Optional[Agent]:
        try:
            with self.database.session() as session:
                agent = session.get(AgentModel, agent_id)
                if not agent:
                    return None
                return _agent_to_domain(agent)
        except Exception as e:
            logger.error(f"Error getting agent {agent_id}: {e}")
            raise StorageError(f"Failed to get agent: {e}")

    async def list_agents(self, owner_id: str) -> List[Agent]:
        try:
            with self.database.session() as session:
                agents = session.scalars(
                    select(AgentModel).filter_by(owner_id=owner_id).order_by(AgentModel.created_at)
                ).all()
                return [_agent_to_domain(agent) for agent in agents]
        except Exception as e:
            logger.error(f"Error listing agents for {owner_id}: {e}")
            raise StorageError(f"Failed to list agents: {e}")

    async def delete_agent(self, agent_id: str) -> None:
        """Delete agent and its document records, unless an inbox still references it"""
        try:
            with self.database.session() as session:
                # Locked so an assignment in flight either commits first or finds no agent
                agent = session.scalars(
                    select(AgentModel).filter_by(agent_id=agent_id).with_for_update()
                ).first()
                if not agent:
                    return
                referencing = _find_referencing_inboxes(session, agent_id)
                if referencing:
                    raise ConflictError(
                        "Agent is assigned to one or more inboxes. Remove it from those inboxes first.",
                        code="AgentInUse",
                        details={"agentId": agent_id, "inboxes": referencing},
                    )
                session.delete(agent)
        except InboxAgentsException:
            raise
        except Exception as e:
            logger.error(f"Error deleting agent {agent_id}: {e}")
            raise StorageError(f"Failed to delete agent: {e}")

    async def add_document(
        self,
        agent_id: str,
        doc_type: str,
        title: str,
        source: Optional[str] = None
    ) -> AgentDocument:
        try:
            try:
                doc_type_enum = DocumentType(doc_type)
            except ValueError:
                raise ValidationError(
                    f"Invalid document type: {doc_type}. Must be one of: {[e.value for e in DocumentType]}",
                    code="InvalidDocumentType",
                )

            with self.database.session() as session:
                doc = AgentDocumentModel(
                    document_id=str(uuid.uuid4()),
                    agent_id=agent_id,
                    doc_type=doc_type_enum,
                    title=title,
                    source=source,
                    uploaded_at=utcnow(),
                    chunks_count=0,
                )
                session.add(doc)
                session.flush()
                return _document_to_domain(doc)
        except InboxAgentsException:
            raise
        except Exception as e:
            logger.error(f"Error adding document {title} to agent {agent_id}: {e}")
            raise StorageError(f"Failed to add document: {e}")

    async def update_document_chunks(self, document_id: str, chunks_count: int) -> None:
        try:
            with self.database.session() as session:
                doc = session.get(AgentDocumentModel, document_id)
                if doc:
                    doc.chunks_count = chunks_count
        except Exception as e:
            logger.error(f"Error updating chunk count for document {document_id}: {e}")
            raise StorageError(f"Failed to update document: {e}")

    async def delete_document(self, agent_id: str, document_id: str) -> None:
        try:
            with self.database.session() as session:
                doc = session.scalars(
                    select(AgentDocumentModel).filter_by(agent_id=agent_id, document_id=document_id)
                ).first()
                if doc:
                    session.delete(doc)
        except Exception as e:
            logger.error(f"Error deleting document {document_id}: {e}")
            raise StorageError(f"Failed to delete document: {e}")
