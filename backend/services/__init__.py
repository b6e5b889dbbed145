"""
Service layer (business logic orchestration)
"""

from services.base import BaseService
from services.pipeline_service import PipelineService
from services.retrieval_service import RetrievalService
from services.agent_service import AgentService
from services.inbox_service import InboxService

__all__ = [
    "BaseService",
    "PipelineService",
    "RetrievalService",
    "AgentService",
    "InboxService",
]
