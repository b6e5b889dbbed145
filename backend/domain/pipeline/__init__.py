"""
Inbox agent pipelines
"""

from domain.pipeline.roster import InboxRoster, check_assignable, validate_priority
from domain.pipeline.types import (
    Agent,
    AgentAssignment,
    AgentDocument,
    ProcessingAgent,
    ResponseAgent,
    ResponseSlot,
    agent_adapter,
)

__all__ = [
    "Agent",
    "AgentAssignment",
    "AgentDocument",
    "InboxRoster",
    "ProcessingAgent",
    "ResponseAgent",
    "ResponseSlot",
    "agent_adapter",
    "check_assignable",
    "validate_priority",
]
