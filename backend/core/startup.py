"""
Application startup and initialization logic
"""

import logging
from fastapi import FastAPI, HTTPException
from core.database import Database
from storage import AgentSQLStore, InboxSQLStore, ChromaChunkStore
from services.agent_service import AgentService
from services.inbox_service import InboxService
from services.pipeline_service import PipelineService
from services.retrieval_service import RetrievalService

logger = logging.getLogger(__name__)


def raise_startup_error(message: str, error: Exception = None) -> None:
    """Helper to raise HTTPException for startup errors."""
    detail = f"{message}: {error}" if error else message
    raise HTTPException(status_code=500, detail=detail)


async def initialize_storage(app: FastAPI, database: Database = None, chunk_store=None):
    """Open the database and the chunk store client. Both live for the whole process."""
    database = database or Database()
    try:
        database.init()
    except Exception as e:
        raise_startup_error("Failed to initialize database", e)

    if chunk_store is None:
        try:
            chunk_store = ChromaChunkStore()
        except Exception as e:
            raise_startup_error("Failed to initialize chunk store", e)

    app.state.database = database
    app.state.chunk_store = chunk_store
    app.state.agent_store = AgentSQLStore(database)
    app.state.inbox_store = InboxSQLStore(database)


async def initialize_services(app: FastAPI):
    """Wire services on top of the stores created by initialize_storage."""
    agent_store = app.state.agent_store
    inbox_store = app.state.inbox_store
    chunk_store = app.state.chunk_store

    app.state.agent_service = AgentService(agent_store=agent_store, chunk_store=chunk_store)
    app.state.inbox_service = InboxService(inbox_store=inbox_store)
    app.state.pipeline_service = PipelineService(inbox_store=inbox_store, agent_store=agent_store)
    app.state.retrieval_service = RetrievalService(chunk_store=chunk_store, agent_store=agent_store)
    logger.info("Services initialized")


async def cleanup_storage(app: FastAPI):
    """Dispose the database engine."""
    if hasattr(app.state, 'database') and app.state.database:
        try:
            app.state.database.close()
        except Exception as e:
            logger.error(f"Error during database cleanup: {e}", exc_info=True)
