"""
Root and health check endpoints
"""

from fastapi import APIRouter

router = APIRouter(tags=["root"])

@router.get("/")
async def root():
    """API root endpoint - returns API information"""
    return {
        "name": "Inbox Agents API",
        "version": "0.1.0",
        "docs": "/docs",
        "endpoints": {
            "agents": "/api/v1/agents",
            "inboxes": "/api/v1/inboxes",
            "rag": "/api/v1/rag/health",
        }
    }
