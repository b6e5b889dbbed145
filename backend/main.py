"""
App setup, middleware, lifespan
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from core.config import settings
from core.startup import cleanup_storage, initialize_services, initialize_storage
from api.routes import agents, inboxes, pipeline, retrieval, root

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic"""
    try:
        await initialize_storage(app)
        await initialize_services(app)
        logger.info(f"Inbox Agents API started ({settings.environment})")
        yield
    finally:
        await cleanup_storage(app)


def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(title="Inbox Agents API", lifespan=lifespan if use_lifespan else None)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Allows all origins
        allow_credentials=True,
        allow_methods=["*"],  # Allows all methods
        allow_headers=["*"],  # Allows all headers
    )

    app.include_router(root.router)
    app.include_router(inboxes.router)
    app.include_router(pipeline.router)
    app.include_router(agents.router)
    app.include_router(retrieval.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
