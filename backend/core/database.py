"""
Process-wide SQL database handle
"""

import logging
from pathlib import Path
from typing import Optional
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool
from core.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class Database:
    """
    Owns the SQLAlchemy engine and session factory for the process.

    Created once at startup (see core.startup) and disposed on shutdown.
    Stores receive the instance; nothing else opens connections.
    """

    def __init__(self, db_url: Optional[str] = None):
        self.db_url = db_url or self._get_db_url()
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None

    @staticmethod
    def _get_db_url() -> str:
        # Prioritize database_url for managed services
        if settings.database_url:
            return settings.database_url

        if settings.postgres_host:
            if not settings.postgres_password:
                raise ValueError(
                    "PostgreSQL password is required. Set POSTGRES_PASSWORD environment variable "
                    "or DATABASE_URL connection string."
                )
            return (
                f"postgresql://{settings.postgres_user}:{settings.postgres_password}"
                f"@{settings.postgres_host}:{settings.postgres_port}/{settings.postgres_database}"
            )

        sqlite_path = Path(settings.sqlite_path)
        sqlite_path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{sqlite_path}"

    @property
    def is_initialized(self) -> bool:
        return self.engine is not None

    def init(self) -> None:
        """Create the engine and tables. Calling twice is a no-op."""
        if self.is_initialized:
            return

        if self.db_url.startswith("sqlite"):
            engine_kwargs = {"connect_args": {"check_same_thread": False}}
            if self.db_url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise every session sees an empty database
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs = {
                "pool_pre_ping": True,  # Verify connections before using
                "pool_size": 5,
                "max_overflow": 10,
            }

        self.engine = create_engine(self.db_url, **engine_kwargs)

        # Models register themselves on Base when their modules are imported
        import storage.agent_sql_store  # noqa: F401
        import storage.inbox_sql_store  # noqa: F401

        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)
        logger.info(f"Database initialized ({self.engine.dialect.name})")

    def session(self):
        """Begin a transaction-scoped session: `with db.session() as session:`"""
        if not self.is_initialized:
            raise RuntimeError("Database is not initialized. Call Database.init() first.")
        return self.SessionLocal.begin()

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            logger.info("Database engine disposed")
        self.engine = None
        self.SessionLocal = None
