"""Database connection and session management."""

from contextlib import contextmanager
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from taumine.logging_config import get_logger
from taumine.settings import settings
from taumine.storage.models import Base

logger = get_logger(__name__)


class Database:
    """Database connection manager."""

    def __init__(self, database_url: str | None = None, echo: bool = False):
        """Initialize database connection.

        Args:
            database_url: Database URL (defaults to settings)
            echo: Log emitted SQL
        """
        self.database_url = database_url or settings.database_url

        engine_kwargs: dict = {"echo": echo, "pool_pre_ping": True}
        if self.database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if self.database_url in ("sqlite://", "sqlite:///:memory:"):
                # A single shared connection keeps the in-memory database alive
                engine_kwargs["poolclass"] = StaticPool

        self.engine = create_engine(self.database_url, **engine_kwargs)
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )
        logger.info("database_initialized", url=self.engine.url.render_as_string(hide_password=True))

    def create_tables(self) -> None:
        """Create all tables in the database."""
        # Auth models share the declarative base and must be registered first
        import taumine.auth.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("tables_created")

    def drop_tables(self) -> None:
        """Drop all tables from the database."""
        Base.metadata.drop_all(bind=self.engine)
        logger.warning("tables_dropped")

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Provide a transactional scope for database operations.

        Yields:
            Database session
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


def get_db(request: Request) -> Database:
    """FastAPI dependency returning the application's database."""
    return request.app.state.db


def get_session(request: Request) -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    with get_db(request).session() as session:
        yield session
