"""Database configuration and session management"""

from typing import Generator
import logging

from fastapi import Request
from sqlalchemy import create_engine, text, inspect
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from wateradmin.config import settings
from wateradmin.core.context import bind_request

logger = logging.getLogger(__name__)


def _build_engine(url: str):
    """Create the engine; SQLite (tests, local tooling) cannot take pool sizing."""
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        options = {"connect_args": {"check_same_thread": False}, "echo": settings.DEBUG}
        if parsed.database in (None, "", ":memory:"):
            # One shared connection, otherwise every checkout sees an empty database.
            options["poolclass"] = StaticPool
        return create_engine(url, **options)

    return create_engine(
        url,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_timeout=30,
        pool_recycle=3600,
        pool_pre_ping=True,
        echo=settings.DEBUG
    )


engine = _build_engine(settings.get_database_url())

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create base class for models
Base = declarative_base()

# Import models after Base is defined so metadata is populated.
from wateradmin import models  # noqa: E402,F401


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Dependency for getting database session

    The caller's IP and user agent are attached to ``Session.info`` so the
    activity log can enrich entries written on behalf of this request.

    Yields:
        Session: Database session
    """
    db = SessionLocal()
    bind_request(db, request)
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """
    Initialize database according to configured strategy.

    DB_INIT_MODE:
      - migrate: require alembic_version table (migration-first discipline)
      - create_all: legacy behavior for local/dev bootstrap
      - off: skip initialization check
    """
    mode = settings.DB_INIT_MODE.lower().strip()
    if mode == "off":
        logger.info("DB initialization check skipped (DB_INIT_MODE=off)")
        return

    if mode == "create_all":
        Base.metadata.create_all(bind=engine)
        logger.warning("Using create_all database initialization (recommended only for local development).")
        return

    if mode == "migrate":
        with engine.connect() as conn:
            if engine.dialect.name == "postgresql":
                version_table_exists = conn.execute(
                    text("SELECT to_regclass('public.alembic_version')")
                ).scalar()
                exists = bool(version_table_exists)
            else:
                exists = "alembic_version" in inspect(conn).get_table_names()
            if settings.DB_REQUIRE_HEAD and not exists:
                raise RuntimeError(
                    "Migration table missing. Run Alembic migrations before starting the API."
                )
        logger.info("Migration metadata detected.")
        return

    raise RuntimeError(f"Unknown DB_INIT_MODE: {settings.DB_INIT_MODE}")
