"""
Database engine, session factory and declarative base
"""
from sqlalchemy import JSON, create_engine
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, sessionmaker
import logging

from certquiz.config import settings

logger = logging.getLogger(__name__)

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def create_db_engine(url: str):
    connect_args = {}
    if url.startswith("sqlite"):
        # The expiry sweep runs its cycles in a worker thread
        connect_args["check_same_thread"] = False
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


engine = create_db_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Create all tables"""
    import certquiz.models  # noqa: F401  registers the tables on Base.metadata

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables ensured")
