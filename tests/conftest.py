"""
Shared pytest fixtures
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from certquiz.database import init_db
from certquiz.domain.clock import FixedClock
from certquiz.repositories import InMemoryQuizRepository, SqlAlchemyQuizRepository
from certquiz.utils.cache import CacheService

from factories import make_question_row


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def engine():
    """In-memory SQLite shared by every connection of the test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture(params=["memory", "sqlalchemy"])
def repository(request, db_session):
    """Every repository test runs against both implementations"""
    if request.param == "memory":
        return InMemoryQuizRepository()
    return SqlAlchemyQuizRepository(db_session, snapshot_interval=3)


@pytest.fixture
def seeded_questions(db_session):
    """Ten CCNA questions (all answered correctly with option 'a') plus a few others"""
    rows = [
        make_question_row(f"ccna-{i:02d}", category="routing" if i % 2 else "switching")
        for i in range(10)
    ]
    rows.append(make_question_row("ccna-retired", status="retired"))
    rows.append(make_question_row("ccnp-00", exam_type="CCNP", difficulty="ADVANCED"))
    db_session.add_all(rows)
    db_session.commit()
    return rows


@pytest.fixture
def client(session_factory, clock, seeded_questions):
    from fastapi.testclient import TestClient

    from certquiz.database import get_db
    from certquiz.dependencies import get_cache, get_clock
    from certquiz.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_cache] = lambda: CacheService(enabled=False)

    # Not used as a context manager so the startup hook (and its sweeper) stays off
    yield TestClient(app)

    app.dependency_overrides.clear()
