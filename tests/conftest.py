"""
Pytest configuration for the Vacancy API.

Every test gets a fresh in-memory SQLite database, a memory cache driven by a
fake clock, and (for HTTP tests) a TestClient wired to both through
dependency overrides and app.state.
"""
import os
import sys
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

# Never touch a developer's real database or Redis from the test suite
os.environ.setdefault("VACANCY_DATABASE_URL", "sqlite://")
os.environ.setdefault("VACANCY_CACHE_BACKEND", "memory")
os.environ.setdefault("VACANCY_RUN_MIGRATIONS_ON_STARTUP", "false")

from vacancy_api.auth.models import User  # noqa: E402,F401
from vacancy_api.cache import MemoryCache  # noqa: E402
from vacancy_api.database import Base, get_db  # noqa: E402
from vacancy_api.models import Vacancy  # noqa: E402
from vacancy_api.repositories import LikeSearch, VacancyRepository  # noqa: E402
from vacancy_api.services import VacancyService  # noqa: E402


class FakeClock:
    """Manually advanced time source for caches and rate limiters."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ==================== Database ====================

@pytest.fixture(scope="function")
def test_db_engine():
    """In-memory database; StaticPool keeps a single connection so all sessions share it."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


# ==================== Cache / service ====================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return MemoryCache(clock=clock)


@pytest.fixture
def repository(db_session):
    return VacancyRepository(db_session, LikeSearch())


@pytest.fixture
def service(repository, cache):
    return VacancyService(repository, cache)


@pytest.fixture
def make_vacancy(db_session):
    """Insert a vacancy directly, bypassing the service and its cache."""
    def _make(title="Python Developer", description="Build APIs with FastAPI", salary=100000, **extra):
        vacancy = Vacancy(title=title, description=description, salary=salary, **extra)
        db_session.add(vacancy)
        db_session.commit()
        db_session.refresh(vacancy)
        return vacancy
    return _make


# ==================== HTTP ====================

@pytest.fixture
def app(session_factory, cache):
    """The FastAPI app bound to the test database and cache, without rate limiting."""
    from vacancy_api.main import app as fastapi_app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    saved_state = {
        name: getattr(fastapi_app.state, name)
        for name in ("cache", "search_strategy", "rate_limiter", "trust_forwarded_for", "require_token_for_writes")
    }
    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.state.cache = cache
    fastapi_app.state.search_strategy = LikeSearch()
    fastapi_app.state.rate_limiter = None
    fastapi_app.state.trust_forwarded_for = False
    fastapi_app.state.require_token_for_writes = False

    yield fastapi_app

    fastapi_app.dependency_overrides.clear()
    for name, value in saved_state.items():
        setattr(fastapi_app.state, name, value)


@pytest.fixture
def client(app):
    # Not used as a context manager, so the lifespan (migrations) never runs
    return TestClient(app)


@pytest.fixture
def sample_payload():
    return {
        "title": "Senior Python Developer",
        "description": "Design and build backend services in Python",
        "salary": 250000,
        "additional_fields": {"company": "Acme", "location": "Remote"},
    }
