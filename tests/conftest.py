"""Pytest fixtures: in-memory SQLite per test and small user/skill factories."""

import itertools
import os
import sys
from pathlib import Path

# Keep the API module's create_all away from the working directory
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

# Ensure project root is on sys.path so `import skillbridge` works without install
PROJECT_ROOT = Path(__file__).resolve().parents[1]
project_root_str = str(PROJECT_ROOT)
if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from skillbridge import models  # noqa: F401 - register tables on Base.metadata
from skillbridge.crud import user as user_crud
from skillbridge.database import Base
from skillbridge.repository import SqlRepository
from skillbridge.services import skill_catalog


# ======================
# TEST DATABASE SETUP
# ======================

@pytest.fixture
def engine():
    """Fresh in-memory database shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def repo(db_session):
    return SqlRepository(db_session)


@pytest.fixture
def make_user(db_session, repo):
    """Create a user, optionally with teaching/learning skill names."""
    counter = itertools.count(1)

    def _make(name=None, teaches=(), learns=(), location=None):
        n = next(counter)
        user = user_crud.create_user(
            db_session,
            email=f"user{n}@example.com",
            name=name or f"User {n}",
            location=location,
        )
        db_session.commit()
        if teaches or learns:
            skill_catalog.set_user_skills(repo, user.id, teaches, learns)
        return user

    return _make
