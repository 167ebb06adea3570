import os

# Point both services at throwaway SQLite databases before their db modules
# build engines at import time.
os.environ.setdefault("USERS_DATABASE_URL", "sqlite://")
os.environ.setdefault("POSTS_DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from posts_service import app as posts_app_module
from posts_service.auth import JWT_ALG, JWT_SECRET
from posts_service.db import Base as PostsBase, get_db as get_posts_db
from posts_service.directory import UserSnapshot, get_user_directory
from shared.errors import NotFoundError
from users_service import app as users_app_module
from users_service.db import Base as UsersBase, get_db as get_users_db


def _session_factory(base):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    base.metadata.create_all(bind=engine)
    return engine, sessionmaker(bind=engine, autoflush=False, autocommit=False)


def _override_db(factory):
    def get_db():
        db = factory()
        try:
            yield db
        finally:
            db.close()
    return get_db


def make_token(user_id, secret=JWT_SECRET, minutes=30):
    now = datetime.now(timezone.utc)
    payload = {"sub": str(user_id), "iat": int(now.timestamp()), "exp": int((now + timedelta(minutes=minutes)).timestamp())}
    return jwt.encode(payload, secret, algorithm=JWT_ALG)


def auth_headers(user_id):
    return {"Authorization": f"Bearer {make_token(user_id)}"}


class FakeDirectory:
    """Stands in for the users service; profiles can be edited between calls."""

    def __init__(self):
        self.users = {}
        self.calls = []

    def add(self, user_id, name, avatar=""):
        self.users[user_id] = UserSnapshot(user_id=user_id, name=name, avatar=avatar)

    async def get_user(self, user_id):
        self.calls.append(user_id)
        if user_id not in self.users:
            raise NotFoundError("User not found")
        return self.users[user_id]


@pytest.fixture
def directory():
    d = FakeDirectory()
    d.add(1, "Alice", "//avatar/alice")
    d.add(2, "Bob", "//avatar/bob")
    return d


@pytest.fixture
def posts_session(directory):
    engine, factory = _session_factory(PostsBase)
    app = posts_app_module.app
    app.dependency_overrides[get_posts_db] = _override_db(factory)
    app.dependency_overrides[get_user_directory] = lambda: directory
    yield factory
    app.dependency_overrides.clear()
    engine.dispose()


@pytest.fixture
def posts_client(posts_session):
    return TestClient(posts_app_module.app)


@pytest.fixture
def users_session():
    engine, factory = _session_factory(UsersBase)
    app = users_app_module.app
    app.dependency_overrides[get_users_db] = _override_db(factory)
    yield factory
    app.dependency_overrides.clear()
    engine.dispose()


@pytest.fixture
def users_client(users_session):
    return TestClient(users_app_module.app)
