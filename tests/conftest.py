import os

# Keep the app away from any real database while tests import it
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CREATE_TABLES_ON_STARTUP", "false")

import threading

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db, enable_sqlite_foreign_keys
from app.main import app
from app.models.user import User, Role
from app.models.store import Store
from app.models.rating import Rating
from app.utils.exceptions import ConflictError
from app.utils.security import create_access_token

SQLALCHEMY_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# bcrypt hash of "password123"; hashing per fixture is too slow
FAKE_PASSWORD_HASH = "$2b$12$LQv3c1yqBWVHxkd0LHAkCOYz6TtxMQJqhN8/X4.V2RqFi0W7e8y7e"


@pytest.fixture
def db_session():
    """Provide a clean database session for each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_session):
    """FastAPI test client with the database dependency overridden."""

    def override_get_db():
        test_db = TestingSessionLocal()
        try:
            yield test_db
        finally:
            test_db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.pop(get_db, None)


# ============================================
# FACTORIES
# ============================================

@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make_user(role=Role.NORMAL_USER, name=None, email=None, address=None):
        counter["n"] += 1
        user = User(
            name=name or f"Test User {counter['n']}",
            email=email or f"user{counter['n']}@example.com",
            password_hash=FAKE_PASSWORD_HASH,
            address=address,
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_store(db_session, make_user):
    counter = {"n": 0}

    def _make_store(name=None, email=None, address=None, owner=None):
        counter["n"] += 1
        owner = owner or make_user(role=Role.STORE_OWNER, name=f"Store Owner {counter['n']}")
        store = Store(
            name=name or f"Store {counter['n']}",
            email=email or f"store{counter['n']}@example.com",
            address=address,
            owner_id=owner.id,
        )
        db_session.add(store)
        db_session.commit()
        db_session.refresh(store)
        return store

    return _make_store


@pytest.fixture
def make_rating(db_session):
    def _make_rating(user, store, value):
        rating = Rating(user_id=user.id, store_id=store.id, rating=value)
        db_session.add(rating)
        db_session.commit()
        db_session.refresh(rating)
        return rating

    return _make_rating


@pytest.fixture
def admin(make_user):
    return make_user(role=Role.ADMIN, name="Admin User", email="admin@example.com")


@pytest.fixture
def normal_user(make_user):
    return make_user(role=Role.NORMAL_USER, name="Normal User", email="normal@example.com")


def auth_headers_for(user):
    """Bearer header for a user; uses user_id in payload as dependencies.py expects"""
    token = create_access_token(data={"sub": user.email, "user_id": user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return auth_headers_for


# ============================================
# CONCURRENCY
# ============================================

@pytest.fixture
def file_session_factory(tmp_path):
    """Sessions on a file-backed SQLite database, one connection each, for multi-threaded tests."""
    file_engine = create_engine(
        f"sqlite:///{tmp_path / 'concurrent.db'}",
        connect_args={"check_same_thread": False, "timeout": 10},
    )
    enable_sqlite_foreign_keys(file_engine)
    Base.metadata.create_all(bind=file_engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
    finally:
        file_engine.dispose()


@pytest.fixture
def run_concurrently(file_session_factory):
    """
    Run `action(db)` in `count` threads, each with its own session.
    Returns the sorted outcomes: "ok", "conflict", "timeout" or the exception class name.
    """
    def _run(action, count=2):
        outcomes = ["timeout"] * count

        def worker(index):
            db = file_session_factory()
            try:
                action(db)
                outcomes[index] = "ok"
            except ConflictError:
                outcomes[index] = "conflict"
            except Exception as exc:
                outcomes[index] = type(exc).__name__
            finally:
                db.close()

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)
        return sorted(outcomes)

    return _run
