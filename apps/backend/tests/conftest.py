from __future__ import annotations

import os
import tempfile
from typing import Generator, Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fintrack.core.database import Base, enable_sqlite_pragmas, get_db
from fintrack.core.deps import get_current_user
from fintrack.main import app
from fintrack import models


@pytest.fixture(scope="session")
def test_db_url() -> Generator[str, Any, Any]:
    # temp file SQLite so the developer database is never touched
    fd, path = tempfile.mkstemp(prefix="fintrack_test_", suffix=".sqlite3")
    os.close(fd)
    url = f"sqlite:///{path}"
    yield url
    for suffix in ("", "-wal", "-shm"):
        try:
            os.remove(path + suffix)
        except OSError:
            pass


@pytest.fixture(scope="session")
def engine(test_db_url: str):
    eng = create_engine(test_db_url, connect_args={"check_same_thread": False})
    enable_sqlite_pragmas(eng)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Any, Any, Any]:
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSessionLocal()
    session.add_all(
        [
            models.User(email="u1@example.com", is_active=True),
            models.User(email="u2@example.com", is_active=True),
        ]
    )
    session.commit()

    try:
        yield session
    finally:
        session.close()
        with engine.begin() as conn:
            for tbl in reversed(Base.metadata.sorted_tables):
                conn.execute(tbl.delete())


@pytest.fixture()
def user(db_session) -> models.User:
    return db_session.query(models.User).filter_by(email="u1@example.com").one()


@pytest.fixture()
def other_user(db_session) -> models.User:
    return db_session.query(models.User).filter_by(email="u2@example.com").one()


@pytest.fixture()
def act_as():
    """Switch the user every API request runs as."""

    def _act_as(target: models.User) -> None:
        app.dependency_overrides[get_current_user] = lambda: target

    return _act_as


@pytest.fixture(autouse=True)
def override_dependency(db_session, user, act_as):
    def _get_db_override():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _get_db_override
    act_as(user)
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def client(db_session):
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def make_account(db_session):
    from fintrack.schemas import AccountCreate
    from fintrack.services import AccountService

    def _make(owner: models.User, name: str = "Checking", **kwargs) -> models.Account:
        account_type = kwargs.pop("type", "checking")
        payload = AccountCreate(name=name, type=account_type, **kwargs)
        return AccountService(db_session).create(owner.id, payload)

    return _make


@pytest.fixture()
def make_category(db_session):
    from fintrack.schemas import CategoryCreate
    from fintrack.services import CategoryService

    def _make(owner: models.User, name: str, parent: models.Category | None = None, **kwargs) -> models.Category:
        payload = CategoryCreate(name=name, parent_id=parent.id if parent else None, **kwargs)
        return CategoryService(db_session).create(owner.id, payload)

    return _make
