import os
import pathlib
import sys
import tempfile

import pytest


REPO_ROOT = pathlib.Path(__file__).resolve().parents[2]
sys.path.append(str(REPO_ROOT))


def pytest_configure():
    if os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URL"):
        return
    temp_dir = tempfile.mkdtemp(prefix="casedesk-tests-")
    db_path = pathlib.Path(temp_dir) / "pytest.db"
    os.environ["DATABASE_URL"] = f"sqlite:///{db_path}"


@pytest.fixture(scope="session")
def sqlite_engine():
    from casedesk.app.db import Base, engine
    from casedesk.app import models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def sqlite_session(sqlite_engine):
    from casedesk.app.db import Base, SessionLocal

    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
        session.close()


@pytest.fixture()
def api_client(sqlite_engine, sqlite_session):
    from casedesk.app.db import get_db
    from casedesk.app.main import app
    from fastapi.testclient import TestClient

    def _get_test_db():
        yield sqlite_session

    app.dependency_overrides[get_db] = _get_test_db
    client = TestClient(app)
    try:
        yield client
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
def make_user(sqlite_session):
    from casedesk.app.models import User

    def _make(role: str, name: str, *, is_active: bool = True) -> User:
        user = User(
            email=f"{name.lower().replace(' ', '.')}@firm.test",
            name=name,
            role=role,
            is_active=is_active,
        )
        sqlite_session.add(user)
        sqlite_session.commit()
        return user

    return _make


@pytest.fixture()
def staff(make_user):
    """One manager, one super admin and two lawyers, as Actors keyed by label."""
    from casedesk.app.domain.access_policy import Actor

    users = {
        "manager": make_user("MANAGER", "Mona Manager"),
        "admin": make_user("SUPER_ADMIN", "Ada Admin"),
        "l1": make_user("LAWYER", "Lena Lawyer"),
        "l2": make_user("LAWYER", "Omar Counsel"),
    }
    return {label: Actor(id=user.id, role=user.role) for label, user in users.items()}

