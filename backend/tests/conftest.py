import os
import pathlib
import sys
import tempfile
from datetime import datetime, timezone
from decimal import Decimal

import pytest


REPO_ROOT = pathlib.Path(__file__).resolve().parents[2]
sys.path.append(str(REPO_ROOT))


def pytest_configure():
    if os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URL"):
        return
    temp_dir = tempfile.mkdtemp(prefix="finance-ledger-tests-")
    db_path = pathlib.Path(temp_dir) / "pytest.db"
    os.environ["DATABASE_URL"] = f"sqlite:///{db_path}"


@pytest.fixture(scope="session")
def sqlite_engine():
    from backend.app.db import Base, engine
    import backend.app.models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def sqlite_session(sqlite_engine):
    from backend.app.db import Base, SessionLocal

    session = SessionLocal()
    # reports aggregate over the whole table, so every test starts empty
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def fixed_now():
    return datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def api_client(sqlite_engine, sqlite_session, fixed_now):
    from backend.app.api.deps import get_clock
    from backend.app.db import get_db
    from backend.app.main import app
    from fastapi.testclient import TestClient

    def _get_test_db():
        yield sqlite_session

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_clock] = lambda: (lambda: fixed_now)
    client = TestClient(app)
    try:
        yield client
    finally:
        app.dependency_overrides.pop(get_db, None)
        app.dependency_overrides.pop(get_clock, None)


@pytest.fixture()
def make_user(sqlite_session):
    from backend.app.models import User

    def _make(email: str, role: str = "USER"):
        user = User(email=email, name=email.split("@")[0], role=role)
        sqlite_session.add(user)
        sqlite_session.commit()
        return user

    return _make


@pytest.fixture()
def add_txn(sqlite_session):
    from backend.app.models import Transaction

    def _add(user, amount, when: datetime, txn_type: str, concept: str = "movement"):
        txn = Transaction(
            user_id=user.id,
            concept=concept,
            amount=Decimal(str(amount)),
            date=when.astimezone(timezone.utc).replace(tzinfo=None),
            type=txn_type,
        )
        sqlite_session.add(txn)
        sqlite_session.commit()
        return txn

    return _add
