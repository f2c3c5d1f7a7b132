import os
from datetime import datetime

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret-key-that-is-long-enough-for-hs256')

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from analytics_api import database  # noqa: E402
from analytics_api.auth import jwt_handler  # noqa: E402
from analytics_api.auth.principal import Principal  # noqa: E402
from analytics_api.core import config  # noqa: E402
from analytics_api.database import Base  # noqa: E402
from analytics_api.main import app  # noqa: E402


def _sqlite_date_trunc(unit: str, value: str | None) -> str | None:
    # Stand-in for PostgreSQL's date_trunc so the native strategy runs on SQLite.
    if value is None:
        return None
    moment = datetime.fromisoformat(value)
    if unit == 'minute':
        moment = moment.replace(second=0, microsecond=0)
    elif unit == 'hour':
        moment = moment.replace(minute=0, second=0, microsecond=0)
    elif unit == 'day':
        moment = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return moment.strftime('%Y-%m-%d %H:%M:%S')


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'PASSWORD_HASH_ROUNDS', 4)


@pytest.fixture
def engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, 'connect')
    def _register_functions(dbapi_connection, _connection_record):
        dbapi_connection.create_function('date_trunc', 2, _sqlite_date_trunc)

    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(session_factory, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(database, 'SessionLocal', session_factory)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[database.get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def user_token() -> str:
    principal = Principal(id='1', username='student', email='student@example.com', roles=['user'])
    return jwt_handler.issue_token(principal)


@pytest.fixture
def admin_token() -> str:
    principal = Principal(
        id='1',
        username='root',
        email='root@example.com',
        roles=['admin'],
        role='admin',
        subject_type='admin',
    )
    return jwt_handler.issue_token(principal)
