import os

# main builds a default app at import time; keep it off the production database.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from config import Settings
from db import Base, make_engine, make_session_factory
from main import create_app
from storage import Storage


@pytest.fixture
def engine():
    engine = make_engine("sqlite://", echo=False, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    session = make_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture
def storage(session):
    return Storage(session)


@pytest.fixture
def user(storage):
    return storage.create_user("ada")


@pytest.fixture
def client(engine):
    app = create_app(Settings(database_url="sqlite://"), engine=engine)
    with TestClient(app) as client:
        yield client
