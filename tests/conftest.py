import os

os.environ.setdefault("CHAT_DATABASE_URL", "sqlite://")
os.environ.setdefault("GEMINI_API_KEY", "test-key")

import pytest
from sqlalchemy.pool import StaticPool

from backend.app.db.database import init_db, make_engine, make_session_factory
from backend.app.services.persistence import ChatStore


class FakeGenerator:
    def __init__(self, reply="Hello there", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def generate(self, messages):
        self.calls.append([dict(m) for m in messages])
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(session_factory):
    return ChatStore(session_factory)


@pytest.fixture
def fake_generator():
    return FakeGenerator()


@pytest.fixture
def make_generator():
    return FakeGenerator
