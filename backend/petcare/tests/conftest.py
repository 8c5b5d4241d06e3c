# tests/conftest.py
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from petcare.database import Base
from petcare.models import triage  # noqa: F401  register SymptomCheck with Base
from petcare.services.history_store import SqlHistoryStore
from petcare.services.model_invoker import ModelInvoker
from petcare.services.usage_gate import InMemoryUsageStore, UsageGate


@pytest.fixture(scope="session")
def engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

@pytest.fixture(scope="session")
def tables(engine):
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)

@pytest.fixture
def db_session(engine, tables):
    """Provides a transactional scope around each test."""
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(bind=connection)
    session = SessionLocal()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


# ---------------- Fake model provider ----------------
VALID_HIGH_JSON = """{
  "urgencyLevel": "high",
  "summary": "Vomiting with lethargy for two days needs a vet visit soon.",
  "conditions": [
    {"name": "Gastroenteritis", "severity": "high", "confidence": 0.6,
     "description": "Inflammation of the stomach and intestines.",
     "recommendedActions": ["Offer small amounts of water", "Withhold food for a few hours"]},
    {"name": "Dietary indiscretion", "severity": "medium", "confidence": 0.3,
     "description": "Eating something unusual.", "recommendedActions": []}
  ],
  "recommendations": ["See a vet within 24 hours", "Watch for blood in vomit"]
}"""


class FakeHandle:
    def __init__(self, provider):
        self.provider = provider

    def generate(self, prompt):
        self.provider.calls.append(("text", prompt, None, None))
        return self.provider.next_response()

    def generate_with_image(self, prompt, image_bytes, mime_type):
        self.provider.calls.append(("image", prompt, image_bytes, mime_type))
        return self.provider.next_response()


class FakeProvider:
    """Deterministic stand-in for Gemini that records every call."""

    def __init__(self, response=VALID_HIGH_JSON, error=None):
        self.response = response
        self.error = error
        self.calls = []
        self.initialized = 0

    def initialize(self, credential):
        self.initialized += 1
        return FakeHandle(self)

    def next_response(self):
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def fake_provider():
    return FakeProvider()

@pytest.fixture
def invoker(fake_provider):
    inv = ModelInvoker(fake_provider, "test-key", timeout_seconds=5)
    yield inv
    inv.shutdown()

@pytest.fixture
def usage_gate():
    return UsageGate(InMemoryUsageStore(), max_uses=3)

@pytest.fixture
def history_store(db_session):
    return SqlHistoryStore(db_session)

