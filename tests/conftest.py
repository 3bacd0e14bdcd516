import pytest
from fastapi.testclient import TestClient

from callcoach.core.llm import LLMServiceError
from callcoach.core.storage import MemoryStore, init_store
from server.app import app, get_llm_client, get_store


class StubClient:
    """Stands in for LLMClient: returns canned text and records prompts."""

    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.prompts = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def store():
    s = MemoryStore()
    init_store(s)
    return s


@pytest.fixture
def stub():
    return StubClient(text='{"qualityScore": 92, "appointmentOutcome": "Booked"}')


@pytest.fixture
def failing_stub():
    return StubClient(error=LLMServiceError("connection reset"))


@pytest.fixture
def api(store, stub):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_llm_client] = lambda: stub
    yield TestClient(app)
    app.dependency_overrides.clear()
