from datetime import datetime, timezone

import pytest

from models import Baby, StoredEvent
from repo_memory import InMemoryEventRepo


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def repo():
    return InMemoryEventRepo(babies=[Baby(id=1, name="Alice"), Baby(id=2, name="Bob")])


class RecordingStore:
    """Event store stub that records calls and can be told to fail."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls = []

    async def list_babies(self):
        self.calls.append(("list_babies",))
        if self.error:
            raise self.error
        return [Baby(id=1, name="Alice")]

    async def create_event(self, baby_id, payload):
        self.calls.append(("create_event", baby_id, payload))
        if self.error:
            raise self.error
        return StoredEvent(
            id=99, baby_id=baby_id, created_at=datetime.now(timezone.utc), payload=payload
        )

    async def list_weight_entries(self, baby_id):
        self.calls.append(("list_weight_entries", baby_id))
        if self.error:
            raise self.error
        return []

    async def ping(self):
        self.calls.append(("ping",))
        if self.error:
            raise self.error


@pytest.fixture
def recording_store():
    return RecordingStore()
