"""
Repository: in-process event store.

Same contract as `repo_events.EventRepo` but kept in dicts. Used with
`STORAGE_BACKEND=memory` for local runs and by the test suite. Nothing is
durable beyond the life of the process.
"""

import asyncio
import itertools
from datetime import datetime, timezone
from typing import Dict, Iterable, List

from errors import StorageFailure
from models import Baby, EventPayload, StoredEvent, WeightEntry


class InMemoryEventRepo:
    """Dict-backed store. No business logic here.

    Ids come from monotonically increasing counters and are never reused.
    The lock makes id assignment plus insert atomic.
    """

    def __init__(self, babies: Iterable[Baby] = ()):
        self._babies: Dict[int, Baby] = {b.id: b for b in babies}
        self._events: Dict[int, StoredEvent] = {}
        self._weights: Dict[int, List[WeightEntry]] = {}
        self._baby_ids = itertools.count(max(self._babies, default=0) + 1)
        self._event_ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def seed_babies(self, names: Iterable[str]) -> int:
        """Insert `names` only when no babies exist. Returns rows inserted."""

        async with self._lock:
            if self._babies:
                return 0
            for name in names:
                baby_id = next(self._baby_ids)
                self._babies[baby_id] = Baby(id=baby_id, name=name)
            return len(self._babies)

    async def add_baby(self, name: str) -> Baby:
        async with self._lock:
            baby_id = next(self._baby_ids)
            baby = Baby(id=baby_id, name=name)
            self._babies[baby_id] = baby
            return baby

    async def add_weight_entry(self, baby_id: int, entry: WeightEntry) -> None:
        async with self._lock:
            if baby_id not in self._babies:
                raise StorageFailure(f"baby {baby_id} does not exist")
            self._weights.setdefault(baby_id, []).append(entry)

    async def list_babies(self) -> List[Baby]:
        return [self._babies[k] for k in sorted(self._babies)]

    async def create_event(self, baby_id: int, payload: EventPayload) -> StoredEvent:
        async with self._lock:
            if baby_id not in self._babies:
                raise StorageFailure(f"baby {baby_id} does not exist")
            event = StoredEvent(
                id=next(self._event_ids),
                baby_id=baby_id,
                created_at=datetime.now(timezone.utc),
                payload=payload,
            )
            self._events[event.id] = event
            return event

    async def list_weight_entries(self, baby_id: int) -> List[WeightEntry]:
        return sorted(self._weights.get(baby_id, []), key=lambda w: w.occurred_at)

    def events(self) -> List[StoredEvent]:
        """Snapshot of stored events in id order."""

        return [self._events[k] for k in sorted(self._events)]

    async def ping(self) -> None:
        return None
