"""
Service / facade layer.

This module implements the ingestion rules before any storage
interaction. It is free of SQL; it calls an `EventStore` (see
`models.EventStore`) to perform persistence. All write paths go through
this service so invalid events never reach storage.

Key responsibilities:
- reject bad baby ids before looking at the body
- parse raw wire values into typed ones (`parsing`)
- validate the per-kind schema and invariants (`validation`)
- make exactly one storage call per accepted event
- turn storage errors into `StorageFailure`
"""

import logging
from typing import Any, Dict, List, Mapping

from errors import StorageFailure
from models import Baby, EventStore, StoredEvent, WeightEntry
from parsing import parse_baby_id, parse_integer, parse_text, parse_timestamp
from validation import validate

logger = logging.getLogger(__name__)


_PARSERS = {
    "occurred_at": parse_timestamp,
    "started_at": parse_timestamp,
    "ended_at": parse_timestamp,
    # enum membership depends on the kind; the validator checks it
    "side": parse_text,
    "duration_minutes": parse_integer,
    "notes": parse_text,
}

# older clients send the sleep range as start_at/end_at
_ALIASES = {"started_at": "start_at", "ended_at": "end_at"}


def parse_fields(raw_fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Parse every known event field present in `raw_fields`.

    Absent values (missing, null, empty string) are left out of the result.
    `start_at`/`end_at` stand in for `started_at`/`ended_at` when those are
    missing. Unknown keys, including any client-supplied `id`, are ignored.
    """

    parsed: Dict[str, Any] = {}
    for name, parse in _PARSERS.items():
        raw = raw_fields.get(name)
        if raw is None and name in _ALIASES:
            raw = raw_fields.get(_ALIASES[name])
        value = parse(raw, name)
        if value is not None:
            parsed[name] = value
    return parsed


class EventService:
    """Business rules + validation + delegation to storage.

    Example usage:
        repo = InMemoryEventRepo()
        svc = EventService(repo)
        await svc.create_event(1, "diaper", {"occurred_at": "2026-02-25T10:00:00Z"})
    """

    def __init__(self, repo: EventStore):
        self.repo = repo

    async def create_event(
        self, baby_id: Any, kind: Any, raw_fields: Mapping[str, Any]
    ) -> StoredEvent:
        """Validate and persist a single event.

        Steps:
        1. Reject a non-positive or non-numeric `baby_id`.
        2. Parse the raw fields, then validate them against `kind`.
        3. Delegate to `repo.create_event()` for the write.

        Raises:
        - `ParseError` / `ValidationError` for bad input (storage untouched)
        - `StorageFailure` if the store fails; cancellation is not caught
        """

        # 1) identity of the baby comes first
        baby = parse_baby_id(baby_id)

        # 2) parse + validate
        payload = validate(kind, parse_fields(raw_fields))

        # 3) single write via the store
        return await self._call_store(
            "create event", self.repo.create_event(baby, payload)
        )

    async def list_babies(self) -> List[Baby]:
        """Return all babies, ascending by id."""

        return await self._call_store("list babies", self.repo.list_babies())

    async def list_weight_entries(self, baby_id: Any) -> List[WeightEntry]:
        """Return the weight history for `baby_id`, oldest first."""

        baby = parse_baby_id(baby_id)
        return await self._call_store(
            "list weight entries", self.repo.list_weight_entries(baby)
        )

    async def health_check(self) -> None:
        """Perform a lightweight storage ping."""

        await self._call_store("ping", self.repo.ping())

    async def _call_store(self, op: str, call):
        # CancelledError is a BaseException and passes through untouched.
        try:
            return await call
        except StorageFailure:
            raise
        except Exception as e:
            logger.debug("store %s failed: %r", op, e)
            raise StorageFailure(f"{op} failed") from e
