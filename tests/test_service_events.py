"""
EventService: ordering of checks, single storage call, error surfacing.
"""

import asyncio
from datetime import datetime, timezone

import pytest

from errors import BadInput, ParseError, StorageFailure, ValidationError
from models import DiaperEvent, NursingEvent, SleepEvent
from service_events import EventService, parse_fields

DIAPER = {"occurred_at": "2026-02-25T10:00:00Z"}
NURSING = {
    "side": "left",
    "started_at": "2026-02-25T10:45:00Z",
    "ended_at": "2026-02-25T11:00:00Z",
}
SLEEP = {"started_at": "2026-02-25T12:00:00Z", "ended_at": "2026-02-25T13:00:00Z"}


class TestParseFields:

    def test_known_fields_parsed_unknown_ignored(self):
        got = parse_fields({**NURSING, "duration_minutes": "15", "id": 7, "type": "nursing"})
        assert got == {
            "side": "left",
            "started_at": datetime(2026, 2, 25, 10, 45, tzinfo=timezone.utc),
            "ended_at": datetime(2026, 2, 25, 11, 0, tzinfo=timezone.utc),
            "duration_minutes": 15,
        }

    def test_absent_values_dropped(self):
        assert parse_fields({"occurred_at": "", "notes": None}) == {}

    def test_start_at_end_at_aliases(self):
        got = parse_fields({"start_at": SLEEP["started_at"], "end_at": SLEEP["ended_at"]})
        assert got == {
            "started_at": datetime(2026, 2, 25, 12, 0, tzinfo=timezone.utc),
            "ended_at": datetime(2026, 2, 25, 13, 0, tzinfo=timezone.utc),
        }

    def test_canonical_key_wins_over_alias(self):
        got = parse_fields({**SLEEP, "start_at": "not a time"})
        assert got["started_at"] == datetime(2026, 2, 25, 12, 0, tzinfo=timezone.utc)

    def test_malformed_timestamp(self):
        with pytest.raises(ParseError) as exc:
            parse_fields({"occurred_at": "2026-02-25 10:00"})
        assert exc.value.field == "occurred_at"


@pytest.mark.anyio
class TestCreateEvent:

    async def test_diaper_scenario(self, repo):
        svc = EventService(repo)
        event = await svc.create_event(1, "diaper", DIAPER)

        assert event.id == 1
        assert event.baby_id == 1
        assert event.payload == DiaperEvent(
            occurred_at=datetime(2026, 2, 25, 10, 0, tzinfo=timezone.utc)
        )
        body = event.as_response()
        assert body["kind"] == "diaper"
        for absent in ("started_at", "ended_at", "side", "duration_minutes", "notes"):
            assert absent not in body

    async def test_nursing_and_sleep_round_trip(self, repo):
        svc = EventService(repo)
        nursing = await svc.create_event("2", "NURSING", {**NURSING, "duration_minutes": 15})
        sleep = await svc.create_event(2, "sleep", SLEEP)

        assert isinstance(nursing.payload, NursingEvent)
        assert nursing.as_response()["side"] == "left"
        assert nursing.as_response()["duration_minutes"] == 15
        assert isinstance(sleep.payload, SleepEvent)
        assert sleep.id > nursing.id
        assert [e.id for e in repo.events()] == [nursing.id, sleep.id]

    async def test_client_supplied_id_ignored(self, repo):
        svc = EventService(repo)
        event = await svc.create_event(1, "diaper", {**DIAPER, "id": 500})
        assert event.id == 1

    async def test_end_before_start_rejected(self, recording_store):
        svc = EventService(recording_store)
        fields = {
            "side": "left",
            "started_at": "2026-02-25T11:00:00Z",
            "ended_at": "2026-02-25T10:45:00Z",
        }
        with pytest.raises(ValidationError) as exc:
            await svc.create_event(1, "nursing", fields)
        assert exc.value.field == "ended_at"
        assert recording_store.calls == []

    async def test_invalid_side_rejected(self, recording_store):
        svc = EventService(recording_store)
        with pytest.raises(ValidationError) as exc:
            await svc.create_event(1, "nursing", {**NURSING, "side": "middle"})
        assert exc.value.field == "side"
        assert recording_store.calls == []

    @pytest.mark.parametrize("baby_id", [0, -1, "abc", "", None])
    async def test_bad_baby_id_rejected_before_parsing(self, recording_store, baby_id):
        svc = EventService(recording_store)
        # body is garbage too; the id error must win
        with pytest.raises(ParseError) as exc:
            await svc.create_event(baby_id, "bogus", {"occurred_at": "not a time"})
        assert exc.value.field == "baby_id"
        assert recording_store.calls == []

    async def test_parse_error_never_reaches_storage(self, recording_store):
        svc = EventService(recording_store)
        with pytest.raises(BadInput):
            await svc.create_event(1, "diaper", {"occurred_at": "tomorrow"})
        assert recording_store.calls == []

    async def test_exactly_one_storage_call(self, recording_store):
        svc = EventService(recording_store)
        event = await svc.create_event(3, "sleep", SLEEP)
        assert event.id == 99
        assert [c[0] for c in recording_store.calls] == ["create_event"]
        assert recording_store.calls[0][1] == 3

    async def test_storage_error_surfaces_as_storage_failure(self, recording_store):
        boom = ConnectionError("db down")
        recording_store.error = boom
        svc = EventService(recording_store)
        with pytest.raises(StorageFailure) as exc:
            await svc.create_event(1, "diaper", DIAPER)
        assert exc.value.__cause__ is boom

    async def test_unknown_baby_is_storage_failure(self, repo):
        svc = EventService(repo)
        with pytest.raises(StorageFailure):
            await svc.create_event(404, "diaper", DIAPER)

    async def test_cancellation_propagates_unchanged(self):
        started = asyncio.Event()

        class SlowStore:
            async def create_event(self, baby_id, payload):
                started.set()
                await asyncio.sleep(60)

        svc = EventService(SlowStore())
        task = asyncio.create_task(svc.create_event(1, "diaper", DIAPER))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


@pytest.mark.anyio
class TestReads:

    async def test_list_babies_ascending(self, repo):
        svc = EventService(repo)
        babies = await svc.list_babies()
        assert [b.id for b in babies] == [1, 2]

    async def test_list_babies_storage_failure(self, recording_store):
        recording_store.error = RuntimeError("boom")
        with pytest.raises(StorageFailure):
            await EventService(recording_store).list_babies()

    async def test_weights_validate_baby_id(self, recording_store):
        with pytest.raises(ParseError):
            await EventService(recording_store).list_weight_entries("x")
        assert recording_store.calls == []

    async def test_health_check(self, recording_store):
        await EventService(recording_store).health_check()
        recording_store.error = OSError("unreachable")
        with pytest.raises(StorageFailure):
            await EventService(recording_store).health_check()
