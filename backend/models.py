"""
Pydantic models used across the backend.

Event payloads are a tagged union keyed by `kind`. Each variant is a
frozen model that forbids extra attributes, so a diaper payload cannot
carry `side` and a stored event cannot be mutated after creation.

Guidelines:
- Payload models never carry storage identity. `id` and `created_at` live
    on `StoredEvent`, which only the event store builds.
- Optional payload fields default to None and are omitted from JSON
    output rather than rendered as zero values.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    DIAPER = "diaper"
    NURSING = "nursing"
    SLEEP = "sleep"


class Side(str, Enum):
    LEFT = "left"
    RIGHT = "right"


class Baby(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str


class WeightEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    occurred_at: datetime
    weight_kg: float


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class DiaperEvent(_Payload):
    """A point-in-time diaper change."""

    kind: Literal["diaper"] = "diaper"
    occurred_at: datetime
    notes: Optional[str] = None


class NursingEvent(_Payload):
    """A nursing session on one side. `ended_at` is strictly after `started_at`."""

    kind: Literal["nursing"] = "nursing"
    started_at: datetime
    ended_at: datetime
    side: Side
    duration_minutes: Optional[int] = Field(default=None, gt=0)


class SleepEvent(_Payload):
    """A sleep period. `ended_at` is strictly after `started_at`."""

    kind: Literal["sleep"] = "sleep"
    started_at: datetime
    ended_at: datetime


EventPayload = Annotated[
    Union[DiaperEvent, NursingEvent, SleepEvent], Field(discriminator="kind")
]


def occurred_at_of(payload: EventPayload) -> datetime:
    """The instant an event is filed under: occurrence, or start of a range."""

    if isinstance(payload, DiaperEvent):
        return payload.occurred_at
    return payload.started_at


class StoredEvent(BaseModel):
    """A validated payload after the event store assigned identity."""

    model_config = ConfigDict(frozen=True)

    id: int
    baby_id: int
    created_at: datetime
    payload: EventPayload

    def as_response(self) -> Dict[str, Any]:
        """Flat JSON shape returned to clients: identity plus payload fields."""

        data = self.model_dump(mode="json", exclude_none=True)
        out: Dict[str, Any] = {"id": data["id"], "baby_id": data["baby_id"]}
        out.update(data["payload"])
        out["created_at"] = data["created_at"]
        return out


class EventStore(Protocol):
    """Persistence gateway the service depends on.

    Implementations assign unique, never-reused ids exactly once per
    `create_event` and return babies in ascending id order.
    """

    async def list_babies(self) -> List[Baby]: ...

    async def create_event(self, baby_id: int, payload: EventPayload) -> StoredEvent: ...

    async def list_weight_entries(self, baby_id: int) -> List[WeightEntry]: ...

    async def ping(self) -> None: ...
