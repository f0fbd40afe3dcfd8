"""
Event variant validation.

`validate(kind, fields)` is a pure function: it takes the event kind and a
bag of already-parsed field values (see `service_events.parse_fields`) and
returns an immutable payload model, or raises `ValidationError` naming the
offending field.

The wire format is loose JSON shared by all kinds, so besides the
structural guarantees of the payload models we check explicitly that no
field belonging to another kind was sent.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional

from pydantic import ValidationError as ModelValidationError

from errors import ParseError, ValidationError
from models import DiaperEvent, EventKind, EventPayload, NursingEvent, Side, SleepEvent
from parsing import parse_enum

# Every field any kind may carry. Anything legal for one kind but not for
# another is forbidden on the other.
EVENT_FIELDS: FrozenSet[str] = frozenset(
    {"occurred_at", "started_at", "ended_at", "side", "duration_minutes", "notes"}
)

SIDES = frozenset(s.value for s in Side)


@dataclass(frozen=True)
class FieldSchema:
    required: FrozenSet[str]
    optional: FrozenSet[str] = frozenset()
    # allowed values for enum fields
    enums: Optional[Mapping[str, FrozenSet[str]]] = None
    # kinds with a start/end range reject end <= start
    strict_range: bool = False

    @property
    def legal(self) -> FrozenSet[str]:
        return self.required | self.optional

    @property
    def forbidden(self) -> FrozenSet[str]:
        return EVENT_FIELDS - self.legal


FIELD_SCHEMAS: Dict[EventKind, FieldSchema] = {
    EventKind.DIAPER: FieldSchema(
        required=frozenset({"occurred_at"}),
        optional=frozenset({"notes"}),
    ),
    EventKind.NURSING: FieldSchema(
        required=frozenset({"started_at", "ended_at", "side"}),
        optional=frozenset({"duration_minutes"}),
        enums={"side": SIDES},
        strict_range=True,
    ),
    EventKind.SLEEP: FieldSchema(
        required=frozenset({"started_at", "ended_at"}),
        strict_range=True,
    ),
}

_BUILDERS: Dict[EventKind, Callable[..., EventPayload]] = {
    EventKind.DIAPER: DiaperEvent,
    EventKind.NURSING: NursingEvent,
    EventKind.SLEEP: SleepEvent,
}


def resolve_kind(raw: Any) -> EventKind:
    """Map a wire `type`/`kind` string to an `EventKind`."""

    kinds = ", ".join(k.value for k in EventKind)
    if isinstance(raw, EventKind):
        return raw
    if isinstance(raw, str):
        try:
            return EventKind(raw.strip().lower())
        except ValueError:
            pass
    raise ValidationError("type", f"unsupported event type: type must be one of {kinds}")


def _present(fields: Mapping[str, Any], name: str) -> bool:
    return fields.get(name) is not None


def validate(kind: Any, fields: Mapping[str, Any]) -> EventPayload:
    """Check `fields` against the schema for `kind` and build its payload.

    Raises:
    - `ValidationError` for unknown kinds, missing required fields, fields
      forbidden for this kind, bad enum values, inverted or empty time
      ranges and non-positive durations.
    """

    event_kind = resolve_kind(kind)
    schema = FIELD_SCHEMAS[event_kind]

    for name in sorted(schema.required):
        if not _present(fields, name):
            raise ValidationError(name, f"{name} is required for {event_kind.value} events")

    for name in sorted(schema.forbidden):
        if _present(fields, name):
            raise ValidationError(name, f"{name} is not allowed for {event_kind.value} events")

    values: Dict[str, Any] = {
        name: fields[name] for name in schema.legal if _present(fields, name)
    }

    for name, allowed in (schema.enums or {}).items():
        if name not in values:
            continue
        try:
            values[name] = parse_enum(values[name], allowed, name)
        except ParseError as e:
            raise ValidationError(
                name, f"{name} must be {' or '.join(sorted(allowed))} for {event_kind.value} events"
            ) from e

    if schema.strict_range:
        started_at: Optional[datetime] = values.get("started_at")
        ended_at: Optional[datetime] = values.get("ended_at")
        if started_at is not None and ended_at is not None and not ended_at > started_at:
            raise ValidationError(
                "ended_at", f"ended_at must be after started_at for {event_kind.value} events"
            )

    if "duration_minutes" in values:
        duration = values["duration_minutes"]
        if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
            raise ValidationError(
                "duration_minutes",
                f"duration_minutes must be a whole number greater than 0 for {event_kind.value} events",
            )

    try:
        return _BUILDERS[event_kind](**values)
    except ModelValidationError as e:
        err = e.errors()[0]
        name = str(err["loc"][0]) if err.get("loc") else "type"
        raise ValidationError(name, f"{name}: {err['msg']}") from e
