"""
Repository: SQL operations for `babies`, `events` and `weight_entries`.

This file contains only DB interaction code. It maps payload models to
SQL parameters and converts DB rows back to models. Keep business rules
out of this module; everything passed in has already been validated by
`EventService`.

Important notes:
- SQL strings use positional parameters for psycopg.
- `events.occurred_at` holds the diaper occurrence time or the start of a
  ranged event; the full payload is stored in `details` as JSONB.
- Writes commit before the method returns; callers expect the row to be
  durable at that point.
"""

from typing import Iterable, List

from psycopg.types.json import Jsonb

from db import get_conn
from models import Baby, EventPayload, StoredEvent, WeightEntry, occurred_at_of

SCHEMA = """
CREATE TABLE IF NOT EXISTS babies (
    id BIGSERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS events (
    id BIGSERIAL PRIMARY KEY,
    baby_id BIGINT NOT NULL REFERENCES babies(id) ON DELETE CASCADE,
    type TEXT NOT NULL,
    occurred_at TIMESTAMPTZ NOT NULL,
    details JSONB NOT NULL DEFAULT '{}'::jsonb,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_events_baby_occurred ON events (baby_id, occurred_at DESC);

CREATE TABLE IF NOT EXISTS weight_entries (
    id BIGSERIAL PRIMARY KEY,
    baby_id BIGINT NOT NULL REFERENCES babies(id) ON DELETE CASCADE,
    occurred_at TIMESTAMPTZ NOT NULL,
    weight_kg NUMERIC(6, 3) NOT NULL
);
"""


class EventRepo:
    """DB access only. No business logic here.

    Responsibilities:
    - Map payload models -> SQL parameters
    - Execute queries and return models
    - Keep transaction/commit boundaries local and explicit
    """

    def __init__(self, db_url: str | None = None):
        self.db_url = db_url

    async def migrate(self) -> None:
        """Apply the idempotent schema DDL."""

        async with await get_conn(self.db_url) as conn:
            async with conn.cursor() as cur:
                await cur.execute(SCHEMA)
            await conn.commit()

    async def seed_babies(self, names: Iterable[str]) -> int:
        """Insert `names` only when the babies table is empty.

        Returns the number of inserted rows. The table lock keeps two
        starting instances from both seeding.
        """

        rows = [(n,) for n in names]
        async with await get_conn(self.db_url) as conn:
            async with conn.cursor() as cur:
                await cur.execute("LOCK TABLE babies IN EXCLUSIVE MODE")
                await cur.execute("SELECT EXISTS (SELECT 1 FROM babies)")
                (has_rows,) = await cur.fetchone()
                if not has_rows:
                    await cur.executemany("INSERT INTO babies (name) VALUES (%s)", rows)
            await conn.commit()
        return 0 if has_rows else len(rows)

    async def list_babies(self) -> List[Baby]:
        """All babies, ascending by id."""

        async with await get_conn(self.db_url) as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT id, name FROM babies ORDER BY id")
                return [Baby(id=r[0], name=r[1]) for r in await cur.fetchall()]

    async def create_event(self, baby_id: int, payload: EventPayload) -> StoredEvent:
        """Insert one event and return it with its assigned id.

        An unknown `baby_id` violates the foreign key and raises
        `psycopg.errors.ForeignKeyViolation`.
        """

        details = payload.model_dump(mode="json", exclude={"kind"}, exclude_none=True)
        async with await get_conn(self.db_url) as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    "INSERT INTO events (baby_id, type, occurred_at, details) "
                    "VALUES (%s, %s, %s, %s) RETURNING id, created_at",
                    (baby_id, payload.kind, occurred_at_of(payload), Jsonb(details)),
                )
                event_id, created_at = await cur.fetchone()
            await conn.commit()

        return StoredEvent(
            id=event_id, baby_id=baby_id, created_at=created_at, payload=payload
        )

    async def list_weight_entries(self, baby_id: int) -> List[WeightEntry]:
        """Weight history for `baby_id`, oldest first."""

        async with await get_conn(self.db_url) as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    "SELECT occurred_at, weight_kg FROM weight_entries "
                    "WHERE baby_id=%s ORDER BY occurred_at",
                    (baby_id,),
                )
                return [
                    WeightEntry(occurred_at=r[0], weight_kg=float(r[1]))
                    for r in await cur.fetchall()
                ]

    async def ping(self) -> None:
        """Lightweight DB health check. Raises on error."""

        async with await get_conn(self.db_url) as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1;")
