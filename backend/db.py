"""
Database connection helper.

This module centralizes how connections are created. Right now we use
`psycopg.AsyncConnection.connect(settings.db_url)` which opens a new
connection per call.

Usage:
    from db import get_conn
    async with await get_conn() as conn:
        async with conn.cursor() as cur:
            await cur.execute("SELECT 1;")

Note: switching to a connection pool will change the `get_conn()`
implementation; repository code should remain unchanged.
"""

import psycopg
from settings import settings


async def get_conn(db_url: str | None = None) -> psycopg.AsyncConnection:
    """Return a new async psycopg connection.

    A short `connect_timeout` keeps HTTP requests from hanging when the
    database is unreachable.
    """

    return await psycopg.AsyncConnection.connect(
        db_url or settings.db_url, connect_timeout=settings.connect_timeout
    )
