"""
Apply the schema and (optionally) seed the default babies.

Usage:
    python scripts/create_tables.py            # schema + seed if empty
    python scripts/create_tables.py --no-seed  # schema only
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)) + '/..')

from repo_events import EventRepo
from settings import DEFAULT_BABY_NAMES, settings


async def main(seed: bool) -> None:
    repo = EventRepo(settings.db_url)
    print('Connecting to', settings.db_url)
    await repo.migrate()
    print('DDL applied')
    if seed:
        inserted = await repo.seed_babies(DEFAULT_BABY_NAMES)
        print(f'Seeded {inserted} babies' if inserted else 'Babies already present, seed skipped')


if __name__ == "__main__":
    asyncio.run(main(seed="--no-seed" not in sys.argv[1:]))
