"""
Durable key-value store for the session token, the user profile snapshot and
flow-scoped wizard state that must survive moving between screens.

Values are opaque strings; JSON helpers sit on top for structured payloads.
"""

import json
import logging
from pathlib import Path
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine

from newswatch.core import get_settings
from newswatch.db import Base, make_engine, make_sessionmaker
from newswatch.db.models import StoredValue

logger = logging.getLogger(__name__)


class CredentialStore:
    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._sessions = make_sessionmaker(engine)

    @classmethod
    async def open(cls, url: str | None = None, echo: bool | None = None) -> "CredentialStore":
        """Create the engine, the parent directory of a SQLite file and the table."""
        s = get_settings()
        url = url or s.credential_store_url
        database = make_url(url).database
        if url.startswith("sqlite") and database and database != ":memory:":
            Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)
        engine = make_engine(url, echo=s.sql_echo if echo is None else echo)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        return cls(engine)

    async def close(self) -> None:
        await self.engine.dispose()

    async def get(self, key: str) -> str | None:
        async with self._sessions() as db:
            result = await db.execute(select(StoredValue.value).where(StoredValue.key == key))
            return result.scalar_one_or_none()

    async def set(self, key: str, value: str) -> None:
        async with self._sessions() as db:
            row = await db.get(StoredValue, key)
            if row is None:
                db.add(StoredValue(key=key, value=value))
            else:
                row.value = value
            await db.commit()

    async def remove(self, *keys: str) -> None:
        if not keys:
            return
        async with self._sessions() as db:
            await db.execute(delete(StoredValue).where(StoredValue.key.in_(keys)))
            await db.commit()

    async def get_json(self, key: str) -> Any | None:
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable JSON stored under %s", key)
            await self.remove(key)
            return None

    async def set_json(self, key: str, value: Any) -> None:
        await self.set(key, json.dumps(value))
