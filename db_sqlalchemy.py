import os
from sqlalchemy import (MetaData, Table, Column, Integer, String, Text, Boolean, LargeBinary, Index)
from sqlalchemy.ext.asyncio import create_async_engine
from databases import Database

metadata = MetaData()

pastes = Table(
    "pastes",
    metadata,
    Column("id", String(8), primary_key=True),
    Column("content", Text, nullable=False),
    Column("syntax", String, nullable=False, server_default="auto"),
    Column("allow_edit", Boolean, nullable=False, server_default="0"),
    Column("pw_salt", LargeBinary, nullable=True),
    Column("pw_hash", LargeBinary, nullable=True),
    Column("created_at", Integer, nullable=False),
    Column("expires_at", Integer, nullable=True),
    Index("idx_expires", "expires_at"),
)


def ensure_db_dir(db_path: str):
    # folder has to exist before sqlite opens the file
    folder = os.path.dirname(os.path.abspath(db_path))
    os.makedirs(folder, exist_ok=True)


def make_database(db_url: str) -> Database:
    """Async query handle used by the paste store."""
    return Database(db_url)


async def init_db(db_url: str):
    """Create tables using SQLAlchemy async engine. Call this at application startup."""
    async_engine = create_async_engine(db_url, echo=False)
    async with async_engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    await async_engine.dispose()
