import asyncio
import logging
import secrets
import sqlite3
import string
import time
from datetime import timedelta
from typing import Callable, List, Optional

from databases import Database
from sqlalchemy import insert, select, update, delete, and_

from auth import hash_password, check_password, sign_token, verify_token
from db_sqlalchemy import pastes, init_db
from errors import InvalidInput, NotFound, Expired, Forbidden, Unauthorized, StorageFailure
from models import Paste, PasteSummary

logger = logging.getLogger("pastebox.store")

ID_ALPHABET = string.digits + string.ascii_lowercase + string.ascii_uppercase
ID_LENGTH = 8
MAX_ID_ATTEMPTS = 5


def new_id(length: int = ID_LENGTH) -> str:
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))


class PasteStore:
    """Paste lifecycle on top of a single ``pastes`` table.

    Holds the database handle and the server secret used to sign auth tokens.
    ``clock`` returns the current unix time and can be swapped in tests.
    """

    def __init__(self, database: Database, secret: str, max_content_bytes: int,
                 clock: Callable[[], float] = time.time):
        self.database = database
        self.secret = secret
        self.max_content_bytes = max_content_bytes
        self.clock = clock
        self._users = 0
        self._lock = asyncio.Lock()

    def now(self) -> int:
        return int(self.clock())

    async def connect(self):
        # shared by the public and admin apps when served together
        async with self._lock:
            self._users += 1
            if self._users == 1:
                await init_db(str(self.database.url))
                await self.database.connect()

    async def disconnect(self):
        async with self._lock:
            self._users -= 1
            if self._users <= 0:
                self._users = 0
                await self.database.disconnect()

    def _check_content(self, content: str):
        if content.strip() == "" or len(content.encode()) > self.max_content_bytes:
            raise InvalidInput("invalid content")

    async def _fetch_one(self, query):
        try:
            return await self.database.fetch_one(query)
        except sqlite3.Error as e:
            logger.error("Query failed: %s", e)
            raise StorageFailure() from e

    async def _fetch_all(self, query):
        try:
            return await self.database.fetch_all(query)
        except sqlite3.Error as e:
            logger.error("Query failed: %s", e)
            raise StorageFailure() from e

    async def _execute(self, query):
        try:
            return await self.database.execute(query)
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as e:
            logger.error("Statement failed: %s", e)
            raise StorageFailure() from e

    async def create(self, content: str, syntax: str = "auto", allow_edit: bool = False,
                     password: Optional[str] = None, ttl: Optional[timedelta] = None) -> str:
        content = content.strip()
        self._check_content(content)
        syntax = syntax or "auto"

        created_at = self.now()
        expires_at = None
        if ttl:
            seconds = int(ttl.total_seconds())
            if seconds < 1:
                raise InvalidInput("ttl must be at least 1s")
            expires_at = created_at + seconds

        salt = digest = None
        if password:
            salt, digest = hash_password(password)

        for attempt in range(1, MAX_ID_ATTEMPTS + 1):
            paste_id = new_id()
            query = insert(pastes).values(
                id=paste_id,
                content=content,
                syntax=syntax,
                allow_edit=allow_edit,
                pw_salt=salt,
                pw_hash=digest,
                created_at=created_at,
                expires_at=expires_at,
            )
            try:
                await self._execute(query)
            except sqlite3.IntegrityError:
                logger.warning("Paste id collision on attempt %d, regenerating", attempt)
                continue
            logger.info("Created paste %s (protected=%s, expires_at=%s)", paste_id, salt is not None, expires_at)
            return paste_id

        logger.error("Could not allocate a paste id after %d attempts", MAX_ID_ATTEMPTS)
        raise StorageFailure("could not allocate id")

    async def load(self, paste_id: str) -> Paste:
        row = await self._fetch_one(select(pastes).where(pastes.c.id == paste_id))
        if not row:
            raise NotFound()
        return Paste(**{name: row[name] for name in pastes.columns.keys()})

    async def _load_live(self, paste_id: str) -> Paste:
        p = await self.load(paste_id)
        if p.expired(self.now()):
            raise Expired()
        return p

    def _require_auth(self, p: Paste, token: Optional[str]):
        if p.protected and not verify_token(self.secret, p.id, token):
            raise Unauthorized()

    async def get(self, paste_id: str, token: Optional[str] = None) -> Paste:
        p = await self._load_live(paste_id)
        self._require_auth(p, token)
        return p

    async def update(self, paste_id: str, content: str, token: Optional[str] = None):
        p = await self._load_live(paste_id)
        if not p.allow_edit:
            raise Forbidden()
        self._require_auth(p, token)
        self._check_content(content)
        await self._execute(update(pastes).where(pastes.c.id == paste_id).values(content=content))

    async def delete(self, paste_id: str, token: Optional[str] = None):
        p = await self._load_live(paste_id)
        self._require_auth(p, token)
        await self._execute(delete(pastes).where(pastes.c.id == paste_id))
        logger.info("Deleted paste %s", paste_id)

    async def authenticate(self, paste_id: str, password: str) -> str:
        """Check the paste password and return the signed auth token."""
        p = await self.load(paste_id)
        if not p.protected:
            raise InvalidInput("no password")
        if not check_password(password or "", p.pw_salt, p.pw_hash):
            raise Unauthorized()
        return sign_token(self.secret, p.id)

    async def sweep_expired(self) -> int:
        """Physically delete every paste whose expiry has passed."""
        expired = and_(pastes.c.expires_at != None, pastes.c.expires_at < self.now())
        rows = await self._fetch_all(select(pastes.c.id).where(expired))
        if not rows:
            return 0
        ids = [r["id"] for r in rows]
        await self._execute(delete(pastes).where(pastes.c.id.in_(ids)).where(expired))
        return len(ids)

    async def list_recent(self, limit: int = 200) -> List[PasteSummary]:
        q = select(pastes.c.id, pastes.c.created_at, pastes.c.expires_at, pastes.c.allow_edit)
        q = q.order_by(pastes.c.created_at.desc()).limit(limit)
        rows = await self._fetch_all(q)
        result = []
        for r in rows:
            result.append(PasteSummary(
                id=r["id"],
                created=r["created_at"],
                expires=r["expires_at"] or 0,
                allow_edit=bool(r["allow_edit"]),
            ))
        return result

    async def purge(self, paste_id: str):
        """Delete a paste regardless of expiry or password."""
        await self.load(paste_id)
        await self._execute(delete(pastes).where(pastes.c.id == paste_id))
        logger.info("Purged paste %s", paste_id)
