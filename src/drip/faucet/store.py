"""Claim ledger for DRIP faucet.

Records which addresses, and which chat users, have already been served.
Records are append-only: the first claim timestamp for a key is kept forever.

Backends:
- SQLite file under the state directory (default, single node)
- Redis (when several replicas share one ledger)
"""

import asyncio
import logging
import sqlite3
import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from drip.errors import StoreError

logger = logging.getLogger(__name__)

ADDRESS_PREFIX = "addr:"

DEFAULT_DB_NAME = "claims.db"


def address_key(address: str) -> str:
    """Ledger key for an address (case-folded)."""
    return f"{ADDRESS_PREFIX}{address.strip().lower()}"


def user_key(user_id: str | int) -> str:
    """Ledger key for a chat identity."""
    return str(user_id).strip()


class ClaimStore(ABC):
    """Durable single-claim ledger.

    ``mark_*`` methods return only after the record is persisted; any
    backend failure is raised as ``StoreError``.
    """

    @abstractmethod
    async def has_claimed(self, address: str) -> bool:
        """Check whether an address has already received funds."""
        ...

    @abstractmethod
    async def mark_claimed(self, address: str) -> None:
        """Record that an address has received funds."""
        ...

    @abstractmethod
    async def has_user_claimed(self, user_id: str | int) -> bool:
        """Check whether a chat user has already received funds."""
        ...

    @abstractmethod
    async def mark_user_claimed(self, user_id: str | int) -> None:
        """Record that a chat user has received funds."""
        ...

    @abstractmethod
    async def get_claim(self, address: str) -> datetime | None:
        """Get the claim time for an address, None if never claimed."""
        ...

    async def close(self) -> None:
        """Release backend resources."""
        return None


class SqliteClaimStore(ClaimStore):
    """Claim ledger in a local SQLite database.

    Two tables, one per claim space. Every write is committed with
    ``synchronous=FULL`` before the call returns. Blocking SQLite calls run
    in worker threads so the event loop is never stalled.

    Parameters
    ----------
    path : str
        State directory, or a path to the database file itself.
    """

    _TABLES = ("address_claims", "user_claims")

    def __init__(self, path: str):
        db_path = Path(path).expanduser()
        if db_path.suffix not in (".db", ".sqlite", ".sqlite3"):
            db_path = db_path / DEFAULT_DB_NAME
        self._path = db_path
        self._lock = threading.Lock()
        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
            with self._lock:
                self._conn.execute("PRAGMA journal_mode=WAL")
                self._conn.execute("PRAGMA synchronous=FULL")
                for table in self._TABLES:
                    self._conn.execute(
                        f"CREATE TABLE IF NOT EXISTS {table} ("  # noqa: S608
                        "key TEXT PRIMARY KEY, claimed_at INTEGER NOT NULL)"
                    )
                self._conn.commit()
        except (OSError, sqlite3.Error) as e:
            raise StoreError(f"Failed to open claim database at {db_path}: {e}") from e
        logger.info("Claim store opened", extra={"path": str(db_path)})

    @property
    def path(self) -> Path:
        return self._path

    def _contains(self, table: str, key: str) -> bool:
        try:
            with self._lock:
                row = self._conn.execute(
                    f"SELECT 1 FROM {table} WHERE key = ?",  # noqa: S608
                    (key,),
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Claim lookup failed: {e}") from e
        return row is not None

    def _insert(self, table: str, key: str) -> None:
        try:
            with self._lock:
                self._conn.execute(
                    f"INSERT OR IGNORE INTO {table} (key, claimed_at) VALUES (?, ?)",  # noqa: S608
                    (key, int(time.time())),
                )
                self._conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Claim write failed: {e}") from e

    def _claimed_at(self, table: str, key: str) -> datetime | None:
        try:
            with self._lock:
                row = self._conn.execute(
                    f"SELECT claimed_at FROM {table} WHERE key = ?",  # noqa: S608
                    (key,),
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Claim lookup failed: {e}") from e
        if row is None:
            return None
        return datetime.fromtimestamp(row[0], tz=timezone.utc)

    async def has_claimed(self, address: str) -> bool:
        return await asyncio.to_thread(self._contains, "address_claims", address_key(address))

    async def mark_claimed(self, address: str) -> None:
        await asyncio.to_thread(self._insert, "address_claims", address_key(address))

    async def has_user_claimed(self, user_id: str | int) -> bool:
        return await asyncio.to_thread(self._contains, "user_claims", user_key(user_id))

    async def mark_user_claimed(self, user_id: str | int) -> None:
        await asyncio.to_thread(self._insert, "user_claims", user_key(user_id))

    async def get_claim(self, address: str) -> datetime | None:
        return await asyncio.to_thread(self._claimed_at, "address_claims", address_key(address))

    async def close(self) -> None:
        with self._lock:
            self._conn.close()
        logger.info("Claim store closed")


class RedisClaimStore(ClaimStore):
    """Claim ledger in Redis.

    Keys are ``drip:addr:<address>`` and ``drip:user:<id>`` holding the claim
    timestamp, written with ``SET NX`` so the first claim wins. Durability
    follows the server's persistence settings (use ``appendfsync always``).

    Parameters
    ----------
    redis_url : str
        Redis connection URL.
    """

    def __init__(self, redis_url: str):
        from redis import Redis
        from redis.exceptions import RedisError

        self._redis_error = RedisError
        try:
            self._redis = Redis.from_url(redis_url, decode_responses=True)
            self._redis.ping()
        except RedisError as e:
            raise StoreError(f"Redis connection failed: {e}") from e
        logger.info("Redis connected for claim ledger", extra={"url": redis_url})

    def _address_key(self, address: str) -> str:
        return f"drip:{address_key(address)}"

    def _user_key(self, user_id: str | int) -> str:
        return f"drip:user:{user_key(user_id)}"

    def _exists(self, key: str) -> bool:
        try:
            return bool(self._redis.exists(key))
        except self._redis_error as e:
            raise StoreError(f"Claim lookup failed: {e}") from e

    def _set(self, key: str) -> None:
        try:
            self._redis.set(key, str(int(time.time())), nx=True)
        except self._redis_error as e:
            raise StoreError(f"Claim write failed: {e}") from e

    def _get(self, key: str) -> datetime | None:
        try:
            value = self._redis.get(key)
        except self._redis_error as e:
            raise StoreError(f"Claim lookup failed: {e}") from e
        if value is None:
            return None
        return datetime.fromtimestamp(int(value), tz=timezone.utc)

    async def has_claimed(self, address: str) -> bool:
        return await asyncio.to_thread(self._exists, self._address_key(address))

    async def mark_claimed(self, address: str) -> None:
        await asyncio.to_thread(self._set, self._address_key(address))

    async def has_user_claimed(self, user_id: str | int) -> bool:
        return await asyncio.to_thread(self._exists, self._user_key(user_id))

    async def mark_user_claimed(self, user_id: str | int) -> None:
        await asyncio.to_thread(self._set, self._user_key(user_id))

    async def get_claim(self, address: str) -> datetime | None:
        return await asyncio.to_thread(self._get, self._address_key(address))

    async def close(self) -> None:
        self._redis.close()


def create_claim_store(state_path: str, redis_url: str | None = None) -> ClaimStore:
    """Pick the ledger backend from config: Redis when a URL is set, else SQLite."""
    if redis_url:
        return RedisClaimStore(redis_url)
    return SqliteClaimStore(state_path)
