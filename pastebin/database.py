"""
Record store layer: Redis-backed paste storage with an in-memory fallback.

Both stores satisfy the ``RecordStore`` protocol, so the lifecycle engine
never needs to know which one it is talking to.
"""
import logging
import threading
import time
from typing import Any, Dict, Optional, Protocol, Tuple

from redis import Redis
from redis.exceptions import ConnectionError, RedisError, WatchError

from pastebin.config import Settings, settings
from pastebin.errors import StoreUnavailable
from pastebin.models import PasteRecord

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def store_ttl_seconds(expires_at: int, current_ms: int) -> int:
    """
    Seconds to attach to a store entry expiring at ``expires_at``.

    Never less than 1: stores reject non-positive TTLs, and a record that is
    already past its expiry is still written and rejected on read instead.
    """
    return max(1, (expires_at - current_ms) // 1000)


def _decode(paste_id: str, data: Any) -> PasteRecord:
    """Decode a stored entry; a corrupt entry counts as a store failure."""
    try:
        return PasteRecord.decode(data)
    except ValueError as e:
        logger.error(f"Corrupt entry for paste {paste_id}: {e}")
        raise StoreUnavailable(f"unreadable entry for paste {paste_id}") from e


class RecordStore(Protocol):
    """Capabilities the lifecycle engine needs from a backing store."""

    def put(self, record: PasteRecord) -> None: ...

    def get(self, paste_id: str) -> Optional[PasteRecord]: ...

    def delete(self, paste_id: str) -> None: ...

    def increment_views(self, paste_id: str) -> Optional[int]: ...

    def ping(self) -> bool: ...


class RedisRecordStore:
    """Paste records stored as Redis hashes under ``<prefix>:<id>``."""

    def __init__(self, redis: Redis, key_prefix: str = "paste"):
        self.redis = redis
        self.key_prefix = key_prefix

    def _key(self, paste_id: str) -> str:
        return f"{self.key_prefix}:{paste_id}"

    def put(self, record: PasteRecord) -> None:
        key = self._key(record.id)
        try:
            with self.redis.pipeline() as pipe:
                # Overwrite, never merge with a previous hash
                pipe.delete(key)
                pipe.hset(key, mapping=record.encode())
                if record.expires_at is not None:
                    pipe.expire(key, store_ttl_seconds(record.expires_at, now_ms()))
                pipe.execute()
        except RedisError as e:
            logger.error(f"Error saving paste {record.id}: {e}")
            raise StoreUnavailable(f"could not save paste {record.id}") from e

    def get(self, paste_id: str) -> Optional[PasteRecord]:
        try:
            data = self.redis.hgetall(self._key(paste_id))
        except RedisError as e:
            logger.error(f"Error fetching paste {paste_id}: {e}")
            raise StoreUnavailable(f"could not fetch paste {paste_id}") from e
        if not data:
            return None
        return _decode(paste_id, data)

    def delete(self, paste_id: str) -> None:
        try:
            self.redis.delete(self._key(paste_id))
        except RedisError as e:
            logger.error(f"Error deleting paste {paste_id}: {e}")
            raise StoreUnavailable(f"could not delete paste {paste_id}") from e

    def increment_views(self, paste_id: str) -> Optional[int]:
        """
        Add one view and return the new count, or None if the key is gone.

        HINCRBY alone would recreate an evicted key, so existence is checked
        under WATCH and the increment only commits if nothing touched the key
        in between.
        """
        key = self._key(paste_id)
        try:
            with self.redis.pipeline() as pipe:
                while True:
                    try:
                        pipe.watch(key)
                        if not pipe.exists(key):
                            return None
                        pipe.multi()
                        pipe.hincrby(key, "view_count", 1)
                        (count,) = pipe.execute()
                        return int(count)
                    except WatchError:
                        logger.debug(f"Concurrent update on paste {paste_id}, retrying increment")
        except RedisError as e:
            logger.error(f"Error incrementing views for {paste_id}: {e}")
            raise StoreUnavailable(f"could not count view for paste {paste_id}") from e

    def ping(self) -> bool:
        try:
            return bool(self.redis.ping())
        except RedisError as e:
            logger.error(f"Health check failed: {e}")
            return False


class InMemoryRecordStore:
    """Process-local store for development and tests (no persistence).

    Entries expire lazily on access; ``sweep`` removes everything already
    expired in one pass.
    """

    def __init__(self, key_prefix: str = "paste"):
        self.key_prefix = key_prefix
        self._entries: Dict[str, Tuple[Dict[str, Any], Optional[float]]] = {}
        self._lock = threading.Lock()

    def _key(self, paste_id: str) -> str:
        return f"{self.key_prefix}:{paste_id}"

    def _live(self, key: str) -> Optional[Dict[str, Any]]:
        # Caller holds the lock
        entry = self._entries.get(key)
        if entry is None:
            return None
        data, deadline = entry
        if deadline is not None and now_ms() >= deadline:
            del self._entries[key]
            return None
        return data

    def put(self, record: PasteRecord) -> None:
        deadline = None
        if record.expires_at is not None:
            current = now_ms()
            deadline = current + store_ttl_seconds(record.expires_at, current) * 1000
        with self._lock:
            self._entries[self._key(record.id)] = (record.model_dump(), deadline)

    def get(self, paste_id: str) -> Optional[PasteRecord]:
        with self._lock:
            data = self._live(self._key(paste_id))
            if data is None:
                return None
            return _decode(paste_id, dict(data))

    def delete(self, paste_id: str) -> None:
        with self._lock:
            self._entries.pop(self._key(paste_id), None)

    def increment_views(self, paste_id: str) -> Optional[int]:
        with self._lock:
            data = self._live(self._key(paste_id))
            if data is None:
                return None
            data["view_count"] = int(data.get("view_count", 0)) + 1
            return data["view_count"]

    def sweep(self) -> int:
        """Drop expired entries; returns how many were removed."""
        with self._lock:
            expired = [key for key in list(self._entries) if self._live(key) is None]
        if expired:
            logger.info(f"Swept {len(expired)} expired pastes")
        return len(expired)

    def ping(self) -> bool:
        return True


def build_store(config: Settings = settings) -> RecordStore:
    """Create the configured store, falling back to memory if Redis is down."""
    if config.STORE_BACKEND == "memory":
        logger.info("Using in-memory paste store")
        return InMemoryRecordStore(key_prefix=config.KEY_PREFIX)

    try:
        logger.info(f"Attempting to connect to Redis: {config.REDIS_URL[:30]}...")
        redis = Redis.from_url(config.REDIS_URL, decode_responses=True)
        redis.ping()
        logger.info("Redis connected successfully")
        return RedisRecordStore(redis, key_prefix=config.KEY_PREFIX)
    except ConnectionError as e:
        logger.error(f"ConnectionError connecting to Redis: {type(e).__name__}: {str(e)}")
    except Exception as e:
        logger.error(f"Unexpected error connecting to Redis: {type(e).__name__}: {str(e)}")
    logger.warning("Using in-memory fallback for development. Data will NOT persist across restarts.")
    return InMemoryRecordStore(key_prefix=config.KEY_PREFIX)


_store: Optional[RecordStore] = None


def get_store() -> RecordStore:
    """Return the process-wide store, creating it on first use."""
    global _store
    if _store is None:
        _store = build_store()
    return _store


def using_fallback() -> bool:
    return isinstance(get_store(), InMemoryRecordStore)
