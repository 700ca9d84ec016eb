"""
Paste lifecycle engine.

Decides whether a stored paste may be served, counts each served read
exactly once, and evicts pastes as soon as they expire or run out of views.
"""
import logging
import secrets
from typing import Optional

from pastebin.database import RecordStore, get_store, now_ms
from pastebin.errors import InvalidInput, NotFound
from pastebin.models import PasteRecord

logger = logging.getLogger(__name__)

ID_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz_-"
ID_LENGTH = 10


def generate_paste_id(length: int = ID_LENGTH) -> str:
    """Short random URL-safe identifier."""
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))


def resolve_now_ms(test_mode: bool, test_now_ms: Optional[str] = None) -> int:
    """
    Current time in milliseconds, respecting TEST_MODE for deterministic testing.

    Args:
        test_mode: Whether the override is honoured at all
        test_now_ms: Value of the x-test-now-ms header (milliseconds since epoch)

    Returns:
        The override when enabled and valid, otherwise wall-clock time
    """
    if test_mode and test_now_ms:
        try:
            return int(test_now_ms)
        except (ValueError, TypeError) as e:
            logger.warning(f"Invalid x-test-now-ms header: {e}")
    return now_ms()


def is_available(record: PasteRecord, current_ms: int) -> bool:
    """True while the paste is neither expired nor out of views."""
    if record.expires_at is not None and current_ms >= record.expires_at:
        return False
    if record.max_views is not None and record.view_count >= record.max_views:
        return False
    return True


def _check_limit(name: str, value) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{name} must be an integer >= 1")
    if value < 1:
        raise InvalidInput(f"{name} must be an integer >= 1")


def validate_paste(content, ttl_seconds=None, max_views=None) -> None:
    """Raise InvalidInput describing the first violated constraint."""
    if not isinstance(content, str) or not content.strip():
        raise InvalidInput("content is required and must be a non-empty string")
    _check_limit("ttl_seconds", ttl_seconds)
    _check_limit("max_views", max_views)


class PasteService:
    """Create and read pastes on top of any RecordStore."""

    def __init__(self, store: RecordStore):
        self.store = store

    def create_paste(
        self,
        content: str,
        ttl_seconds: Optional[int] = None,
        max_views: Optional[int] = None,
        now: Optional[int] = None,
    ) -> PasteRecord:
        """
        Validate and store a new paste.

        Args:
            content: Text content of the paste
            ttl_seconds: Optional time-to-live in seconds
            max_views: Optional maximum number of successful reads
            now: Creation time in ms; defaults to wall-clock time

        Returns:
            The stored record

        Raises:
            InvalidInput: If any argument violates its constraint
            StoreUnavailable: If the store write fails
        """
        validate_paste(content, ttl_seconds, max_views)
        if now is None:
            now = now_ms()

        record = PasteRecord(
            id=generate_paste_id(),
            content=content,
            created_at=now,
            expires_at=now + ttl_seconds * 1000 if ttl_seconds else None,
            max_views=max_views,
            view_count=0,
        )
        self.store.put(record)
        logger.info(f"Paste {record.id} saved successfully")
        return record

    def read_paste(self, paste_id: str, now: Optional[int] = None) -> PasteRecord:
        """
        Serve one read of a paste, counting it as a view.

        The returned record carries the incremented view count. A read that
        consumes the last allowed view, or during which the paste expires,
        still succeeds; the paste is evicted right after.

        Raises:
            NotFound: If the paste is absent, expired, or out of views
            StoreUnavailable: If the store fails at any step
        """
        if now is None:
            now = now_ms()

        record = self.store.get(paste_id)
        if record is None:
            raise NotFound(paste_id)

        if not is_available(record, now):
            logger.info(f"Paste {paste_id} is no longer available, evicting")
            self.store.delete(paste_id)
            raise NotFound(paste_id)

        view_count = self.store.increment_views(paste_id)
        if view_count is None:
            # Evicted by another reader between fetch and increment
            raise NotFound(paste_id)

        counted = record.model_copy(update={"view_count": view_count})
        if counted.max_views is not None and view_count > counted.max_views:
            # Concurrent readers took the remaining views first
            logger.info(f"Paste {paste_id} view limit exceeded")
            self.store.delete(paste_id)
            raise NotFound(paste_id)

        if not is_available(counted, now):
            logger.info(f"Paste {paste_id} served its final view, evicting")
            self.store.delete(paste_id)
        return counted

    def delete_paste(self, paste_id: str) -> None:
        self.store.delete(paste_id)
        logger.info(f"Paste {paste_id} deleted")

    def is_healthy(self) -> bool:
        return self.store.ping()


def get_paste_service() -> PasteService:
    """FastAPI dependency returning a service bound to the shared store."""
    return PasteService(get_store())
