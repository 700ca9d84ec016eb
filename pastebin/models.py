"""
Pydantic models for stored paste records and request/response validation.
"""
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, StrictInt, StrictStr

# Values stores may hand back for an unset optional field
_NULLS = ("", "null", "None")


class PasteRecord(BaseModel):
    """A stored paste and its lifecycle metadata.

    Timestamps are milliseconds since the epoch. ``view_count`` is the
    only field that changes after creation.
    """

    id: str
    content: str
    created_at: int
    expires_at: Optional[int] = None
    max_views: Optional[int] = None
    view_count: int = 0

    @property
    def remaining_views(self) -> Optional[int]:
        if self.max_views is None:
            return None
        return max(0, self.max_views - self.view_count)

    @property
    def expires_at_iso(self) -> Optional[str]:
        if self.expires_at is None:
            return None
        moment = datetime.fromtimestamp(self.expires_at / 1000, tz=timezone.utc)
        return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def encode(self) -> Dict[str, str]:
        """Flatten into a string mapping suitable for a Redis hash."""
        return {
            field: str(value)
            for field, value in self.model_dump().items()
            if value is not None
        }

    @classmethod
    def decode(cls, data: Union[str, bytes, Dict[Any, Any]]) -> "PasteRecord":
        """
        Build a record from whatever form a store returned.

        Accepts a JSON document, a mapping of raw strings or bytes (as
        Redis returns them), or a mapping of already-typed values.
        """
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        if isinstance(data, str):
            data = json.loads(data)

        fields: Dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(key, bytes):
                key = key.decode("utf-8")
            if isinstance(value, bytes):
                value = value.decode("utf-8")
            if key in ("expires_at", "max_views") and value in _NULLS:
                value = None
            fields[key] = value
        return cls.model_validate(fields)


class PasteCreate(BaseModel):
    """Schema for creating a new paste."""
    content: StrictStr = Field(..., min_length=1, description="Text content (required, non-empty)")
    ttl_seconds: Optional[StrictInt] = Field(None, ge=1, description="Optional TTL in seconds")
    max_views: Optional[StrictInt] = Field(None, ge=1, description="Optional view limit")


class PasteResponse(BaseModel):
    """Schema for paste creation response."""
    id: str = Field(..., description="Unique paste ID")
    url: str = Field(..., description="Shareable URL to view the paste")


class PasteView(BaseModel):
    """Schema for viewing/fetching a paste."""
    content: str = Field(..., description="Paste text content")
    remaining_views: Optional[int] = Field(None, description="Views left (null if unlimited)")
    expires_at: Optional[str] = Field(None, description="Expiry timestamp (ISO 8601, null if no TTL)")

    @classmethod
    def from_record(cls, record: PasteRecord) -> "PasteView":
        return cls(
            content=record.content,
            remaining_views=record.remaining_views,
            expires_at=record.expires_at_iso,
        )


class HealthCheck(BaseModel):
    """Schema for health check response."""
    ok: bool = Field(..., description="Is the application healthy?")
