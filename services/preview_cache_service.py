"""
Temporary storage for upload previews.

Stores parsed sheets in memory with TTL expiration between the preview
and confirm steps of an import. Single-process only: one instance is
created by the application lifespan and shared through app.state.
"""
import uuid
from datetime import datetime, timedelta
from typing import Any, Optional

DEFAULT_TTL_MINUTES = 30


class PreviewCache:
    """In-memory preview store keyed by preview_id."""

    def __init__(self, ttl_minutes: int = DEFAULT_TTL_MINUTES):
        self.ttl_minutes = ttl_minutes
        self._cache: dict[str, tuple[datetime, Any]] = {}

    def store(self, data: Any) -> str:
        """Store parsed data, return preview_id."""
        preview_id = str(uuid.uuid4())
        expires_at = datetime.now() + timedelta(minutes=self.ttl_minutes)
        self._cache[preview_id] = (expires_at, data)
        self._cleanup_expired()
        return preview_id

    def retrieve(self, preview_id: str) -> Optional[Any]:
        """Retrieve parsed data by preview_id. Returns None if expired/not found."""
        entry = self._cache.get(preview_id)
        if entry is None:
            return None
        expires_at, data = entry
        if datetime.now() > expires_at:
            del self._cache[preview_id]
            return None
        return data

    def delete(self, preview_id: str) -> None:
        """Remove preview after confirm or cancel."""
        self._cache.pop(preview_id, None)

    def _cleanup_expired(self) -> None:
        """Remove all expired entries."""
        now = datetime.now()
        expired = [k for k, (exp, _) in self._cache.items() if now > exp]
        for k in expired:
            del self._cache[k]
