"""Time-bounded memoization of rendered content."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from quantomdocs.content.render import MarkdownRenderer
from quantomdocs.content.storage import FileSystemStorage
from quantomdocs.errors import RenderFailureError, ResourceNotFoundError
from quantomdocs.models import CacheEntry

LOGGER = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 600.0
DEFAULT_CHECK_PERIOD_SECONDS = 120.0


@dataclass(slots=True)
class _Slot:
    entry: CacheEntry
    expires_at: float


class RenderCache:
    """Rendered output keyed by verified absolute path.

    Entries expire ``ttl_seconds`` after they were stored. Expired entries are
    dropped lazily on lookup or by :meth:`sweep`, which also runs on access
    once ``check_period`` has elapsed since the previous sweep. The cache is
    process-local: other replicas keep their own copies.
    """

    def __init__(
        self,
        storage: FileSystemStorage,
        renderer: MarkdownRenderer,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        check_period: float = DEFAULT_CHECK_PERIOD_SECONDS,
    ) -> None:
        self.storage = storage
        self.renderer = renderer
        self.ttl_seconds = ttl_seconds
        self.check_period = check_period
        self._slots: dict[str, _Slot] = {}
        self._last_sweep = time.monotonic()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, path: object) -> bool:
        return str(path) in self._slots

    def get(self, path: Path) -> CacheEntry:
        """Return the cached render of ``path``, rendering it on a miss."""
        now = time.monotonic()
        key = str(path)
        with self._lock:
            if now - self._last_sweep >= self.check_period:
                self._sweep(now)
            slot = self._slots.get(key)
            if slot is not None:
                if slot.expires_at > now:
                    self.hits += 1
                    LOGGER.debug("[Cache HIT] %s", key)
                    return slot.entry
                del self._slots[key]
            self.misses += 1

        entry = self._render(Path(path))
        with self._lock:
            self._slots[key] = _Slot(entry=entry, expires_at=now + self.ttl_seconds)
        LOGGER.debug("[Cache SET] %s", key)
        return entry

    def invalidate(self, path: Path) -> bool:
        with self._lock:
            removed = self._slots.pop(str(path), None) is not None
        if removed:
            LOGGER.debug("[Cache CLEARED] %s", path)
        return removed

    def invalidate_all(self) -> None:
        with self._lock:
            self._slots.clear()
        LOGGER.debug("[Cache CLEARED] all entries")

    def sweep(self) -> int:
        """Evict every expired entry and return how many were dropped."""
        with self._lock:
            return self._sweep(time.monotonic())

    def stats(self) -> dict[str, int]:
        return {"entries": len(self._slots), "hits": self.hits, "misses": self.misses}

    def _sweep(self, now: float) -> int:
        expired = [key for key, slot in self._slots.items() if slot.expires_at <= now]
        for key in expired:
            del self._slots[key]
        self._last_sweep = now
        if expired:
            LOGGER.debug("Evicted %d expired render(s)", len(expired))
        return len(expired)

    def _render(self, path: Path) -> CacheEntry:
        if not self.storage.is_file(path):
            raise ResourceNotFoundError("File not found")

        try:
            raw_content = self.storage.read_text(path)
            stats = self.storage.stat(path)
        except FileNotFoundError as exc:
            raise ResourceNotFoundError("File not found") from exc
        file_type = "mdx" if path.suffix == ".mdx" else "md"

        try:
            html = self.renderer.render(raw_content, file_type)
        except Exception as exc:
            LOGGER.exception("Rendering failed for %s", path)
            raise RenderFailureError(f"Failed to render {path.name}") from exc

        return CacheEntry(
            rendered_content=html,
            raw_content=raw_content,
            file_type=file_type,
            file_name=path.stem,
            last_modified=datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc),
            size=stats.st_size,
            degraded=file_type == "mdx",
        )
