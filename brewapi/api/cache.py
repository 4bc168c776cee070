"""Endpoint cache: in-process memoization plus on-disk cache file checks.

Design decisions:
- In-memory entries are keyed by endpoint and never evicted or expired;
  staleness is governed by the on-disk layer
- The store is an explicit object owned by ApiClient, not module state
- Cache files may be shared with other processes, so every write goes
  through a temporary file and an atomic rename
"""

import logging
import os
import tempfile
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterator, Optional

log = logging.getLogger(__name__)


@dataclass
class CacheMetrics:
    """Hit/miss counters for the in-memory store."""

    hits: int = 0
    misses: int = 0

    def hit_rate(self) -> float:
        """Calculate cache hit rate (0.0 when there were no lookups)."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hit_rate(), 4),
        }


class CacheStore:
    """Endpoint → parsed JSON memoization for one logical run."""

    def __init__(self):
        self._entries: Dict[str, Any] = {}
        self._metrics = CacheMetrics()

    def get(self, endpoint: str) -> Optional[Any]:
        """Return the memoized document, or None on a miss."""
        if endpoint in self._entries:
            self._metrics.hits += 1
            log.debug(f"API cache hit: {endpoint}")
            return self._entries[endpoint]

        self._metrics.misses += 1
        return None

    def put(self, endpoint: str, value: Any) -> None:
        self._entries[endpoint] = value

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, endpoint: str) -> bool:
        return endpoint in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def metrics(self) -> CacheMetrics:
        return self._metrics


class CachedFile:
    """On-disk cache file for one endpoint.

    All queries hit the filesystem each time; another process may replace
    or remove the file between calls.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    @property
    def name(self) -> str:
        return self.path.name

    def exists(self) -> bool:
        return self.path.exists()

    def is_empty(self) -> bool:
        """True when the file is missing or zero-length."""
        try:
            return self.path.stat().st_size == 0
        except FileNotFoundError:
            return True

    def has_content(self) -> bool:
        return self.exists() and not self.is_empty()

    def mtime(self) -> Optional[float]:
        try:
            return self.path.stat().st_mtime
        except FileNotFoundError:
            return None

    def is_fresh(self, stale_seconds: float, now: Optional[float] = None) -> bool:
        """Whether the file was modified strictly within the last stale_seconds.

        A file whose mtime is exactly now - stale_seconds is stale.
        """
        mtime = self.mtime()
        if mtime is None:
            return False
        if now is None:
            now = time.time()
        return (now - stale_seconds) < mtime

    def touch(self, mtime: Optional[float] = None) -> bool:
        """Set access and modification time (default: now).

        Returns:
            False if the file no longer exists.
        """
        if mtime is None:
            mtime = time.time()
        try:
            os.utime(self.path, (mtime, mtime))
        except FileNotFoundError:
            return False
        return True

    def unlink(self) -> None:
        self.path.unlink(missing_ok=True)

    def read_text(self) -> str:
        return self.path.read_text(encoding="utf-8")

    @contextmanager
    def atomic_writer(self) -> Iterator[BinaryIO]:
        """Yield a binary file that replaces this one when the block exits cleanly.

        On error the partial temporary file is removed and the existing
        cache file is left untouched.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.name}.", suffix=".incomplete")
        try:
            with os.fdopen(fd, "wb") as f:
                yield f
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def write_bytes(self, data: bytes) -> None:
        with self.atomic_writer() as f:
            f.write(data)

    def write_text(self, text: str) -> None:
        self.write_bytes(text.encode("utf-8"))

    def __repr__(self) -> str:
        return f"CachedFile({str(self.path)!r})"
