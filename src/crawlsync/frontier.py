"""Bounded breadth-first URL frontier for a single crawl of a single site."""

from __future__ import annotations

import threading
from collections import deque
from urllib.parse import urldefrag

from crawlsync.models.content import FrontierItem


class UrlFrontier:
    """FIFO queue of discovered URLs with a permanent, capped seen-set.

    Owned by one ``crawl_site`` invocation and discarded afterwards. Once
    ``max_pages`` distinct URLs have been seen, further URLs are dropped,
    so traversal is bounded rather than complete. ``add``, ``has_next`` and
    ``next`` all hold the same lock.
    """

    def __init__(self, max_pages: int) -> None:
        if max_pages < 1:
            raise ValueError(f"max_pages must be >= 1, got {max_pages}")
        self._max_pages = max_pages
        self._queue: deque[FrontierItem] = deque()
        self._seen: set[str] = set()
        self._lock = threading.Lock()

    def add(self, url: str | None, depth: int) -> bool:
        """Enqueue ``url`` at ``depth``. Returns True if it was accepted."""
        if url is None:
            return False
        url, _fragment = urldefrag(url.strip())
        if not url:
            return False
        with self._lock:
            if len(self._seen) >= self._max_pages or url in self._seen:
                return False
            self._seen.add(url)
            self._queue.append(FrontierItem(url=url, depth=depth))
            return True

    def has_next(self) -> bool:
        with self._lock:
            return bool(self._queue)

    def next(self) -> FrontierItem:
        """Pop the oldest item. Raises IndexError when empty."""
        with self._lock:
            return self._queue.popleft()

    @property
    def seen_count(self) -> int:
        with self._lock:
            return len(self._seen)

    @property
    def max_pages(self) -> int:
        return self._max_pages
