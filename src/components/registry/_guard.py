"""
In-flight guard for registry mutations.

Admits at most one holder per token. Tokens are asset ids, plus ("slug", ...)
and ("key", ...) tuples for the slug and storage keys a mutation is about to
change. A second caller is refused immediately rather than queued; contention
never spans unrelated tokens.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterator
from contextlib import contextmanager
from threading import Lock


def slug_token(slug: str) -> tuple[str, str]:
    return ("slug", slug)


def key_token(storage_key: str) -> tuple[str, str]:
    return ("key", storage_key)


class InFlightGuard:
    def __init__(self) -> None:
        self._lock = Lock()
        self._active: set[Hashable] = set()

    def try_acquire(self, *tokens: Hashable) -> bool:
        """Take every token, or none of them if any is already held."""
        with self._lock:
            if any(t in self._active for t in tokens):
                return False
            self._active.update(tokens)
            return True

    def release(self, *tokens: Hashable) -> None:
        with self._lock:
            self._active.difference_update(tokens)

    def is_active(self, token: Hashable) -> bool:
        with self._lock:
            return token in self._active

    @contextmanager
    def claim(self, *tokens: Hashable) -> Iterator[bool]:
        """Yield True if the claim was granted; release on exit only if granted."""
        granted = self.try_acquire(*tokens)
        try:
            yield granted
        finally:
            if granted:
                self.release(*tokens)
