"""Dedup window + paging cursor over the mint's signature stream.

The window remembers the last ``capacity`` processed signatures with
strict FIFO eviction: the oldest inserted entry goes first, and seeing a
signature again does not refresh it.
"""

from __future__ import annotations

from collections import OrderedDict

from burnwatch.models import SignatureInfo


class DedupCursor:
    """Seen-set plus the ``until`` cursor for getSignaturesForAddress."""

    def __init__(self, capacity: int = 2000):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self.cursor: str | None = None
        self._seen: OrderedDict[str, None] = OrderedDict()

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, signature: str) -> bool:
        return signature in self._seen

    def is_seen(self, signature: str) -> bool:
        return signature in self._seen

    def seed(self, signature: str) -> None:
        """Start from the newest signature so the backlog is never replayed."""
        self.cursor = signature
        self.mark_seen(signature)

    def mark_seen(self, signature: str) -> bool:
        """Record a signature. Returns False if it was already present."""
        if signature in self._seen:
            return False
        if len(self._seen) >= self.capacity:
            self._seen.popitem(last=False)
        self._seen[signature] = None
        return True

    def unseen(self, page: list[SignatureInfo]) -> list[SignatureInfo]:
        """Entries of a newest-first page not yet seen, oldest first.

        Duplicates inside the page are collapsed. Nothing is recorded.
        """
        result: list[SignatureInfo] = []
        picked: set[str] = set()
        for info in reversed(page):
            if info.signature in self._seen or info.signature in picked:
                continue
            picked.add(info.signature)
            result.append(info)
        return result

    def commit(self, page: list[SignatureInfo]) -> None:
        """Move the cursor to the newest signature of a fetched page."""
        if page:
            self.cursor = page[0].signature

    def advance(self, page: list[SignatureInfo]) -> list[SignatureInfo]:
        """Filter, record and commit in one step.

        Returns the unseen entries oldest first; they count as seen from
        now on, and the cursor excludes this page on the next request.
        """
        fresh = self.unseen(page)
        for info in fresh:
            self.mark_seen(info.signature)
        self.commit(page)
        return fresh
