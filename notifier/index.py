"""
Registration index for the notifier.

Maps each notification tag to the tuple of HandlerBindings enlisted under it,
in registration order. This is the only shared mutable state in the notifier.

Writers are serialised by a lock and publish a brand new tuple for the tag
(copy-on-write), so readers never take the lock and never observe a partially
appended sequence: they see either the tuple from before an append or the one
after it. A tag is present only while it has at least one binding.
"""

import threading
from typing import Iterator

from notifier.binding import HandlerBinding


class RegistrationIndex(object):
    """Thread-safe, append-only mapping of tag -> ordered HandlerBindings."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[HandlerBinding, ...]] = {}
        self._lock = threading.Lock()

    def register(self, tag: str, binding: HandlerBinding) -> bool:
        """
        Append a binding to a tag's sequence, creating the sequence if absent.

        Args:
            tag (str): The notification tag.
            binding (HandlerBinding): The binding to append.
        Returns:
            bool: True if this created the tag, False if it already existed.
        """
        with self._lock:
            existing = self._entries.get(tag)
            if existing is None:
                self._entries[tag] = (binding,)
                return True

            self._entries[tag] = existing + (binding,)
            return False

    def contains(self, tag: str) -> bool:
        """True if at least one binding is registered for the tag."""
        return tag in self._entries

    def lookup(self, tag: str) -> tuple[HandlerBinding, ...]:
        """Snapshot of the tag's bindings in registration order; empty if unknown."""
        return self._entries.get(tag, ())

    def count(self, tag: str) -> int:
        return len(self.lookup(tag))

    def tags(self) -> list[str]:
        """All registered tags, sorted."""
        return sorted(self._entries.copy())

    def snapshot(self) -> dict[str, tuple[HandlerBinding, ...]]:
        """A consistent copy of the whole index."""
        with self._lock:
            return dict(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries = {}

    def __contains__(self, tag: object) -> bool:
        return tag in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.tags())
