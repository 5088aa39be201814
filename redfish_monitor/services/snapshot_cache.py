"""Holder for the latest traversal result."""

import threading
from types import MappingProxyType
from typing import Any, Mapping, Optional


# Resource path -> decoded JSON document
Snapshot = Mapping[str, Any]


def freeze_snapshot(data: Mapping[str, Any]) -> Snapshot:
    """Return a read-only view over a private copy of a traversal result."""
    return MappingProxyType(dict(data))


class SnapshotCache:
    """
    Single-writer, many-reader cache of the current snapshot.

    The poller publishes a fully built snapshot with ``set``; scrapes take the
    current reference once with ``get`` and compute from it. Only the reference
    swap is guarded, so neither side waits on the other's work.
    """

    def __init__(self, snapshot: Optional[Mapping[str, Any]] = None):
        self._snapshot = freeze_snapshot(snapshot or {})
        self._lock = threading.Lock()

    def set(self, snapshot: Mapping[str, Any]) -> None:
        """Replace the current snapshot."""
        frozen = freeze_snapshot(snapshot)
        with self._lock:
            self._snapshot = frozen

    def get(self) -> Snapshot:
        """Return the current snapshot."""
        with self._lock:
            return self._snapshot
