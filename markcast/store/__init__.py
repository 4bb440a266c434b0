"""Persisted stores: segments, playlist ordering, assembly ledger, and locks."""

from .ledger import AssemblyLedger, UnprocessedSegmentResolver
from .locks import AssemblyLock
from .playlists import PlaylistStore
from .segments import SegmentStore

__all__ = [
    "AssemblyLedger",
    "AssemblyLock",
    "PlaylistStore",
    "SegmentStore",
    "UnprocessedSegmentResolver",
]
