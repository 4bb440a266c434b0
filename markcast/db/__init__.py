"""Relational persistence for segments, playlists, and the assembly ledger."""

from .database import Database

__all__ = ["Database"]
