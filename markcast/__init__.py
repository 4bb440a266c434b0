"""Top-level package for markcast.

This package orders narrated bookmark segments into playlists and assembles
them into single episode files, keeping a ledger of what has been merged.
The main orchestration entry point is `AssemblyOrchestrator`.
"""

from .assembly.orchestrator import AssemblyOrchestrator

__all__ = ["AssemblyOrchestrator", "__version__"]

__version__ = "0.1.0"
