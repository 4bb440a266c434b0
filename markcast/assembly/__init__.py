"""Assembly orchestration over the stores and the concatenation engine."""

from .orchestrator import AssemblyOrchestrator

__all__ = ["AssemblyOrchestrator"]
