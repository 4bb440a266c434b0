"""Run logging for deterministic auditing of assembly invocations."""

from .logger import RunLogger

__all__ = ["RunLogger"]
