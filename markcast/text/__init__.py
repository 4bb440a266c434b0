"""Naming helpers for produced audio files."""

from .slug import safe_filename_stem, unique_output_path

__all__ = ["safe_filename_stem", "unique_output_path"]
