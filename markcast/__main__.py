"""Module entrypoint for running markcast as ``python -m markcast``."""

from __future__ import annotations

from markcast.cli import main


if __name__ == "__main__":
    main()
