"""Module entry point: python -m walk_tracker ..."""

from __future__ import annotations

from walk_tracker.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
