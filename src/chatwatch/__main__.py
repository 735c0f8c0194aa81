"""chatwatch CLI bootstrap."""

from __future__ import annotations

from chatwatch.cli import app

if __name__ == "__main__":
    app()
