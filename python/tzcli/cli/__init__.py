"""Command line interface for tzcli.

`main.build_app()` turns the command table in `commands` into a Typer
application; `main.main()` is the console entry point.
"""

from __future__ import annotations

__all__ = ["base", "commands", "main", "outcome", "service"]
