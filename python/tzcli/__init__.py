"""tzcli — a small Tezos command-line client built on tz_sdk."""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
