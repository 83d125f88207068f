"""Version of the Tezos Python SDK bundled with tzcli."""

from __future__ import annotations

# Bump this when publishing
__version__ = "0.1.0"

__all__ = ["__version__"]
