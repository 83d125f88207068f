"""Encoding and unit helpers shared by the SDK modules."""

from __future__ import annotations

from .base58 import b58check_decode, b58check_encode  # noqa: F401
from .units import to_mutez, to_tez  # noqa: F401

__all__ = ["b58check_encode", "b58check_decode", "to_mutez", "to_tez"]
