"""
Base58check codec for Tezos identifiers (tz1…, edpk…, edsk…, edsig…)
====================================================================

Tezos encodes every binary identifier as base58check over
``prefix || payload``. The prefix bytes are what make the text start with
``tz1``, ``edsk`` and so on. The alphabet and the double SHA-256 checksum are
handled by the ``base58`` package; this module only owns the Tezos prefixes.

Usage
-----
    pkh = b58check_encode(digest20, PREFIX["tz1"])     # "tz1..."
    digest20 = b58check_decode(pkh, PREFIX["tz1"])     # original bytes

Notes
-----
* Only the ed25519 family is registered; other curves are out of scope.
"""

from __future__ import annotations

from typing import Dict

import base58

from ..errors import Base58Error

PREFIX: Dict[str, bytes] = {
    "tz1": bytes([6, 161, 159]),
    "edpk": bytes([13, 15, 37, 217]),
    "edsk": bytes([43, 246, 78, 7]),
    "edsk2": bytes([13, 15, 58, 7]),
    "edsig": bytes([9, 245, 205, 134, 18]),
    "B": bytes([1, 52]),
    "o": bytes([5, 116]),
}


def b58check_encode(payload: bytes, prefix: bytes = b"") -> str:
    """Encode `payload` under `prefix` with a 4-byte double-SHA256 checksum."""
    return base58.b58encode_check(prefix + payload).decode("ascii")


def b58check_decode(text: str, prefix: bytes = b"") -> bytes:
    """Decode base58check `text`, verify checksum and strip `prefix`."""
    try:
        data = base58.b58decode_check(text)
    except ValueError as e:
        raise Base58Error(f"invalid base58check string: {e}") from e
    if not data.startswith(prefix):
        raise Base58Error("unexpected base58check prefix")
    return data[len(prefix):]


__all__ = ["PREFIX", "b58check_encode", "b58check_decode"]
