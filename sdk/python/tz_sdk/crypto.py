"""
tz_sdk.crypto
=============

Ed25519 key extraction and operation signing for Tezos accounts.

Key features
------------
- Accepts both secret key encodings a wallet may hand out:
  ``edsk…`` with 98 chars (64-byte secret = seed || public key) and
  ``edsk…`` with 54 chars (32-byte seed).
- Derives ``edpk…`` public keys and ``tz1…`` public key hashes
  (blake2b-160 over the raw public key).
- Signs hex payloads the way the node verifies them: ed25519 over
  blake2b-256 of ``watermark || bytes``.

The curve arithmetic itself is deferred to the `cryptography` package.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Optional, Tuple

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from .errors import Base58Error, InvalidKeyError
from .utils.base58 import PREFIX, b58check_decode, b58check_encode

__all__ = ["WATERMARK", "Keys", "Signature", "extract_keys", "sign"]

WATERMARK = {
    "block": b"\x01",
    "endorsement": b"\x02",
    "generic": b"\x03",
}


@dataclass(frozen=True)
class Keys:
    """Decoded account keys; `sk` is always the 64-byte ``edsk`` form."""

    sk: str
    pk: str
    pkh: str

    def __repr__(self) -> str:
        return f"Keys(pk={self.pk!r}, pkh={self.pkh!r})"


@dataclass(frozen=True)
class Signature:
    """
    Result of signing a forged operation.

    Attributes
    ----------
    bytes : str
        The unsigned payload (hex) that was signed.
    sig : str
        Raw 64-byte signature (hex).
    edsig : str
        Base58check ``edsig…`` form of the signature.
    sbytes : str
        ``bytes || sig`` (hex), the payload accepted by ``/injection/operation``.
    """

    bytes: str
    sig: str
    edsig: str
    sbytes: str


def _decode_secret(secret_key: str) -> bytes:
    """Return the 32-byte ed25519 seed carried by an ``edsk`` string."""
    if not secret_key or not secret_key.startswith("edsk"):
        raise InvalidKeyError("secret key must be an ed25519 'edsk' key")
    try:
        if len(secret_key) == 98:
            raw = b58check_decode(secret_key, PREFIX["edsk"])
            if len(raw) != 64:
                raise InvalidKeyError("edsk secret key must carry 64 bytes")
            return raw[:32]
        if len(secret_key) == 54:
            raw = b58check_decode(secret_key, PREFIX["edsk2"])
            if len(raw) != 32:
                raise InvalidKeyError("edsk seed must carry 32 bytes")
            return raw
    except Base58Error as e:
        raise InvalidKeyError(f"undecodable secret key: {e}") from e
    raise InvalidKeyError(f"unexpected secret key length {len(secret_key)}")


def _keypair(secret_key: str) -> Tuple[Ed25519PrivateKey, bytes, bytes]:
    seed = _decode_secret(secret_key)
    private = Ed25519PrivateKey.from_private_bytes(seed)
    public = private.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return private, seed, public


def extract_keys(secret_key: str) -> Keys:
    """Derive the public key and public key hash for `secret_key`."""
    _, seed, public = _keypair(secret_key)
    pkh = hashlib.blake2b(public, digest_size=20).digest()
    return Keys(
        sk=b58check_encode(seed + public, PREFIX["edsk"]),
        pk=b58check_encode(public, PREFIX["edpk"]),
        pkh=b58check_encode(pkh, PREFIX["tz1"]),
    )


def sign(payload_hex: str, secret_key: str, watermark: Optional[str] = None) -> Signature:
    """
    Sign the hex `payload_hex` with `secret_key`.

    `watermark` names an entry of `WATERMARK` (``"generic"`` for manager
    operations) and is prepended to the payload before hashing.
    """
    try:
        payload = bytes.fromhex(payload_hex)
    except ValueError as e:
        raise ValueError("payload must be hex encoded") from e
    if watermark is not None:
        try:
            payload = WATERMARK[watermark] + payload
        except KeyError:
            raise ValueError(f"unknown watermark {watermark!r}") from None

    private, _, _ = _keypair(secret_key)
    digest = hashlib.blake2b(payload, digest_size=32).digest()
    sig = private.sign(digest)
    return Signature(
        bytes=payload_hex,
        sig=sig.hex(),
        edsig=b58check_encode(sig, PREFIX["edsig"]),
        sbytes=payload_hex + sig.hex(),
    )
