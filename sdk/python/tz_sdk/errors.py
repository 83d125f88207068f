"""
Typed error classes for the Tezos SDK.

These are raised by rpc/http, crypto and node helpers so callers can catch
specific failure modes while still being able to catch the base `TzSdkError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

__all__ = [
    "TzSdkError",
    "Base58Error",
    "InvalidKeyError",
    "RpcError",
    "NodeUnreachableError",
    "OperationError",
]


class TzSdkError(Exception):
    """Base class for all SDK errors."""


class Base58Error(TzSdkError, ValueError):
    """Raised on malformed base58check input (bad alphabet, checksum or prefix)."""


class InvalidKeyError(TzSdkError, ValueError):
    """Raised when a secret key cannot be decoded into an ed25519 keypair."""


@dataclass(eq=False)
class RpcError(TzSdkError):
    """Raised when the node answers an RPC with a non-success HTTP status."""

    path: str
    message: str
    status: Optional[int] = None
    data: Optional[Any] = None

    def __str__(self) -> str:
        parts = [f"RPC[{self.path}]"]
        if self.status is not None:
            parts.append(f"http={self.status}")
        parts.append(self.message)
        return " ".join(parts)


@dataclass(eq=False)
class NodeUnreachableError(RpcError):
    """
    Raised when the node could not be reached after all transport retries.

    `attempts` counts every try including the first one.
    """

    attempts: int = 1

    def __str__(self) -> str:
        return f"Node unreachable at {self.path} after {self.attempts} attempt(s): {self.message}"


@dataclass(eq=False)
class OperationError(TzSdkError):
    """
    Raised when preapply reports an operation that would not be applied.

    `errors` holds the raw error objects returned by the node, most specific last.
    """

    message: str
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def __str__(self) -> str:
        ids = [str(e.get("id")) for e in self.errors if isinstance(e, dict) and e.get("id")]
        if ids:
            return f"{self.message}: {', '.join(ids)}"
        return self.message
