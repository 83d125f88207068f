"""
tz_sdk.rpc
----------

Async HTTP transport for the Tezos node RPC.

    from tz_sdk.rpc import AsyncNodeClient
    async with AsyncNodeClient("http://localhost:8732") as rpc:
        head = await rpc.get("/chains/main/blocks/head/header")
"""

from __future__ import annotations

from .http import AsyncNodeClient

__all__ = ["AsyncNodeClient"]
