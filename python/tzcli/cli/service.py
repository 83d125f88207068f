"""
Port between the commands and the Tezos library.

Commands only talk to a `TezosService`; `SdkService` is the production
adapter over tz_sdk, tests swap in fakes with the same shape.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from tz_sdk import crypto
from tz_sdk.crypto import Keys, Signature
from tz_sdk.node import ForgedOperation, TezosNode


@runtime_checkable
class TezosService(Protocol):
    def set_provider(self, uri: str) -> None: ...

    def extract_keys(self, secret_key: str) -> Keys: ...

    def sign(self, payload_hex: str, secret_key: str, watermark: Optional[str]) -> Signature: ...

    async def transfer(self, from_pkh: str, keys: Keys, to: str, amount: str, fee: str) -> str: ...

    async def forge_operation(
        self, from_pkh: str, operations: List[Dict[str, Any]], keys: Keys
    ) -> ForgedOperation: ...

    async def inject(self, op_ob: Dict[str, Any], sopbytes: str) -> str: ...


class SdkService:
    """TezosService backed by tz_sdk."""

    def __init__(self, node: Optional[TezosNode] = None) -> None:
        self.node = node or TezosNode()

    def set_provider(self, uri: str) -> None:
        self.node.set_provider(uri)

    def extract_keys(self, secret_key: str) -> Keys:
        return crypto.extract_keys(secret_key)

    def sign(self, payload_hex: str, secret_key: str, watermark: Optional[str]) -> Signature:
        return crypto.sign(payload_hex, secret_key, watermark)

    async def transfer(self, from_pkh: str, keys: Keys, to: str, amount: str, fee: str) -> str:
        return await self.node.transfer(from_pkh, keys, to, amount, fee)

    async def forge_operation(
        self, from_pkh: str, operations: List[Dict[str, Any]], keys: Keys
    ) -> ForgedOperation:
        return await self.node.forge_operation(from_pkh, operations, keys)

    async def inject(self, op_ob: Dict[str, Any], sopbytes: str) -> str:
        return await self.node.inject(op_ob, sopbytes)
