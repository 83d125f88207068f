"""
tz_sdk.node — manager operations against a Tezos node.

The binary encoding of operations is left to the node itself
(``helpers/forge/operations``); this module only assembles the JSON
contents, fills in counters, signs and injects.

Typical flow:

    node = TezosNode()
    node.set_provider("https://rpc.tzbeta.net")
    keys = extract_keys(secret)
    op_hash = await node.transfer(keys.pkh, keys, "tz1...", "1000", "1420")
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .crypto import Keys, sign
from .errors import OperationError, TzSdkError
from .rpc.http import AsyncNodeClient
from .utils.base58 import PREFIX, b58check_encode

log = logging.getLogger(__name__)

HEAD = "/chains/main/blocks/head"

DEFAULT_GAS_LIMIT = "10600"
DEFAULT_STORAGE_LIMIT = "300"

REVEAL_FEE = "1270"
REVEAL_GAS_LIMIT = "10000"

__all__ = [
    "DEFAULT_GAS_LIMIT",
    "DEFAULT_STORAGE_LIMIT",
    "ForgedOperation",
    "TezosNode",
]


@dataclass(frozen=True)
class ForgedOperation:
    """Unsigned forged bytes (hex) plus the JSON object they were forged from."""

    opbytes: str
    op_ob: Dict[str, Any]


class TezosNode:
    """Facade over one node provider; a fresh HTTP client is opened per call."""

    def __init__(
        self,
        provider: Optional[str] = None,
        *,
        timeout: float = 30.0,
        max_retries: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.provider = provider
        self.timeout = timeout
        self.max_retries = max_retries
        self.transport = transport

    def set_provider(self, uri: str) -> None:
        self.provider = uri.rstrip("/")

    def _client(self) -> AsyncNodeClient:
        if not self.provider:
            raise TzSdkError("no node provider set")
        return AsyncNodeClient(
            self.provider,
            timeout=self.timeout,
            max_retries=self.max_retries,
            transport=self.transport,
        )

    # --- operations ------------------------------------------------------

    async def forge_operation(
        self,
        from_pkh: str,
        operations: Sequence[Dict[str, Any]],
        keys: Optional[Keys] = None,
    ) -> ForgedOperation:
        """
        Fill and forge `operations` for `from_pkh` without signing or injecting.

        When `keys` are given and the account has not revealed its public
        key yet, a reveal operation is prepended to the batch.
        """
        async with self._client() as rpc:
            return await self._forge(rpc, from_pkh, operations, keys)

    async def send_operation(
        self,
        from_pkh: str,
        operations: Sequence[Dict[str, Any]],
        keys: Keys,
    ) -> str:
        """Forge, sign with the generic watermark, preapply and inject; returns the operation hash."""
        async with self._client() as rpc:
            forged = await self._forge(rpc, from_pkh, operations, keys)
            signed = sign(forged.opbytes, keys.sk, "generic")
            op_ob = dict(forged.op_ob, signature=signed.edsig)
            return await self._inject(rpc, op_ob, signed.sbytes)

    async def inject(self, op_ob: Dict[str, Any], sopbytes: str) -> str:
        """Preapply then inject an already signed operation; returns the operation hash."""
        async with self._client() as rpc:
            return await self._inject(rpc, op_ob, sopbytes)

    async def transfer(
        self,
        from_pkh: str,
        keys: Keys,
        to: str,
        amount: str,
        fee: str,
        gas_limit: str = DEFAULT_GAS_LIMIT,
        storage_limit: str = DEFAULT_STORAGE_LIMIT,
    ) -> str:
        """Send `amount` mutez from `from_pkh` to `to`; returns the operation hash."""
        operation = {
            "kind": "transaction",
            "fee": str(fee),
            "gas_limit": str(gas_limit),
            "storage_limit": str(storage_limit),
            "amount": str(amount),
            "destination": to,
        }
        return await self.send_operation(from_pkh, [operation], keys)

    # --- internals -------------------------------------------------------

    async def _forge(
        self,
        rpc: AsyncNodeClient,
        from_pkh: str,
        operations: Sequence[Dict[str, Any]],
        keys: Optional[Keys],
    ) -> ForgedOperation:
        header = await rpc.get(f"{HEAD}/header")
        counter = int(await rpc.get(f"{HEAD}/context/contracts/{from_pkh}/counter"))

        contents: List[Dict[str, Any]] = [copy.deepcopy(op) for op in operations]
        if keys is not None:
            manager = await rpc.get(f"{HEAD}/context/contracts/{from_pkh}/manager_key")
            if not manager:
                log.debug("account %s is unrevealed; prepending reveal", from_pkh)
                contents.insert(
                    0,
                    {
                        "kind": "reveal",
                        "fee": REVEAL_FEE,
                        "gas_limit": REVEAL_GAS_LIMIT,
                        "storage_limit": "0",
                        "public_key": keys.pk,
                    },
                )
        for op in contents:
            counter += 1
            op["source"] = from_pkh
            op["counter"] = str(counter)

        body = {"branch": header["hash"], "contents": contents}
        opbytes = await rpc.post(f"{HEAD}/helpers/forge/operations", body)
        log.debug("forged %d operation(s) on branch %s", len(contents), header["hash"])
        op_ob = dict(body, protocol=header["protocol"])
        return ForgedOperation(opbytes=opbytes, op_ob=op_ob)

    async def _inject(self, rpc: AsyncNodeClient, op_ob: Dict[str, Any], sopbytes: str) -> str:
        op = dict(op_ob)
        if not op.get("signature"):
            # Signed bytes end with the raw 64-byte signature
            op["signature"] = b58check_encode(bytes.fromhex(sopbytes[-128:]), PREFIX["edsig"])
        if not op.get("protocol"):
            op["protocol"] = (await rpc.get(f"{HEAD}/header"))["protocol"]

        preapply = [
            {
                "protocol": op["protocol"],
                "branch": op["branch"],
                "contents": op["contents"],
                "signature": op["signature"],
            }
        ]
        results = await rpc.post(f"{HEAD}/helpers/preapply/operations", preapply)
        _raise_for_preapply(results)

        op_hash = await rpc.post("/injection/operation", sopbytes)
        log.debug("injected operation %s", op_hash)
        return op_hash


def _raise_for_preapply(results: Any) -> None:
    errors: List[Dict[str, Any]] = []
    failed = False
    for result in results or []:
        for content in result.get("contents", []):
            outcome = content.get("metadata", {}).get("operation_result", {})
            if outcome and outcome.get("status") != "applied":
                failed = True
                errors.extend(outcome.get("errors", []))
    if failed:
        raise OperationError("Operation failed in preapply", errors=errors)
