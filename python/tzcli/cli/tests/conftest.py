from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

PYTHON_ROOT = Path(__file__).resolve().parents[3]
if str(PYTHON_ROOT) not in sys.path:
    sys.path.insert(0, str(PYTHON_ROOT))
SDK_ROOT = PYTHON_ROOT.parent / "sdk" / "python"
if str(SDK_ROOT) not in sys.path:
    sys.path.insert(0, str(SDK_ROOT))

from tz_sdk.crypto import Keys, Signature  # noqa: E402
from tz_sdk.node import ForgedOperation  # noqa: E402

NETWORK_CALLS = ("transfer", "forge_operation", "inject")

SENDER = Keys(sk="edskSENDER", pk="edpkSENDER", pkh="tz1Sender")
FAKE_SIG = "ff" * 64


class FakeService:
    """In-memory TezosService recording every call it receives."""

    def __init__(
        self,
        *,
        keys: Any = SENDER,
        op_hash: str = "op123",
        delay: float = 0.0,
        error: Optional[BaseException] = None,
    ) -> None:
        self.keys = keys
        self.op_hash = op_hash
        self.delay = delay
        self.error = error
        self.provider: Optional[str] = None
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []

    @property
    def network_calls(self) -> List[Tuple[str, Tuple[Any, ...]]]:
        return [c for c in self.calls if c[0] in NETWORK_CALLS]

    def set_provider(self, uri: str) -> None:
        self.calls.append(("set_provider", (uri,)))
        self.provider = uri

    def extract_keys(self, secret_key: str) -> Keys:
        self.calls.append(("extract_keys", (secret_key,)))
        if isinstance(self.keys, BaseException):
            raise self.keys
        return self.keys

    def sign(self, payload_hex: str, secret_key: str, watermark: Optional[str]) -> Signature:
        self.calls.append(("sign", (payload_hex, secret_key, watermark)))
        return Signature(
            bytes=payload_hex,
            sig=FAKE_SIG,
            edsig="edsigFAKE",
            sbytes=payload_hex + FAKE_SIG,
        )

    async def _network(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

    async def transfer(self, from_pkh: str, keys: Keys, to: str, amount: str, fee: str) -> str:
        await self._network("transfer", from_pkh, keys, to, amount, fee)
        return self.op_hash

    async def forge_operation(
        self, from_pkh: str, operations: List[Dict[str, Any]], keys: Keys
    ) -> ForgedOperation:
        await self._network("forge_operation", from_pkh, operations, keys)
        return ForgedOperation(
            opbytes="0a0b0c",
            op_ob={"branch": "BLfake", "contents": operations, "protocol": "PtFake"},
        )

    async def inject(self, op_ob: Dict[str, Any], sopbytes: str) -> str:
        await self._network("inject", op_ob, sopbytes)
        return self.op_hash


@pytest.fixture
def service() -> FakeService:
    return FakeService()


@pytest.fixture
def make_service():
    return FakeService
