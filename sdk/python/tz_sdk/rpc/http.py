"""
Async HTTP client for the Tezos node RPC.

- Uses httpx.AsyncClient; one client per `async with` block.
- Retries on transient transport failures and 429/5xx HTTP statuses.
- Everything else (4xx, malformed JSON) is raised immediately as RpcError.

Example:
    async with AsyncNodeClient("http://localhost:8732") as rpc:
        header = await rpc.get("/chains/main/blocks/head/header")
        print(header["hash"])
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import httpx

from ..errors import NodeUnreachableError, RpcError
from ..version import __version__ as SDK_VERSION

log = logging.getLogger(__name__)


def _is_retriable_http(status: int) -> bool:
    return status in (429, 502, 503, 504)


def _jitter_backoff(base: float, factor: float, attempt: int, jitter: float) -> float:
    # Exponential backoff with jitter in [0, jitter]
    return base * (factor ** max(attempt - 1, 0)) + random.random() * jitter


@dataclass
class AsyncNodeClient:
    """JSON-over-HTTP client for a single Tezos node."""

    url: str
    timeout: float = 30.0
    max_retries: int = 3
    backoff_base: float = 0.15
    backoff_factor: float = 1.8
    backoff_jitter: float = 0.2
    headers: Optional[Mapping[str, str]] = None
    transport: Optional[httpx.AsyncBaseTransport] = None
    _client: Optional[httpx.AsyncClient] = field(init=False, default=None)

    # --- context manager -------------------------------------------------

    async def __aenter__(self) -> "AsyncNodeClient":
        merged_headers: Dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": f"tz-sdk-python/{SDK_VERSION}",
        }
        if self.headers:
            merged_headers.update(dict(self.headers))
        self._client = httpx.AsyncClient(
            base_url=self.url.rstrip("/"),
            timeout=self.timeout,
            headers=merged_headers,
            transport=self.transport,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # --- public API ------------------------------------------------------

    async def get(self, path: str) -> Any:
        return await self._request("GET", path)

    async def post(self, path: str, body: Any) -> Any:
        return await self._request("POST", path, body)

    # --- internals -------------------------------------------------------

    async def _request(self, method: str, path: str, body: Any = None) -> Any:
        if self._client is None:
            raise RuntimeError("AsyncNodeClient used outside of 'async with'")
        content = None if body is None else json.dumps(body, separators=(",", ":"))
        last_exc: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 2):  # N retries -> N+1 attempts
            try:
                log.debug("%s %s (attempt %d)", method, path, attempt)
                resp = await self._client.request(method, path, content=content)
            except httpx.TransportError as e:
                last_exc = e
            else:
                if not _is_retriable_http(resp.status_code):
                    return self._handle_response(path, resp)
                last_exc = RuntimeError(f"HTTP {resp.status_code}")
            if attempt > self.max_retries:
                break
            delay = _jitter_backoff(self.backoff_base, self.backoff_factor, attempt, self.backoff_jitter)
            log.warning("%s %s failed (%s); retrying in %.2fs", method, path, last_exc, delay)
            await asyncio.sleep(delay)
        raise NodeUnreachableError(
            path=path,
            message=str(last_exc) or type(last_exc).__name__,
            attempts=self.max_retries + 1,
        )

    @staticmethod
    def _handle_response(path: str, resp: httpx.Response) -> Any:
        parsed: Any = None
        decoded = False
        if resp.content:
            try:
                parsed = resp.json()
                decoded = True
            except ValueError:
                pass
        if resp.status_code >= 400:
            # The node returns a JSON list of error objects on 4xx/500
            message = resp.text[:256].strip() or resp.reason_phrase
            raise RpcError(path=path, message=message, status=resp.status_code, data=parsed)
        if resp.content and not decoded:
            raise RpcError(
                path=path,
                message="Non-JSON response from node",
                status=resp.status_code,
                data=resp.text[:256],
            )
        return parsed


__all__ = ["AsyncNodeClient"]
