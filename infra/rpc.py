# infra/rpc.py

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

import aiohttp

from deployer.config import RPC_DEFAULT_TIMEOUT_S
from deployer.errors import ChainClientError, ChainClientTimeout

logger = logging.getLogger(__name__)


def _normalize_url(url: str) -> str:
    u = str(url).strip()
    if not u:
        return u
    if "://" not in u:
        u = "https://" + u
    return u


def _url_host(url: str) -> str:
    u = _normalize_url(url).lower()
    if "://" in u:
        u = u.split("://", 1)[1]
    return u.split("/", 1)[0]


def hex_to_int(value: Any) -> int:
    if isinstance(value, str):
        return int(value, 16)
    return int(value)


class AsyncRPC:
    """Async JSON-RPC client over a persistent aiohttp session.

    Every call has a hard timeout and is attempted exactly once; a timeout
    raises ChainClientTimeout, any other failure ChainClientError.
    """

    def __init__(self, url: str, *, default_timeout_s: float = RPC_DEFAULT_TIMEOUT_S):
        self.url = _normalize_url(url)
        if not self.url:
            raise ChainClientError("empty RPC url")
        self.default_timeout_s = float(default_timeout_s)
        self._id = 0
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "AsyncRPC":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session and not self._session.closed:
            return self._session
        self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def call(self, method: str, params: list, *, timeout_s: Optional[float] = None) -> Any:
        self._id += 1
        payload = {"jsonrpc": "2.0", "id": self._id, "method": method, "params": params}
        to_s = float(timeout_s) if timeout_s is not None else self.default_timeout_s
        session = await self._get_session()
        host = _url_host(self.url)

        async def _do() -> Any:
            async with session.post(self.url, json=payload) as resp:
                if resp.status >= 400:
                    text = await resp.text()
                    raise ChainClientError(f"{method}: http_{resp.status} from {host}: {text[:200]}")
                return await resp.json(content_type=None)

        t0 = time.perf_counter()
        try:
            data = await asyncio.wait_for(_do(), timeout=to_s)
        except asyncio.TimeoutError:
            raise ChainClientTimeout(f"{method}: timeout({to_s}s) from {host}") from None
        except aiohttp.ClientError as exc:
            raise ChainClientError(f"{method}: {type(exc).__name__}: {exc}") from exc
        except ValueError as exc:
            raise ChainClientError(f"{method}: decode_error: {exc}") from exc
        finally:
            logger.debug("rpc %s %s %.0fms", host, method, (time.perf_counter() - t0) * 1000.0)

        if not isinstance(data, dict):
            raise ChainClientError(f"{method}: unexpected response {data!r}"[:240])
        if "error" in data:
            err = data["error"]
            msg = err.get("message") if isinstance(err, dict) else err
            raise ChainClientError(f"{method}: rpc_error: {msg}")
        return data.get("result")

    async def chain_id(self) -> int:
        return hex_to_int(await self.call("eth_chainId", []))

    async def block_number(self) -> int:
        return hex_to_int(await self.call("eth_blockNumber", []))

    async def get_balance(self, address: str, block_tag: str = "latest") -> int:
        return hex_to_int(await self.call("eth_getBalance", [address, block_tag]))

    async def get_transaction_count(self, address: str, block_tag: str = "pending") -> int:
        return hex_to_int(await self.call("eth_getTransactionCount", [address, block_tag]))

    async def get_block(self, block_tag: str = "latest") -> Optional[dict]:
        res = await self.call("eth_getBlockByNumber", [block_tag, False])
        return res if isinstance(res, dict) else None

    async def send_raw_transaction(self, raw_tx: str) -> str:
        return str(await self.call("eth_sendRawTransaction", [raw_tx]))

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[dict]:
        res = await self.call("eth_getTransactionReceipt", [tx_hash])
        return res if isinstance(res, dict) else None
