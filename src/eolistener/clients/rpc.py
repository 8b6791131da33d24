"""Lightweight JSON-RPC client for Ethereum-compatible nodes.

This module provides:
- `RPC`: an async client with sane timeouts/connection limits
- Helpers to normalise raw log dicts and block references

It returns `EventLog` records ready for downstream decoding. Every failure
(HTTP status, connection, malformed body, JSON-RPC `error`) is raised as
`TransportError` so callers can treat the wire as one failure domain.
"""

from __future__ import annotations

import itertools
from collections.abc import Iterable, Sequence
from typing import Any

import httpx

from eolistener.core.errors import TransportError
from eolistener.core.models import ContractAddress, EventLog, LogFilterSpec, to_hex_block

BlockRef = int | str  # block number or tag ("latest", "earliest", "pending", ...)


def block_param(block: BlockRef) -> str:
    """Render a block number or tag for an RPC call."""
    if isinstance(block, int):
        return to_hex_block(block)
    return block


def _hex_int(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    return int(value, 16)


def _address_param(address: str | ContractAddress) -> str:
    if isinstance(address, ContractAddress):
        return address.lower
    return ContractAddress.parse(address).lower


def event_log_from_rpc(rl: dict[str, Any]) -> EventLog:
    """Map one `eth_getLogs` result entry onto an EventLog.

    Pending logs carry `blockNumber: null`; that is kept as None.
    """
    topics = tuple((t if isinstance(t, str) else t.decode()).lower() for t in rl.get("topics", []))
    return EventLog(
        address=str(rl.get("address") or "").lower(),
        topics=topics,
        data_hex=str(rl.get("data") or "0x"),
        block_number=_hex_int(rl.get("blockNumber")),
        tx_hash=(rl.get("transactionHash") or rl.get("transaction_hash") or "").lower(),
        log_index=_hex_int(rl.get("logIndex")),
    )


class RPC:
    """Minimal async RPC client.

    Parameters
    ----------
    url : str
        RPC endpoint URL.
    timeout_s : int
        Per-operation timeout in seconds (connect/read/write).
    max_connections : int
        Maximum concurrent connections to keep in the pool.
    transport : httpx.AsyncBaseTransport | None
        Optional transport override (tests use `httpx.MockTransport`).
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_s: int = 20,
        max_connections: int = 16,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._ids = itertools.count(1)
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=timeout_s,
                read=timeout_s,
                write=timeout_s,
                pool=max(30, timeout_s * 3),
            ),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            http2=True,
            transport=transport,
        )

    async def __aenter__(self) -> RPC:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ---------- wire ----------

    def _payload(self, method: str, params: list[Any]) -> dict[str, Any]:
        return {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}

    async def _post(self, body: Any) -> Any:
        try:
            r = await self.client.post(self.url, json=body)
            r.raise_for_status()
            return r.json()
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise TransportError(f"Invalid JSON-RPC response body: {e}") from e

    @staticmethod
    def _result(data: Any) -> Any:
        if not isinstance(data, dict):
            raise TransportError(f"Unexpected JSON-RPC response: {data!r}")
        if "error" in data:
            e = data["error"]
            if isinstance(e, dict):
                raise TransportError(f"RPC error: {e.get('code')} {e.get('message')}")
            raise TransportError(f"RPC error: {e}")
        if "result" not in data:
            raise TransportError("JSON-RPC response has no result")
        return data["result"]

    async def request(self, method: str, params: list[Any]) -> Any:
        """Send one JSON-RPC request and return its `result`."""
        return self._result(await self._post(self._payload(method, params)))

    async def batch_request(self, calls: Sequence[tuple[str, list[Any]]]) -> list[Any]:
        """Send a JSON-RPC batch; results are returned in `calls` order."""
        if not calls:
            return []
        payloads = [self._payload(method, params) for method, params in calls]
        data = await self._post(payloads)
        if not isinstance(data, list):
            # Some nodes answer a failed batch with a single error object.
            self._result(data)
            raise TransportError(f"Unexpected JSON-RPC batch response: {data!r}")
        by_id = {item.get("id"): item for item in data if isinstance(item, dict)}
        out: list[Any] = []
        for p in payloads:
            item = by_id.get(p["id"])
            if item is None:
                raise TransportError(f"Missing response for batch request id {p['id']}")
            out.append(self._result(item))
        return out

    # ---------- logs ----------

    async def latest_block(self) -> int:
        """Return the latest block number as an int."""
        return int(await self.request("eth_blockNumber", []), 16)

    async def get_logs(self, filter_spec: LogFilterSpec) -> list[EventLog]:
        """Fetch logs matching `filter_spec`, in the order the node lists them."""
        result = await self.request("eth_getLogs", [filter_spec.to_params()])
        if not isinstance(result, list):
            raise TransportError(f"eth_getLogs returned {type(result).__name__}, expected list")
        try:
            return [event_log_from_rpc(rl) for rl in result]
        except (TypeError, ValueError, AttributeError) as e:
            raise TransportError(f"Malformed log entry in eth_getLogs response: {e}") from e

    # ---------- balances ----------

    async def get_balance(self, address: str | ContractAddress, block: BlockRef = "latest") -> int:
        """Return the native balance (wei) of `address` at `block`."""
        return int(await self.request("eth_getBalance", [_address_param(address), block_param(block)]), 16)

    async def get_balances(
        self,
        addresses: Iterable[str | ContractAddress],
        block: BlockRef = "latest",
    ) -> list[tuple[str, int]]:
        """Balances of many addresses in one batch request."""
        addrs = [_address_param(a) for a in addresses]
        results = await self.batch_request([("eth_getBalance", [a, block_param(block)]) for a in addrs])
        return [(a, int(r, 16)) for a, r in zip(addrs, results)]

    # ---------- calls ----------

    async def call(self, to: str | ContractAddress, data: bytes, block: BlockRef = "latest") -> bytes:
        """Run `eth_call` against `to` and return the raw return data."""
        result = await self.request("eth_call", [{"to": _address_param(to), "data": "0x" + data.hex()}, block_param(block)])
        return bytes.fromhex(result[2:] if result.startswith("0x") else result)

    async def call_batch(
        self,
        calls: Iterable[tuple[str | ContractAddress, bytes]],
        block: BlockRef = "latest",
    ) -> list[bytes]:
        """Many `eth_call`s in one batch request, results in input order."""
        reqs = [
            ("eth_call", [{"to": _address_param(to), "data": "0x" + data.hex()}, block_param(block)])
            for to, data in calls
        ]
        results = await self.batch_request(reqs)
        return [bytes.fromhex(r[2:] if r.startswith("0x") else r) for r in results]

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
