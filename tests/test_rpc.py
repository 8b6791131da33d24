import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from eolistener.clients.rpc import RPC, block_param, event_log_from_rpc
from eolistener.core.errors import TransportError
from eolistener.core.models import EventTopic, LogFilterSpec

from .conftest import CONTRACT

URL = "http://node.test"


def _rpc(handler: Callable[[Any], Any], status_code: int = 200) -> tuple[RPC, list[Any]]:
    """RPC client whose transport answers every request body with `handler(body)`."""
    seen: list[Any] = []

    def _handle(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        return httpx.Response(status_code, json=handler(body))

    return RPC(URL, transport=httpx.MockTransport(_handle)), seen


def _ok(result: Any) -> Callable[[dict[str, Any]], dict[str, Any]]:
    return lambda body: {"jsonrpc": "2.0", "id": body["id"], "result": result}


RAW_LOG = {
    "address": CONTRACT.upper().replace("0X", "0x"),
    "topics": ["0x" + "AB" * 32],
    "data": "0x" + "00" * 32,
    "blockNumber": "0x1a",
    "transactionHash": "0x" + "CD" * 32,
    "logIndex": "0x2",
}


def test_event_log_from_rpc_normalises() -> None:
    log = event_log_from_rpc(RAW_LOG)
    assert log.address == CONTRACT
    assert log.topics == ("0x" + "ab" * 32,)
    assert log.block_number == 26
    assert log.log_index == 2
    assert log.tx_hash == "0x" + "cd" * 32


def test_event_log_from_rpc_pending_log() -> None:
    log = event_log_from_rpc({**RAW_LOG, "blockNumber": None, "logIndex": None})
    assert log.block_number is None
    assert log.log_index is None


def test_block_param() -> None:
    assert block_param(255) == "0xff"
    assert block_param("latest") == "latest"


@pytest.mark.asyncio
async def test_get_logs_sends_filter() -> None:
    rpc, seen = _rpc(_ok([RAW_LOG]))
    spec = LogFilterSpec.for_event(CONTRACT, EventTopic(b"\xab" * 32), from_block=1)

    async with rpc:
        logs = await rpc.get_logs(spec)

    assert [log.block_number for log in logs] == [26]
    assert seen[0]["method"] == "eth_getLogs"
    assert seen[0]["params"] == [spec.to_params()]


@pytest.mark.asyncio
async def test_latest_block() -> None:
    rpc, _ = _rpc(_ok("0x64"))
    async with rpc:
        assert await rpc.latest_block() == 100


@pytest.mark.asyncio
async def test_rpc_error_member_raises_transport_error() -> None:
    rpc, _ = _rpc(lambda body: {"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32005, "message": "limit exceeded"}})
    async with rpc:
        with pytest.raises(TransportError, match="limit exceeded"):
            await rpc.latest_block()


@pytest.mark.asyncio
async def test_http_status_raises_transport_error() -> None:
    rpc, _ = _rpc(_ok("0x1"), status_code=503)
    async with rpc:
        with pytest.raises(TransportError):
            await rpc.latest_block()


@pytest.mark.asyncio
async def test_connection_failure_raises_transport_error() -> None:
    def _refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with RPC(URL, transport=httpx.MockTransport(_refuse)) as rpc:
        with pytest.raises(TransportError, match="ConnectError"):
            await rpc.latest_block()


@pytest.mark.asyncio
async def test_non_list_get_logs_result() -> None:
    rpc, _ = _rpc(_ok({"unexpected": True}))
    spec = LogFilterSpec.for_event(CONTRACT, EventTopic(b"\xab" * 32))
    async with rpc:
        with pytest.raises(TransportError):
            await rpc.get_logs(spec)


@pytest.mark.asyncio
async def test_get_balances_batches_in_order() -> None:
    addresses = ["0x" + "11" * 20, "0x" + "22" * 20]

    def _answer(body: list[dict[str, Any]]) -> list[dict[str, Any]]:
        # answer out of order; results must still follow the request order
        out = [
            {"jsonrpc": "2.0", "id": req["id"], "result": hex(int(req["params"][0][2:4], 16))}
            for req in body
        ]
        return list(reversed(out))

    rpc, seen = _rpc(_answer)
    async with rpc:
        balances = await rpc.get_balances(addresses, block=10)

    assert balances == [(addresses[0], 0x11), (addresses[1], 0x22)]
    assert [req["params"][1] for req in seen[0]] == ["0xa", "0xa"]


@pytest.mark.asyncio
async def test_get_balance() -> None:
    rpc, seen = _rpc(_ok("0xde0b6b3a7640000"))
    async with rpc:
        assert await rpc.get_balance(CONTRACT) == 10**18
    assert seen[0]["params"] == [CONTRACT, "latest"]


@pytest.mark.asyncio
async def test_batch_missing_response() -> None:
    rpc, _ = _rpc(lambda body: [])
    async with rpc:
        with pytest.raises(TransportError, match="Missing response"):
            await rpc.get_balances([CONTRACT])


@pytest.mark.asyncio
async def test_call_returns_raw_bytes() -> None:
    rpc, seen = _rpc(_ok("0x" + "00" * 31 + "2a"))
    async with rpc:
        out = await rpc.call(CONTRACT, b"\x12\x34\x56\x78")
    assert out == b"\x00" * 31 + b"\x2a"
    assert seen[0]["params"][0] == {"to": CONTRACT, "data": "0x12345678"}
