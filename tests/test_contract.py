from unittest.mock import AsyncMock

import pytest
from eth_abi import encode

from eolistener.abi_events import AbiContract
from eolistener.clients.contract import ContractReader, encode_call
from eolistener.core.errors import AbiEventNotFound, TransportError

from .conftest import CONTRACT, USER

TOKEN_ABI = [
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [{"name": "owner", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "name",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
]


@pytest.fixture
def token_abi() -> AbiContract:
    return AbiContract(TOKEN_ABI)


def test_encode_call_selector(token_abi: AbiContract) -> None:
    data = encode_call(token_abi.function_definition("balanceOf"), [USER])
    assert data[:4].hex() == "70a08231"
    assert data[4:] == encode(["address"], [USER])


def test_encode_call_arity(token_abi: AbiContract) -> None:
    with pytest.raises(ValueError):
        encode_call(token_abi.function_definition("balanceOf"), [])


@pytest.mark.asyncio
async def test_query_decodes_outputs(token_abi: AbiContract) -> None:
    rpc = AsyncMock()
    rpc.call = AsyncMock(return_value=encode(["uint256"], [1234]))
    reader = ContractReader(rpc, CONTRACT, token_abi)

    assert await reader.query("balanceOf", [USER]) == (1234,)
    to, data, block = rpc.call.call_args.args
    assert to.lower == CONTRACT
    assert data[:4].hex() == "70a08231"
    assert block == "latest"


@pytest.mark.asyncio
async def test_query_batch_keeps_order(token_abi: AbiContract) -> None:
    rpc = AsyncMock()
    rpc.call_batch = AsyncMock(return_value=[encode(["string"], ["Oracle"]), encode(["uint256"], [7])])
    reader = ContractReader(rpc, CONTRACT, token_abi)

    out = await reader.query_batch([("name", []), ("balanceOf", [USER])], block=42)

    assert out == [("Oracle",), (7,)]
    payloads, block = rpc.call_batch.call_args.args
    assert len(payloads) == 2
    assert block == 42


@pytest.mark.asyncio
async def test_query_bad_return_data(token_abi: AbiContract) -> None:
    rpc = AsyncMock()
    rpc.call = AsyncMock(return_value=b"")
    reader = ContractReader(rpc, CONTRACT, token_abi)
    with pytest.raises(TransportError):
        await reader.query("name")


@pytest.mark.asyncio
async def test_query_unknown_function(token_abi: AbiContract) -> None:
    reader = ContractReader(AsyncMock(), CONTRACT, token_abi)
    with pytest.raises(AbiEventNotFound):
        await reader.query("totalSupply")
