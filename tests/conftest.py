from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest
from eth_abi import encode

from eolistener.abi_events import AbiContract
from eolistener.core.models import EventLog
from eolistener.decoding.specs import EventSpec

CONTRACT = "0x610178da211fef7d417bc0e6fed39f05609ad788"
USER = "0x" + "ab" * 20
TOKEN = "0x" + "cd" * 20


def address_topic(address: str) -> str:
    return "0x" + "00" * 12 + address[2:].lower()


@pytest.fixture
def mock_rpc():
    rpc = AsyncMock()
    rpc.get_logs = AsyncMock(return_value=[])
    rpc.latest_block = AsyncMock(return_value=100)
    rpc.aclose = AsyncMock()
    return rpc


@pytest.fixture
def abi() -> AbiContract:
    return AbiContract.bundled()


@pytest.fixture
def bridge_spec(abi: AbiContract) -> EventSpec:
    return abi.event_definition("Bridge")


@pytest.fixture
def settlement_spec(abi: AbiContract) -> EventSpec:
    return abi.event_definition("BlobIndexSettled")


@pytest.fixture
def make_bridge_log(bridge_spec: EventSpec) -> Callable[..., EventLog]:
    def _make(
        block_number: int | None,
        *,
        token_id: int = 1,
        amount: int = 100,
        content_id: str = "content",
        log_index: int = 0,
    ) -> EventLog:
        data = encode(["uint256", "uint256", "string"], [token_id, amount, content_id])
        return EventLog(
            address=CONTRACT,
            topics=(bridge_spec.topic0.hex, address_topic(USER), address_topic(TOKEN)),
            data_hex="0x" + data.hex(),
            block_number=block_number,
            tx_hash=f"0x{block_number or 0:064x}",
            log_index=log_index,
        )

    return _make


@pytest.fixture
def make_settlement_log(settlement_spec: EventSpec) -> Callable[..., EventLog]:
    def _make(
        block_number: int | None,
        *,
        batch_header_hash: bytes = b"\x01" * 32,
        blob_index: str = "blob-0",
        log_index: int = 0,
    ) -> EventLog:
        data = encode(["bytes32", "string"], [batch_header_hash, blob_index])
        return EventLog(
            address=CONTRACT,
            topics=(settlement_spec.topic0.hex, address_topic(USER)),
            data_hex="0x" + data.hex(),
            block_number=block_number,
            tx_hash=f"0x{block_number or 0:064x}",
            log_index=log_index,
        )

    return _make
