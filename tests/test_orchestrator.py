import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from eolistener.core.config import WatcherConfig
from eolistener.core.errors import AbiEventNotFound
from eolistener.core.models import EventKind
from eolistener.orchestration.watcher import build_engine, load_abi, watch

from .conftest import CONTRACT


@pytest.fixture
def config() -> WatcherConfig:
    return WatcherConfig(rpc_url="http://localhost:8545", contract_address=CONTRACT, start_block=10, poll_interval_s=0)


def test_build_engine_wires_both_events(config: WatcherConfig, abi: Any, mock_rpc: Any) -> None:
    engine = build_engine(config=config, abi=abi, logs_provider=mock_rpc, sink=MagicMock())
    assert engine.watermarks == {EventKind.SETTLEMENT: 10, EventKind.BRIDGE: 10}


def test_build_engine_unknown_event(abi: Any, mock_rpc: Any) -> None:
    config = WatcherConfig(rpc_url="http://rpc", contract_address=CONTRACT, bridge_event="Bridged")
    with pytest.raises(AbiEventNotFound):
        build_engine(config=config, abi=abi, logs_provider=mock_rpc, sink=MagicMock())


def test_load_abi_from_path(tmp_path: Path, abi: Any) -> None:
    path = tmp_path / "abi.json"
    path.write_text(json.dumps([e.model_dump() for e in abi.events.values()]))
    config = WatcherConfig(rpc_url="http://rpc", contract_address=CONTRACT, abi_path=path)
    assert set(load_abi(config).events) == {"BlobIndexSettled", "Bridge"}


@pytest.mark.asyncio
async def test_watch_with_injected_provider(config: WatcherConfig, mock_rpc: Any, bridge_spec: Any, make_bridge_log: Any) -> None:
    async def _get_logs(filter_spec: Any) -> list[Any]:
        if filter_spec.topics[0] == bridge_spec.topic0:
            return [make_bridge_log(11), make_bridge_log(12)]
        return []

    mock_rpc.get_logs = AsyncMock(side_effect=_get_logs)
    sink = MagicMock()

    stats = await watch(config=config, sink=sink, logs_provider=mock_rpc, max_cycles=2)

    assert stats.cycles == 2
    assert stats.delivered == 2
    assert stats.duplicates == 2
    assert [c.args[0].block_number for c in sink.deliver.call_args_list] == [11, 12]
    # caller-owned provider is left open
    mock_rpc.aclose.assert_not_called()


@pytest.mark.asyncio
async def test_watch_closes_owned_rpc(config: WatcherConfig, mock_rpc: Any) -> None:
    with patch("eolistener.orchestration.watcher.RPC", return_value=mock_rpc) as rpc_cls:
        stats = await watch(config=config, sink=MagicMock(), max_cycles=1)

    rpc_cls.assert_called_once_with("http://localhost:8545", timeout_s=20)
    assert stats.cycles == 1
    assert mock_rpc.get_logs.await_count == 2
    mock_rpc.aclose.assert_awaited_once()
