from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from eolistener.core.errors import ConfigError
from eolistener.core.models import ContractAddress

ENV_RPC_URL = "EO_RPC_URL"
ENV_CONTRACT_ADDRESS = "EO_CONTRACT_ADDRESS"
ENV_START_BLOCK = "EO_START_BLOCK"
ENV_POLL_INTERVAL = "EO_POLL_INTERVAL"
ENV_ABI_PATH = "EO_ABI_PATH"


@dataclass(frozen=True)
class WatcherConfig:
    """Configuration for one watch session (immutable once loaded)."""

    rpc_url: str
    contract_address: str
    start_block: int = 0
    poll_interval_s: float = 2.0
    timeout_s: int = 20
    abi_path: Path | None = None  # None → ABI bundled with the package
    settlement_event: str = "BlobIndexSettled"
    bridge_event: str = "Bridge"

    def __post_init__(self) -> None:
        if not self.rpc_url:
            raise ConfigError("rpc_url is required")
        # Fail fast on a malformed address, before any network activity.
        ContractAddress.parse(self.contract_address)
        if self.start_block < 0:
            raise ConfigError("start_block must be >= 0")
        if self.poll_interval_s < 0:
            raise ConfigError("poll_interval_s must be >= 0")

    @property
    def address(self) -> ContractAddress:
        return ContractAddress.parse(self.contract_address)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> WatcherConfig:
        """Load from EO_* environment variables; missing/invalid values raise ConfigError."""
        env = os.environ if environ is None else environ

        def _required(name: str) -> str:
            value = env.get(name, "").strip()
            if not value:
                raise ConfigError(f"{name} environment variable is not set")
            return value

        try:
            start_block = int(env.get(ENV_START_BLOCK, "0") or 0)
            poll_interval_s = float(env.get(ENV_POLL_INTERVAL, "2.0") or 2.0)
        except ValueError as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e

        abi_path = env.get(ENV_ABI_PATH)
        return cls(
            rpc_url=_required(ENV_RPC_URL),
            contract_address=_required(ENV_CONTRACT_ADDRESS),
            start_block=start_block,
            poll_interval_s=poll_interval_s,
            abi_path=Path(abi_path) if abi_path else None,
        )
