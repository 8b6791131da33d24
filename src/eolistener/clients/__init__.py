"""Chain clients: JSON-RPC transport and contract read path."""

from eolistener.clients.contract import ContractReader
from eolistener.clients.rpc import RPC

__all__ = [
    "ContractReader",
    "RPC",
]
