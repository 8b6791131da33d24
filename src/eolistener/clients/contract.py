"""Read-only contract queries over `eth_call`.

Encodes a call from the ABI (4-byte selector + `eth_abi` arguments), runs it
through `RPC.call`, and decodes the outputs.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector

from eolistener.abi_events import AbiContract, AbiFunction, canonical_type, get_function_signature
from eolistener.clients.rpc import RPC, BlockRef
from eolistener.core.errors import TransportError
from eolistener.core.models import ContractAddress
from eolistener.decoding.utils import ABI_ERRORS


def encode_call(function: AbiFunction, args: Sequence[Any]) -> bytes:
    """Selector + ABI-encoded arguments."""
    if len(args) != len(function.inputs):
        raise ValueError(f"{function.name} takes {len(function.inputs)} arguments, got {len(args)}")
    selector = function_signature_to_4byte_selector(get_function_signature(function))
    return selector + encode([canonical_type(i) for i in function.inputs], list(args))


def decode_result(function: AbiFunction, data: bytes) -> tuple[Any, ...]:
    """Decode the return data of `function`."""
    types = [canonical_type(o) for o in function.outputs]
    try:
        return tuple(decode(types, data))
    except ABI_ERRORS as e:
        raise TransportError(f"Cannot decode {function.name} result: {e}") from e


class ContractReader:
    """Query view functions of one contract."""

    def __init__(self, rpc: RPC, address: str | ContractAddress, abi: AbiContract) -> None:
        self._rpc = rpc
        self.address = address if isinstance(address, ContractAddress) else ContractAddress.parse(address)
        self._abi = abi

    async def query(self, function_name: str, args: Sequence[Any] = (), block: BlockRef = "latest") -> tuple[Any, ...]:
        function = self._abi.function_definition(function_name)
        raw = await self._rpc.call(self.address, encode_call(function, args), block)
        return decode_result(function, raw)

    async def query_batch(
        self,
        calls: Iterable[tuple[str, Sequence[Any]]],
        block: BlockRef = "latest",
    ) -> list[tuple[Any, ...]]:
        """Run several queries in one JSON-RPC batch, results in input order."""
        functions: list[AbiFunction] = []
        payloads: list[tuple[ContractAddress, bytes]] = []
        for name, args in calls:
            function = self._abi.function_definition(name)
            functions.append(function)
            payloads.append((self.address, encode_call(function, args)))
        raws = await self._rpc.call_batch(payloads, block)
        return [decode_result(f, raw) for f, raw in zip(functions, raws)]
