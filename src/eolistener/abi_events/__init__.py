"""Contract ABI loading.

Parses a JSON ABI (plain list, or a Truffle/Hardhat artifact with an `abi`
key) into pydantic models and exposes event / function definitions by name.
"""

import json
from collections.abc import Iterable, Sequence
from importlib import resources
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ValidationError

from eolistener.core.errors import AbiEventNotFound, ConfigError
from eolistener.decoding.specs import EventSpec
from eolistener.decoding.topics import build_event_spec

BUNDLED_ABI = "executable_oracle.json"


class AbiInput(BaseModel):
    name: str = ""
    type: str
    indexed: bool = False
    internalType: str | None = None
    components: Sequence["AbiInput"] | None = None


class AbiEvent(BaseModel):
    name: str
    inputs: Sequence[AbiInput] = ()
    anonymous: bool = False
    type: Literal["event"]


class AbiFunction(BaseModel):
    name: str
    inputs: Sequence[AbiInput] = ()
    outputs: Sequence[AbiInput] = ()
    stateMutability: str = "view"
    type: Literal["function"]


def canonical_type(abi_input: AbiInput) -> str:
    """Expand `tuple` inputs into their canonical "(t1,t2)" form."""
    t = abi_input.type
    if t.startswith("tuple"):
        inner = ",".join(canonical_type(c) for c in abi_input.components or ())
        return f"({inner}){t[len('tuple'):]}"
    return t


def get_event_signature(event: AbiEvent) -> str:
    return f"{event.name}({','.join(canonical_type(i) for i in event.inputs)})"


def get_function_signature(function: AbiFunction) -> str:
    return f"{function.name}({','.join(canonical_type(i) for i in function.inputs)})"


def get_event_spec(event: AbiEvent) -> EventSpec:
    if event.anonymous:
        raise ConfigError(f"Anonymous event {event.name} cannot be filtered by topic")
    params = [
        (i.name or f"arg{idx}", canonical_type(i), i.indexed)
        for idx, i in enumerate(event.inputs)
    ]
    return build_event_spec(event.name, params)


AbiJson = Iterable[dict[str, Any]]
AbiSpec = AbiJson | dict[str, Any] | Path


def _load_abi(abi: AbiSpec) -> list[dict[str, Any]]:
    if isinstance(abi, Path):
        try:
            abi = json.loads(abi.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read ABI from {abi}: {e}") from e
    if isinstance(abi, dict):
        if "abi" not in abi:
            raise ConfigError("ABI artifact has no 'abi' key")
        abi = abi["abi"]
    return list(abi)


def load_bundled_abi() -> list[dict[str, Any]]:
    """ABI of the Executable Oracle contract shipped with the package."""
    text = resources.files("eolistener.abi").joinpath(BUNDLED_ABI).read_text()
    return json.loads(text)


class AbiContract:
    """Event and function definitions of one contract ABI."""

    def __init__(self, abi: AbiSpec) -> None:
        entries = _load_abi(abi)
        try:
            self.events: dict[str, AbiEvent] = {
                e["name"]: AbiEvent.model_validate(e) for e in entries if e.get("type") == "event"
            }
            self.functions: dict[str, AbiFunction] = {
                e["name"]: AbiFunction.model_validate(e) for e in entries if e.get("type") == "function"
            }
        except (ValidationError, KeyError, AttributeError, TypeError) as e:
            raise ConfigError(f"Invalid ABI: {e}") from e

    @classmethod
    def bundled(cls) -> "AbiContract":
        return cls(load_bundled_abi())

    def event_definition(self, name: str) -> EventSpec:
        """Return the decoding spec of event `name` or raise `AbiEventNotFound`."""
        event = self.events.get(name)
        if event is None:
            raise AbiEventNotFound(name)
        return get_event_spec(event)

    def function_definition(self, name: str) -> AbiFunction:
        function = self.functions.get(name)
        if function is None:
            raise AbiEventNotFound(name)
        return function
