import asyncio
import contextlib
import logging
import signal
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from eolistener.clients.rpc import RPC
from eolistener.core.config import (
    ENV_ABI_PATH,
    ENV_CONTRACT_ADDRESS,
    ENV_POLL_INTERVAL,
    ENV_RPC_URL,
    ENV_START_BLOCK,
    WatcherConfig,
)
from eolistener.core.errors import ConfigError, TransportError
from eolistener.core.models import DecodedEvent
from eolistener.decoding.topics import canonical_signature, topic_for
from eolistener.orchestration.watcher import watch
from eolistener.sinks import FanOutSink
from eolistener.storage.jsonl import JsonlEventSink

console = Console()


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


class ConsoleSink:
    """Print delivered events to the terminal."""

    def deliver(self, event: DecodedEvent) -> None:
        values = "  ".join(f"[cyan]{k}[/]={v}" for k, v in event.to_dict()["values"].items())
        console.print(f"[bold]{event.name}[/] [dim]#{event.block_number}[/] {values}")


@click.group()
def cli() -> None:
    """Executable Oracle contract event listener."""


@cli.command("watch")
@click.option("--rpc", envvar=ENV_RPC_URL, required=True, help="RPC endpoint URL")
@click.option("--contract", envvar=ENV_CONTRACT_ADDRESS, required=True, help="Executable Oracle contract address")
@click.option("--start-block", envvar=ENV_START_BLOCK, type=int, default=0, show_default=True, help="Filter start block; only logs after this block are delivered")
@click.option("--interval", envvar=ENV_POLL_INTERVAL, type=float, default=2.0, show_default=True, help="Seconds between polling cycles")
@click.option("--abi", "abi_path", envvar=ENV_ABI_PATH, type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None, help="Contract ABI JSON (defaults to the bundled ABI)")
@click.option("--jsonl-out", type=str, default="", help="Optional path to append delivered events (NDJSON)")
@click.option("--timeout", "timeout_s", type=int, default=20, show_default=True, help="RPC timeout in seconds")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug logging")
def watch_cmd(
    rpc: str,
    contract: str,
    start_block: int,
    interval: float,
    abi_path: Path | None,
    jsonl_out: str,
    timeout_s: int,
    verbose: bool,
) -> None:
    """Poll the contract for settlement and bridge events until interrupted."""
    setup_logging(verbose)
    try:
        config = WatcherConfig(
            rpc_url=rpc,
            contract_address=contract,
            start_block=start_block,
            poll_interval_s=interval,
            timeout_s=timeout_s,
            abi_path=abi_path,
        )
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    sinks = [ConsoleSink()]
    if jsonl_out:
        sinks.append(JsonlEventSink(jsonl_out))
    sink = FanOutSink(sinks)

    async def run() -> None:
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, stop.set)
        stats = await watch(config=config, sink=sink, stop=stop)
        console.print(
            f"[bold]summary[/]: "
            f"[green]delivered[/]={stats.delivered}  "
            f"[yellow]duplicates[/]={stats.duplicates}  "
            f"[red]malformed[/]={stats.malformed}  "
            f"aborted_batches={stats.aborted_batches}  "
            f"transport_errors={stats.transport_errors}  "
            f"(cycles={stats.cycles})"
        )

    try:
        asyncio.run(run())
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    except KeyboardInterrupt:
        console.print("[bold]stopped[/]")


@cli.command("topic")
@click.argument("signatures", nargs=-1, required=True)
def topic_cmd(signatures: tuple[str, ...]) -> None:
    """Print the topic0 of each event signature.

    Declarations with names or `indexed` markers are reduced to their
    canonical form first.
    """
    for sig in signatures:
        try:
            canonical = canonical_signature(sig)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="SIGNATURES") from e
        click.echo(f"{topic_for(canonical).hex}  {canonical}")


@cli.command("balance")
@click.argument("addresses", nargs=-1, required=True)
@click.option("--rpc", envvar=ENV_RPC_URL, required=True, help="RPC endpoint URL")
@click.option("--block", default="latest", show_default=True, help="Block number or tag")
def balance_cmd(addresses: tuple[str, ...], rpc: str, block: str) -> None:
    """Print native balances (wei) of one or more addresses."""
    block_ref: int | str = int(block) if block.isdigit() else block

    async def run() -> list[tuple[str, int]]:
        async with RPC(rpc) as client:
            return await client.get_balances(addresses, block_ref)

    try:
        balances = asyncio.run(run())
    except (ConfigError, TransportError) as e:
        raise click.ClickException(str(e)) from e
    for address, wei in balances:
        click.echo(f"{address}  {wei}")
