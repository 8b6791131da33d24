import asyncio
import logging

from eolistener.core.config import WatcherConfig
from eolistener.orchestration.watcher import watch
from eolistener.sinks import QueueSink

logging.basicConfig(level=logging.INFO)

config = WatcherConfig(
    rpc_url="https://ethereum-holesky-rpc.publicnode.com",
    contract_address="0x610178dA211FEF7D417bC0e6FeD39F05609AD788",  # replace with your deployment
    start_block=2_500_000,
    poll_interval_s=5.0,
)


async def consume(sink: QueueSink) -> None:
    while True:
        event = await sink.queue.get()
        print(event.kind.value, event.block_number, dict(event.values))
        sink.queue.task_done()


async def main():
    sink = QueueSink(high_water=256)
    stop = asyncio.Event()
    consumer = asyncio.create_task(consume(sink))

    # Stop after ten minutes; a real service would wire this to SIGTERM.
    asyncio.get_running_loop().call_later(600, stop.set)
    stats = await watch(config=config, sink=sink, stop=stop)

    await sink.queue.join()
    consumer.cancel()
    print(stats)


asyncio.run(main())
