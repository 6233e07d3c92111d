from concurrent.futures import CancelledError
from typing import Optional, Sequence

import argparse
import logging
import signal

from .asyncio_thread import AsyncioEventLoopThread
from .config import MeterConfig
from .constants import DEFAULT_CHUNK_MEGABYTES, DEFAULT_HOST, TICK_INTERVAL_SECONDS
from .core import BandwidthMeter
from .exceptions import ConfigurationError
from .sources import open_source

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bw", description="Measure data bandwidth through a socket or port.")
    parser.add_argument("-f", "--file", help="file to read from")
    parser.add_argument("-s", "--socket", help="unix socket to listen on and read from")
    parser.add_argument("-p", "--port", type=int, help="port to listen on and read data from")
    parser.add_argument("--host", default=DEFAULT_HOST, help="address to bind --port to")
    parser.add_argument("-m", "--mb", type=int, default=DEFAULT_CHUNK_MEGABYTES, help="read up to this many mb at a time")
    parser.add_argument("-i", "--interval", type=float, default=TICK_INTERVAL_SECONDS, help="seconds between rate reports")
    parser.add_argument("--debug", action="store_true")
    return parser


def install_signal_handlers(runner: AsyncioEventLoopThread, meter: BandwidthMeter) -> dict:
    """
    Forward SIGINT and SIGTERM to the meter's cancellation signal on the loop thread.
    Must be called from the main thread. Returns the previous handlers.
    """
    def handle_signal(signum, frame):
        name = signal.Signals(signum).name
        logging.info(f"Received {name}, shutting down")
        meter.cancellation.trigger_threadsafe(runner.loop, f"received {name}")

    previous = {}
    for signum in SHUTDOWN_SIGNALS:
        previous[signum] = signal.signal(signum, handle_signal)
    return previous


def restore_signal_handlers(previous: dict) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)


async def measure(config: MeterConfig, meter: BandwidthMeter):
    source = await open_source(config)
    return await meter.run(source)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s"
    )

    try:
        config = MeterConfig.from_args(args)
    except ConfigurationError as err:
        print(err)
        return 1

    runner = AsyncioEventLoopThread()
    meter = BandwidthMeter(config.chunk_size, tick_interval_seconds=config.tick_interval_seconds)
    previous_handlers = install_signal_handlers(runner, meter)

    try:
        future = runner.submit(measure(config, meter))
        future.result()
    except ConfigurationError as err:
        print(err)
        return 1
    except CancelledError:
        logging.debug("Measurement cancelled")
    finally:
        restore_signal_handlers(previous_handlers)
        logging.debug("Shutting down async thread")
        runner.shutdown()

    return 0
