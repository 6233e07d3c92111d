from typing import Optional, TextIO

import asyncio
import logging
import traceback

from .aggregator import BandwidthAggregator, RunState
from .cancellation import CancellationSignal
from .channel import ByteCountChannel
from .constants import TICK_INTERVAL_SECONDS
from .exceptions import StreamReadError
from .reader import StreamReader
from .sources import ByteSource


class BandwidthMeter:
    """
    Measures the throughput of one byte source.

    Runs the stream reader and the bandwidth aggregator side by side until the stream ends, a
    read fails, or shutdown is requested, and only returns once the aggregator has printed its
    final summary.
    """

    def __init__(
            self,
            chunk_size: int,
            tick_interval_seconds: float = TICK_INTERVAL_SECONDS,
            output: Optional[TextIO] = None
        ) -> None:

        self._chunk_size = chunk_size
        self._tick_interval_seconds = tick_interval_seconds
        self._output = output

        self.cancellation = CancellationSignal()
        self.reader: Optional[StreamReader] = None
        self.aggregator: Optional[BandwidthAggregator] = None
        self.read_error: Optional[StreamReadError] = None

    def request_shutdown(self, reason: str = "shutdown requested") -> None:
        """Must be called on the loop running the meter."""
        self.cancellation.trigger(reason)

    def _log_reader_exit(self, reader_task: asyncio.Task) -> None:
        if reader_task.cancelled():
            logging.debug("Stream reader cancelled during shutdown")
            return

        err = reader_task.exception()
        if err is None:
            return

        if isinstance(err, StreamReadError):
            self.read_error = err
            logging.error(f"{repr(err)}, {err}")
        else:
            tb = "".join(traceback.format_exception(type(err), err, err.__traceback__))
            logging.error(f"Traceback: {tb}")

    async def run(self, source: ByteSource) -> RunState:
        """
        Measure the source until it ends or shutdown is requested.

        - Starts the reader and the aggregator as two tasks sharing one channel
        - When the reader stops, for any reason, triggers cancellation
        - Waits for the aggregator's final summary
        - Cancels a reader still blocked in a read or handoff, then closes the source

        Returns:
            RunState: final counters of the aggregator.
        """
        channel = ByteCountChannel()
        self.reader = StreamReader(source, channel, self.cancellation, self._chunk_size)
        self.aggregator = BandwidthAggregator(
            channel,
            self.cancellation,
            output=self._output,
            tick_interval_seconds=self._tick_interval_seconds
        )

        logging.debug(f"Measuring {source.name} with {self._chunk_size=}")
        reader_task = asyncio.create_task(self.reader.run())
        aggregator_task = asyncio.create_task(self.aggregator.run())

        try:
            await asyncio.wait({reader_task, aggregator_task}, return_when=asyncio.FIRST_COMPLETED)

            if reader_task.done():
                self.cancellation.trigger("stream reader stopped")

            run_state = await aggregator_task
        finally:
            for task in (reader_task, aggregator_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(reader_task, aggregator_task, return_exceptions=True)
            self._log_reader_exit(reader_task)

            try:
                await source.close()
            except OSError as err:
                logging.warning(f"Failed to close {source.name}: {repr(err)}")

        return run_state
