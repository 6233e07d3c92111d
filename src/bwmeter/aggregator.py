from enum import Enum
from dataclasses import dataclass, replace
from typing import Optional, TextIO

import asyncio
import logging
import sys
import time

from .cancellation import CancellationSignal
from .channel import ByteCountChannel
from .constants import TICK_INTERVAL_SECONDS
from .units import scale_bytes


class AggregatorState(Enum):
    RUNNING = 0
    CANCELLED = 1


@dataclass
class RunState:
    start_time: float
    total: int = 0
    window_count: int = 0


class BandwidthAggregator:
    """
    Counts the bytes handed over by the stream reader and reports the current and average rate
    once per tick.

    Byte counts, ticks and cancellation are all dispatched from the single wait in run(), so the
    run state is only ever touched by one event at a time.
    """

    def __init__(
            self,
            channel: ByteCountChannel,
            cancellation: CancellationSignal,
            output: Optional[TextIO] = None,
            tick_interval_seconds: float = TICK_INTERVAL_SECONDS
        ) -> None:

        self._channel = channel
        self._cancellation = cancellation
        self._output = output if output is not None else sys.stdout
        self._tick_interval_seconds = tick_interval_seconds

        self.state = AggregatorState.RUNNING
        self._run_state: Optional[RunState] = None

    def snapshot(self) -> Optional[RunState]:
        if self._run_state is None:
            return None
        return replace(self._run_state)

    def _write(self, text: str) -> None:
        self._output.write(text)
        self._output.flush()

    def begin(self, now: float) -> None:
        self._run_state = RunState(start_time=now)

    def record(self, n_bytes: int) -> None:
        self._run_state.total += n_bytes
        self._run_state.window_count += n_bytes

    def tick(self, now: float) -> None:
        """
        Print the bytes seen since the last tick and the lifetime average, overwriting the
        previous line, then start a new window.
        """
        elapsed = now - self._run_state.start_time
        current = scale_bytes(self._run_state.window_count)
        scaled_total = scale_bytes(self._run_state.total)
        average = scaled_total.count / elapsed if elapsed > 0 else 0.0

        self._write(
            f"\rcurrent: {current.format(0)}/s\t"
            f"average: {average:.4f} {scaled_total.unit}/s"
        )
        self._run_state.window_count = 0

    def finish(self, now: float) -> None:
        self.state = AggregatorState.CANCELLED

        elapsed = now - self._run_state.start_time
        scaled_total = scale_bytes(self._run_state.total)
        self._write(
            f"\ntotal bytes read in {elapsed:.2f} seconds: "
            f"{scaled_total.format(0)}\n"
        )

    async def run(self) -> RunState:
        """
        Dispatch byte counts and ticks until cancellation, then print the final summary.

        Returning from this coroutine means the summary has been written and flushed.

        Returns:
            RunState: copy of the final counters.
        """
        self.begin(time.monotonic())
        next_tick = self._run_state.start_time + self._tick_interval_seconds

        receive_task: Optional[asyncio.Task[int]] = None
        cancel_task = asyncio.create_task(self._cancellation.wait())

        try:
            while True:
                if receive_task is None:
                    receive_task = asyncio.create_task(self._channel.receive())

                timeout = max(0.0, next_tick - time.monotonic())
                done, _ = await asyncio.wait(
                    {receive_task, cancel_task},
                    timeout=timeout,
                    return_when=asyncio.FIRST_COMPLETED
                )

                # A count taken off the channel is always recorded, even when cancellation
                # arrived in the same wakeup.
                if receive_task in done:
                    self.record(receive_task.result())
                    receive_task = None

                if cancel_task in done:
                    break

                now = time.monotonic()
                if now >= next_tick:
                    self.tick(now)
                    next_tick += self._tick_interval_seconds
                    if next_tick <= now:
                        logging.debug(f"Aggregator fell behind by {now - next_tick:.3f}s, skipping missed ticks")
                        next_tick = now + self._tick_interval_seconds
        finally:
            for task in (receive_task, cancel_task):
                if task is not None and not task.done():
                    task.cancel()
                    try:
                        await task
                    except asyncio.CancelledError:
                        pass

        if receive_task is not None and receive_task.done() and not receive_task.cancelled():
            self.record(receive_task.result())

        self.finish(time.monotonic())
        logging.debug(f"Aggregator finished: {self._run_state}")
        return self.snapshot()
