import asyncio
import logging

from typing import Optional


class CancellationSignal:
    """
    Write-once shutdown trigger observed by the stream reader and the bandwidth aggregator.

    trigger() must run on the event loop thread. Other threads (signal handlers in the main
    thread) go through trigger_threadsafe().
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def is_set(self) -> bool:
        return self._event.is_set()

    def trigger(self, reason: str) -> bool:
        """
        Set the signal. Returns False if it had already been triggered, the first reason is kept.
        """
        if self._event.is_set():
            logging.debug(f"Cancellation already triggered by {self.reason!r}, ignoring {reason=}")
            return False

        logging.debug(f"Cancellation triggered: {reason}")
        self.reason = reason
        self._event.set()
        return True

    def trigger_threadsafe(self, loop: asyncio.AbstractEventLoop, reason: str) -> None:
        loop.call_soon_threadsafe(self.trigger, reason)

    async def wait(self) -> None:
        await self._event.wait()


__all__ = ["CancellationSignal"]
