import asyncio
import logging
import threading


class AsyncioEventLoopThread:
    """
    Runs an asyncio event loop in a daemon thread.

    The main thread keeps ownership of signal handling and the exit code, and hands coroutines
    to the loop through submit().
    """

    def __init__(self, name: str = "bwmeter-loop"):
        self.loop = asyncio.new_event_loop()
        self.thread = threading.Thread(
            target=self._run_loop,
            name=name,
            daemon=True
        )
        self.thread.start()

    def _run_loop(self):
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def submit(self, coro):
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def shutdown(self, timeout: float = 30.0):
        self.loop.call_soon_threadsafe(self.loop.stop)
        self.thread.join(timeout)
        if self.thread.is_alive():
            raise RuntimeError(f"Failed to join {self.thread.name} after {timeout}s")

        pending = asyncio.all_tasks(self.loop)
        if pending:
            logging.debug(f"Closing event loop with {len(pending)} pending tasks")
        self.loop.close()


__all__ = ["AsyncioEventLoopThread"]
