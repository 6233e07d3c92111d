import asyncio
import io
import logging
import pytest

from bwmeter.asyncio_thread import AsyncioEventLoopThread
from bwmeter.sources import ByteSource


class MockSource(ByteSource):
    """
    In-memory byte source. Each read returns the next queued item, raises it if it is an
    exception, waits while the queue is empty, and returns b"" once the stream has been ended.
    """

    def __init__(self, items=None, name="mock", ended=False, poll_interval=0.01):
        self.name = name
        self.queue = asyncio.Queue()
        self.stop = ended
        self.closed = False
        self.read_calls = 0
        self.requested_sizes = []
        self._poll_interval = poll_interval

        for item in items or []:
            self.queue.put_nowait(item)

    async def read(self, n_bytes):
        self.read_calls += 1
        self.requested_sizes.append(n_bytes)

        while True:
            if not self.queue.empty():
                item = self.queue.get_nowait()
                if isinstance(item, BaseException):
                    raise item
                return item
            if self.stop:
                return b""
            await asyncio.sleep(self._poll_interval)

    async def insert_chunk(self, chunk):
        await self.queue.put(chunk)

    def end_stream(self):
        self.stop = True

    async def close(self):
        self.closed = True


@pytest.fixture
def async_thread_runner(request):
    runner = AsyncioEventLoopThread()

    def cleanup():
        logging.debug("Async thread fixture shutting down.")
        if runner.thread.is_alive():
            runner.shutdown()

    request.addfinalizer(cleanup)
    return runner


@pytest.fixture
def create_mock_source():

    def factory(items=None, ended=True, name="mock"):
        return MockSource(items=items, ended=ended, name=name)

    return factory


@pytest.fixture
def output():
    return io.StringIO()

