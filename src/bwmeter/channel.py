import asyncio


class ByteCountChannel:
    """
    Unbuffered handoff of byte counts from one stream reader to one aggregator.

    send() returns only after the aggregator has received the value, so the reader never gets
    more than one count ahead of the aggregator. Counts are delivered in the order they were sent.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[int] = asyncio.Queue(maxsize=1)

    async def send(self, n_bytes: int) -> None:
        await self._queue.put(n_bytes)
        await self._queue.join()

    async def receive(self) -> int:
        n_bytes = await self._queue.get()
        self._queue.task_done()
        return n_bytes
