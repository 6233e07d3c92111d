import logging

from .cancellation import CancellationSignal
from .channel import ByteCountChannel
from .exceptions import StreamReadError
from .sources import ByteSource


class StreamReader:
    """
    Pulls fixed size chunks from a source, throws the payload away and hands the number of
    bytes read to the aggregator.
    """

    def __init__(
            self,
            source: ByteSource,
            channel: ByteCountChannel,
            cancellation: CancellationSignal,
            chunk_size: int
        ) -> None:

        if chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, {chunk_size=}")

        self._source = source
        self._channel = channel
        self._cancellation = cancellation
        self._chunk_size = chunk_size

        self.reads = 0
        self.bytes_emitted = 0

    async def run(self) -> int:
        """
        Read until cancellation or end of stream.

        Cancellation is only checked between reads, a read that is already in flight is left
        to complete. Sending a count waits until the aggregator has received it.

        Returns:
            int: total bytes handed to the aggregator.

        Raises:
            StreamReadError: the source failed with an I/O error.
        """
        while not self._cancellation.is_set():
            try:
                chunk = await self._source.read(self._chunk_size)
            except OSError as err:
                raise StreamReadError(
                    source=self._source.name,
                    bytes_read=self.bytes_emitted,
                    cause=err
                ) from err
            self.reads += 1

            n_bytes = len(chunk)
            if n_bytes == 0:
                logging.info(f"End of stream reached on {self._source.name}")
                break

            await self._channel.send(n_bytes)
            self.bytes_emitted += n_bytes

        logging.debug(f"Stream reader stopped: {self.reads=}, {self.bytes_emitted=}")
        return self.bytes_emitted
