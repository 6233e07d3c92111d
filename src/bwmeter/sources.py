from abc import ABC, abstractmethod
from typing import Optional, Union

import asyncio
import logging
import os
import stat
import sys

import aiofiles

from .config import MeterConfig, SourceKind
from .exceptions import ConfigurationError


class ByteSource(ABC):
    """
    Readable byte stream the stream reader pulls chunks from.
    """

    name: str = "source"

    @abstractmethod
    async def read(self, n_bytes: int) -> bytes:
        """
        Read up to n_bytes, returning whatever is available. An empty result means the stream
        has ended.
        """

    async def close(self) -> None:
        pass


class FileSource(ByteSource):
    """
    Regular file (or stdin redirected from one) read through aiofiles. Reads on these never
    block indefinitely, FIFOs go through open_pipe instead.
    """

    def __init__(self, file, name: str) -> None:
        self._file = file
        self.name = name

    @classmethod
    async def open(cls, target: Union[str, int], name: Optional[str] = None) -> "FileSource":
        # File descriptors we are handed (stdin) belong to the process, leave them open.
        closefd = not isinstance(target, int)
        file = await aiofiles.open(target, "rb", closefd=closefd)
        return cls(file, name or str(target))

    async def read(self, n_bytes: int) -> bytes:
        return await self._file.read(n_bytes)

    async def close(self) -> None:
        await self._file.close()


class StreamSource(ByteSource):
    """asyncio stream over a pipe or an accepted connection."""

    def __init__(
            self,
            reader: asyncio.StreamReader,
            name: str,
            writer: Optional[asyncio.StreamWriter] = None,
            transport: Optional[asyncio.BaseTransport] = None
        ) -> None:
        self._reader = reader
        self._writer = writer
        self._transport = transport
        self.name = name

    async def read(self, n_bytes: int) -> bytes:
        return await self._reader.read(n_bytes)

    async def close(self) -> None:
        if self._writer is not None:
            self._writer.close()
            try:
                await self._writer.wait_closed()
            except OSError as err:
                logging.debug(f"Error while closing {self.name}: {repr(err)}")
        elif self._transport is not None:
            self._transport.close()


class ListeningSource(ByteSource):
    """
    Listens on a unix socket or TCP port and reads from the first connection it accepts.

    The connection is awaited by the first read, so a shutdown request can still stop the meter
    while nothing has connected yet. Further connections are refused.
    """

    def __init__(self, name: str, limit: int, unix_path: Optional[str] = None) -> None:
        self.name = name
        self._limit = limit
        self._unix_path = unix_path
        self._server: Optional[asyncio.AbstractServer] = None
        self._connection: asyncio.Future = asyncio.get_running_loop().create_future()
        self._stream: Optional[StreamSource] = None

    @classmethod
    async def listen_unix(cls, path: str, limit: int) -> "ListeningSource":
        source = cls(f"unix:{path}", limit, unix_path=path)
        source._server = await asyncio.start_unix_server(source._on_connect, path=path, limit=limit)
        logging.info(f"Listening on unix socket {path}")
        return source

    @classmethod
    async def listen_tcp(cls, host: str, port: int, limit: int) -> "ListeningSource":
        source = cls(f"tcp:{host}:{port}", limit)
        source._server = await asyncio.start_server(source._on_connect, host=host, port=port, limit=limit)
        logging.info(f"Listening on {source.bound_address}")
        return source

    @property
    def bound_address(self):
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()

    def _on_connect(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = writer.get_extra_info("peername")
        if self._connection.done():
            logging.warning(f"Refusing connection from {peer} on {self.name}, already reading from a sender")
            writer.close()
            return

        logging.info(f"Accepted connection from {peer} on {self.name}")
        self._connection.set_result(StreamSource(reader, self.name, writer=writer))

    async def read(self, n_bytes: int) -> bytes:
        if self._stream is None:
            self._stream = await self._connection
        return await self._stream.read(n_bytes)

    async def close(self) -> None:
        if self._stream is not None:
            await self._stream.close()
        elif self._connection.done() and not self._connection.cancelled():
            await self._connection.result().close()
        else:
            self._connection.cancel()

        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()

        if self._unix_path is not None and os.path.exists(self._unix_path):
            os.remove(self._unix_path)


async def open_pipe(pipe, name: str, limit: int) -> StreamSource:
    """
    Read a FIFO or socket file object through an asyncio pipe transport, closing the transport
    closes the file object.
    """
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit)
    try:
        transport, _ = await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), pipe)
    except Exception:
        pipe.close()
        raise
    return StreamSource(reader, name, transport=transport)


async def open_file(path: str, limit: int) -> ByteSource:
    """
    Regular files go through aiofiles. A FIFO is opened without blocking for a writer and read
    through the event loop, so a pending read never holds up shutdown.
    """
    if stat.S_ISFIFO(os.stat(path).st_mode):
        fd = os.open(path, os.O_RDONLY | os.O_NONBLOCK)
        return await open_pipe(os.fdopen(fd, "rb", buffering=0), path, limit)
    return await FileSource.open(path)


async def open_stdin(limit: int) -> ByteSource:
    """
    Regular files redirected to stdin go through aiofiles, pipes and sockets through an
    asyncio pipe transport.
    """
    fd = sys.stdin.fileno()
    if stat.S_ISREG(os.fstat(fd).st_mode):
        return await FileSource.open(fd, name="stdin")

    # stdin belongs to the process, the transport must not close it.
    pipe = os.fdopen(fd, "rb", buffering=0, closefd=False)
    return await open_pipe(pipe, "stdin", limit)


async def open_source(config: MeterConfig) -> ByteSource:
    """
    Open the source selected by the configuration.

    Raises:
        ConfigurationError: the source could not be opened or bound.
    """
    try:
        if config.source == SourceKind.FILE:
            return await open_file(config.path, config.chunk_size)
        if config.source == SourceKind.UNIX_SOCKET:
            return await ListeningSource.listen_unix(config.path, config.chunk_size)
        if config.source == SourceKind.PORT:
            return await ListeningSource.listen_tcp(config.host, config.port, config.chunk_size)
        return await open_stdin(config.chunk_size)
    except OSError as err:
        raise ConfigurationError(
            f"Unable to open {config.describe_source()}: {err}",
            option=config.source_option()
        ) from err
