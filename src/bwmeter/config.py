from enum import Enum
from dataclasses import dataclass
from argparse import Namespace
from typing import Optional

import logging
import os
import stat
import sys

from .constants import (
    DEFAULT_CHUNK_MEGABYTES,
    DEFAULT_HOST,
    MAX_PORT,
    ONE_MEBIBYTE,
    TICK_INTERVAL_SECONDS,
)
from .exceptions import ConfigurationError


class SourceKind(Enum):
    STDIN = 0
    FILE = 1
    UNIX_SOCKET = 2
    PORT = 3


_SOURCE_OPTIONS = {
    SourceKind.STDIN: None,
    SourceKind.FILE: "--file",
    SourceKind.UNIX_SOCKET: "--socket",
    SourceKind.PORT: "--port",
}


def stdin_is_piped() -> bool:
    """True when stdin is not a character device, i.e. data is piped or redirected into it."""
    if sys.stdin is None:
        return False
    try:
        mode = os.fstat(sys.stdin.fileno()).st_mode
    except (OSError, ValueError):
        return False
    return not stat.S_ISCHR(mode)


@dataclass
class MeterConfig:
    source: SourceKind
    path: Optional[str] = None
    port: Optional[int] = None
    host: str = DEFAULT_HOST
    chunk_megabytes: int = DEFAULT_CHUNK_MEGABYTES
    tick_interval_seconds: float = TICK_INTERVAL_SECONDS

    @property
    def chunk_size(self) -> int:
        return self.chunk_megabytes * ONE_MEBIBYTE

    def source_option(self) -> Optional[str]:
        return _SOURCE_OPTIONS[self.source]

    def describe_source(self) -> str:
        if self.source == SourceKind.FILE:
            return f"file {self.path}"
        if self.source == SourceKind.UNIX_SOCKET:
            return f"unix socket {self.path}"
        if self.source == SourceKind.PORT:
            return f"port {self.host}:{self.port}"
        return "stdin"

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: an option is missing or out of range.
        """
        if self.source in (SourceKind.FILE, SourceKind.UNIX_SOCKET) and not self.path:
            raise ConfigurationError("a path is required", option=self.source_option())

        if self.source == SourceKind.PORT:
            if self.port is None or not 0 < self.port <= MAX_PORT:
                raise ConfigurationError(f"port must be between 1 and {MAX_PORT}, got {self.port}", option="--port")

        if self.chunk_megabytes <= 0:
            raise ConfigurationError(f"chunk size must be a positive number of MB, got {self.chunk_megabytes}", option="--mb")

        if self.tick_interval_seconds <= 0:
            raise ConfigurationError(f"tick interval must be positive, got {self.tick_interval_seconds}")

    @classmethod
    def from_args(cls, args: Namespace, stdin_piped: Optional[bool] = None) -> "MeterConfig":
        """
        Resolve parsed command line arguments into a validated configuration.

        Exactly one of --file, --socket, --port may be given. Without any of them data has to be
        piped into stdin. An --mb of 0 or unset means the default of 1 MB.

        Raises:
            ConfigurationError: contradictory, missing or out of range options.
        """
        if stdin_piped is None:
            stdin_piped = stdin_is_piped()

        selected = []
        if args.file:
            selected.append(SourceKind.FILE)
        if args.socket:
            selected.append(SourceKind.UNIX_SOCKET)
        if args.port is not None:
            selected.append(SourceKind.PORT)

        if len(selected) > 1:
            raise ConfigurationError("must only specify one of a file, unix socket, port, or be writing to stdin")

        if not selected:
            if not stdin_piped:
                raise ConfigurationError("must provide a file, unix socket, port, or be writing to stdin")
            source = SourceKind.STDIN
        else:
            source = selected[0]
            if stdin_piped:
                logging.debug(f"Ignoring piped stdin, reading from {_SOURCE_OPTIONS[source]} instead")

        chunk_megabytes = args.mb if args.mb else DEFAULT_CHUNK_MEGABYTES

        config = cls(
            source=source,
            path=args.file or args.socket,
            port=args.port,
            host=args.host,
            chunk_megabytes=chunk_megabytes,
            tick_interval_seconds=args.interval
        )
        config.validate()
        return config
