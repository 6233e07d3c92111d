class BandwidthMeterError(Exception):
    """Base class for errors raised by bwmeter."""


class ConfigurationError(BandwidthMeterError):
    """
    Raised when the source selection is contradictory or missing, an option is out of range,
    or the selected source cannot be opened. The meter never starts in this case.

    Attributes:
        option (str | None): Command line option at fault.
        message (str): Human-readable error message.
    """

    def __init__(self, message: str, option: str | None = None):
        self.option = option

        option_str = f"{option}: " if option else ""
        self.message = f"{option_str}{message}"

        super().__init__(self.message)


class StreamReadError(BandwidthMeterError):
    """
    Raised by the stream reader when the underlying read fails.

    Attributes:
        source (str): Name of the source being read.
        bytes_read (int): Bytes handed to the aggregator before the failure.
        cause (BaseException | None): The original I/O error.
        message (str): Human-readable error message.
    """

    def __init__(
        self,
        source: str,
        bytes_read: int,
        cause: BaseException | None = None,
    ):
        self.source = source
        self.bytes_read = bytes_read
        self.cause = cause

        cause_str = f"\n{cause=}" if cause is not None else ""
        self.message = f"Failed reading from {source=}, {bytes_read=}{cause_str}"

        super().__init__(self.message)
