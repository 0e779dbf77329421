"""Errors raised by the disk speed test.

Everything here is raised before or instead of a measurement. A phase that
runs out of time is not an error: it is reported as a ``TIMED_OUT`` outcome.
"""


class DiskSpeedTestError(Exception):
    """Base class for all disk speed test errors."""


class InvalidSizeFormat(DiskSpeedTestError, ValueError):
    def __init__(self, text):
        self.text = text
        super().__init__(f"Invalid size format '{text}' (use <int><K|M|G>, e.g. 512M, 4G)")


class SizeTooSmall(DiskSpeedTestError, ValueError):
    def __init__(self, total_bytes, block_bytes):
        self.total_bytes = total_bytes
        self.block_bytes = block_bytes
        super().__init__(f"Test size {total_bytes} bytes is smaller than one block of {block_bytes} bytes")


class DirectoryNotFound(DiskSpeedTestError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"Directory '{path}' does not exist")


class InsufficientSpace(DiskSpeedTestError):
    def __init__(self, needed, available, path=None):
        self.needed = needed
        self.available = available
        self.path = path
        where = f" in '{path}'" if path else ""
        super().__init__(f"Not enough space{where}: need {needed} bytes, have {available} bytes")


class TransferFailed(DiskSpeedTestError):
    """A transfer phase stopped on an I/O error. ``result`` holds what was measured."""

    def __init__(self, result):
        self.result = result
        super().__init__(f"{result.direction.label} failed after {result.bytes_transferred} bytes: {result.error}")
