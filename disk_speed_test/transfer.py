"""
Single sequential transfer (write zeros to a file, or read a file to nowhere)
bounded by a wall-clock timeout.

The block loop runs in a daemon worker thread and checks a cancel flag between
blocks. The calling thread only waits: for completion, for the timeout, and then
for a short grace period. A block that hangs inside the kernel is abandoned
rather than waited for, so a stuck device cannot hold the run hostage.
"""

import errno
import mmap
import os
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from disk_speed_test.logger import get_logger
from disk_speed_test.sizes import compute_block_count, format_bytes, format_rate

DEFAULT_PROGRESS_INTERVAL = 1.0
DEFAULT_GRACE_PERIOD = 2.0
DIRECT_IO_ALIGNMENT = 4096

logger = get_logger("transfer")


class DurabilityMode(Enum):
    BUFFERED = "buffered"
    FORCE_SYNC = "force-sync"

    @property
    def description(self):
        if self is DurabilityMode.FORCE_SYNC:
            return "force-sync (O_DSYNC writes, cache-bypassing reads)"
        return "buffered (rates may reflect the page cache)"


class Direction(Enum):
    WRITE_FROM_ZERO_SOURCE = "write"
    READ_TO_DISCARD = "read"

    @property
    def label(self):
        return self.value.capitalize()


class Outcome(Enum):
    COMPLETED = "completed"
    TIMED_OUT = "timed out"
    FAILED = "failed"


@dataclass(frozen=True)
class TransferConfig:
    total_bytes: int
    block_bytes: int
    durability: DurabilityMode = DurabilityMode.FORCE_SYNC
    timeout_seconds: float = 0

    def __post_init__(self):
        compute_block_count(self.total_bytes, self.block_bytes)
        if self.timeout_seconds < 0:
            raise ValueError(f"Timeout must not be negative: {self.timeout_seconds}")

    @property
    def block_count(self) -> int:
        return compute_block_count(self.total_bytes, self.block_bytes)

    @property
    def payload_bytes(self) -> int:
        """Bytes actually written: total_bytes rounded down to whole blocks."""
        return self.block_count * self.block_bytes


@dataclass(frozen=True)
class TransferResult:
    direction: Direction
    durability: DurabilityMode
    bytes_transferred: int
    elapsed_seconds: float
    outcome: Outcome
    error: Optional[BaseException] = None

    @property
    def throughput_bytes_per_sec(self) -> float:
        if self.elapsed_seconds > 0:
            return self.bytes_transferred / self.elapsed_seconds
        return 0.0

    @property
    def completed(self) -> bool:
        return self.outcome is Outcome.COMPLETED


@dataclass(frozen=True)
class ProgressUpdate:
    direction: Direction
    bytes_transferred: int
    elapsed_seconds: float
    rate_bytes_per_sec: float


class _TransferState:
    def __init__(self):
        self.bytes_transferred = 0
        self.start = None
        self.end = None
        self.completed = False
        self.error = None
        self.cancel = threading.Event()
        self.done = threading.Event()

    def elapsed(self, now=None) -> float:
        if self.start is None:
            return 0.0
        end = self.end if self.end is not None else (now or time.perf_counter())
        return max(end - self.start, 0.0)


def discard_file(path):
    try:
        os.remove(path)
        logger.debug(f"Removed {path} left by a cancelled transfer")
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"Could not remove {path}: {e}. Delete it manually.")


def drop_page_cache(path):
    """Ask the kernel to forget cached pages of path so the next read hits the device."""
    if not hasattr(os, "posix_fadvise"):
        logger.debug("posix_fadvise not available, page cache left as is")
        return
    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
        os.posix_fadvise(fd, 0, 0, os.POSIX_FADV_DONTNEED)
    except OSError as e:
        logger.warning(f"Could not drop page cache for {path}: {e}")
    finally:
        os.close(fd)


class TimedTransfer:
    def __init__(
        self,
        progress_callback: Optional[Callable[[ProgressUpdate], None]] = None,
        progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
        grace_period: float = DEFAULT_GRACE_PERIOD,
    ):
        self.progress_callback = progress_callback
        self.progress_interval = progress_interval
        self.grace_period = grace_period

    def run(self, direction: Direction, config: TransferConfig, artifact_path) -> TransferResult:
        """
        Run one transfer and measure it.

        I/O errors and timeouts do not raise; they come back as FAILED and
        TIMED_OUT results with whatever was transferred up to that point.
        """
        artifact_path = str(artifact_path)
        state = _TransferState()
        worker = threading.Thread(
            target=self._worker,
            args=(direction, config, artifact_path, state),
            name=f"transfer-{direction.value}",
            daemon=True,
        )
        stop_reporting = threading.Event()
        reporter = None
        if self.progress_callback is not None:
            reporter = threading.Thread(
                target=self._report_progress,
                args=(direction, state, stop_reporting),
                name=f"progress-{direction.value}",
                daemon=True,
            )

        logger.info(f"{direction.label} of {config.payload_bytes} bytes to {artifact_path} ({config.durability.value})")
        worker.start()
        if reporter is not None:
            reporter.start()

        try:
            finished = state.done.wait(config.timeout_seconds or None)
            if not finished:
                logger.warning(f"{direction.label} did not finish within {config.timeout_seconds}s, cancelling")
                state.cancel.set()
                if not state.done.wait(self.grace_period):
                    logger.warning(f"{direction.label} worker still blocked after {self.grace_period}s grace period, abandoning it")
        finally:
            state.cancel.set()
            stop_reporting.set()
            if reporter is not None:
                reporter.join(self.grace_period)

        return self._result(direction, config, state)

    def _result(self, direction, config, state) -> TransferResult:
        now = time.perf_counter()
        if state.error is not None:
            outcome = Outcome.FAILED
        elif state.completed:
            outcome = Outcome.COMPLETED
        else:
            outcome = Outcome.TIMED_OUT

        result = TransferResult(
            direction=direction,
            durability=config.durability,
            bytes_transferred=state.bytes_transferred,
            elapsed_seconds=state.elapsed(now),
            outcome=outcome,
            error=state.error,
        )
        logger.info(
            f"{direction.label} {outcome.value}: {format_bytes(result.bytes_transferred)} in "
            f"{result.elapsed_seconds:.2f}s, {format_rate(result.throughput_bytes_per_sec)}"
        )
        return result

    def _worker(self, direction, config, path, state):
        try:
            if direction is Direction.WRITE_FROM_ZERO_SOURCE:
                self._write_loop(config, path, state)
            else:
                self._read_loop(config, path, state)
        except Exception as e:
            logger.error(f"{direction.label} failed on {path}: {e}")
            state.error = e
        finally:
            if state.start is not None and state.end is None:
                state.end = time.perf_counter()
            state.done.set()

    # Write side

    def _open_for_write(self, path, durability):
        flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC
        if durability is DurabilityMode.FORCE_SYNC and hasattr(os, "O_DSYNC"):
            flags |= os.O_DSYNC
        return os.open(path, flags, 0o644)

    def _write_block(self, f, view):
        written = 0
        while written < len(view):
            n = f.write(view[written:])
            if not n:
                raise OSError(errno.EIO, "Write made no progress")
            written += n
        return written

    def _write_loop(self, config, path, state):
        view = memoryview(bytes(config.block_bytes))
        fsync_each = config.durability is DurabilityMode.FORCE_SYNC and not hasattr(os, "O_DSYNC")

        fd = self._open_for_write(path, config.durability)
        if state.cancel.is_set():
            # open returned after cancellation; the caller may already have removed the artifact
            os.close(fd)
            discard_file(path)
            return

        with os.fdopen(fd, "wb", buffering=0) as f:
            state.start = time.perf_counter()
            for _ in range(config.block_count):
                if state.cancel.is_set():
                    break
                state.bytes_transferred += self._write_block(f, view)
                if fsync_each:
                    os.fsync(f.fileno())
            else:
                state.completed = True
            state.end = time.perf_counter()

    # Read side

    def _open_for_read(self, path, config):
        """Return (fd, direct). direct is True when the file was opened with O_DIRECT."""
        if (
            config.durability is DurabilityMode.FORCE_SYNC
            and hasattr(os, "O_DIRECT")
            and config.block_bytes % DIRECT_IO_ALIGNMENT == 0
        ):
            try:
                return os.open(path, os.O_RDONLY | os.O_DIRECT), True
            except OSError as e:
                if e.errno != errno.EINVAL:
                    raise
                logger.warning(f"O_DIRECT not supported for {path}, reading through the page cache")
        return os.open(path, os.O_RDONLY), False

    def _read_block(self, f, buf):
        return f.readinto(buf)

    def _read_loop(self, config, path, state):
        if config.durability is DurabilityMode.FORCE_SYNC:
            drop_page_cache(path)

        fd, direct = self._open_for_read(path, config)
        f = os.fdopen(fd, "rb", buffering=0)
        # O_DIRECT needs a page-aligned buffer, which an anonymous mmap is
        buf = mmap.mmap(-1, config.block_bytes) if direct else bytearray(config.block_bytes)
        try:
            state.start = time.perf_counter()
            while not state.cancel.is_set():
                try:
                    n = self._read_block(f, buf)
                except OSError as e:
                    if not (direct and e.errno == errno.EINVAL and state.bytes_transferred == 0):
                        raise
                    logger.warning(f"O_DIRECT read rejected for {path}, reading through the page cache")
                    f.close()
                    buf.close()
                    f = os.fdopen(os.open(path, os.O_RDONLY), "rb", buffering=0)
                    buf = bytearray(config.block_bytes)
                    direct = False
                    state.start = time.perf_counter()
                    continue
                if not n:
                    state.completed = True
                    break
                state.bytes_transferred += n
            state.end = time.perf_counter()
        finally:
            f.close()
            if direct:
                buf.close()

    # Progress

    def _report_progress(self, direction, state, stop):
        last_bytes, last_time = 0, None
        while not stop.wait(self.progress_interval):
            if state.start is None:
                continue
            now = time.perf_counter()
            done = state.bytes_transferred
            since = last_time if last_time is not None else state.start
            rate = (done - last_bytes) / (now - since) if now > since else 0.0
            last_bytes, last_time = done, now
            try:
                self.progress_callback(ProgressUpdate(direction, done, now - state.start, rate))
            except Exception as e:
                logger.warning(f"Progress callback failed: {e}")
