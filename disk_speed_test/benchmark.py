import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from disk_speed_test.config import ARTIFACT_NAME, DEFAULT_BLOCK_SIZE, DEFAULT_MARGIN, DEFAULT_SIZE, DEFAULT_TIMEOUT
from disk_speed_test.errors import TransferFailed
from disk_speed_test.logger import get_logger
from disk_speed_test.preflight import check_free_space, resolve_target_dir
from disk_speed_test.sizes import SizeSpec, parse_size
from disk_speed_test.transfer import (
    Direction,
    DurabilityMode,
    Outcome,
    TimedTransfer,
    TransferConfig,
    TransferResult,
)

logger = get_logger("benchmark")


class RunState(Enum):
    INIT = "init"
    PREFLIGHT = "preflight"
    WRITING = "writing"
    READING = "reading"
    CLEANUP = "cleanup"
    REPORTED = "reported"
    ABORTED = "aborted"


@dataclass(frozen=True)
class RunSummary:
    target_dir: str
    artifact_path: str
    config: TransferConfig
    write_result: TransferResult
    read_result: Optional[TransferResult] = None

    @property
    def durability(self) -> DurabilityMode:
        return self.config.durability

    @property
    def write_speed(self) -> Optional[float]:
        return _speed(self.write_result)

    @property
    def read_speed(self) -> Optional[float]:
        return _speed(self.read_result)

    @property
    def failed(self) -> bool:
        return any(r is not None and r.outcome is Outcome.FAILED for r in (self.write_result, self.read_result))

    @property
    def timed_out(self) -> bool:
        return any(r is not None and r.outcome is Outcome.TIMED_OUT for r in (self.write_result, self.read_result))


def _speed(result):
    """Bytes per second, or None when there is nothing meaningful to report."""
    if result is None or result.bytes_transferred == 0 or result.elapsed_seconds <= 0:
        return None
    return result.throughput_bytes_per_sec


def remove_artifact(path, retries: int = 1, delay: float = 0.5) -> bool:
    """
    Delete the test file. Missing files count as removed.

    A failed deletion is retried `retries` times before giving up; the failure is
    logged, never raised, so it cannot mask the outcome of the run.
    """
    for attempt in range(retries + 1):
        try:
            os.remove(path)
            logger.debug(f"Removed {path}")
            return True
        except FileNotFoundError:
            return True
        except OSError as e:
            if attempt < retries:
                logger.warning(f"Could not remove {path} ({e}), retrying")
                time.sleep(delay)
            else:
                logger.error(f"Could not remove {path}: {e}. Delete it manually.")
    return False


class BenchmarkRunner:
    def __init__(
        self,
        transfer: Optional[TimedTransfer] = None,
        margin: float = DEFAULT_MARGIN,
        free_space=None,
        artifact_name: str = ARTIFACT_NAME,
        sync_between_phases: Optional[bool] = None,
        phase_callback: Optional[Callable[[TransferResult], None]] = None,
    ):
        """
        :param transfer: TimedTransfer used for both phases; a default one without progress output otherwise.
        :param margin: free space safety margin, as a fraction of the test size.
        :param free_space: callable(path) -> available bytes, replaces the statvfs probe.
        :param artifact_name: file name of the test file inside the target directory.
        :param sync_between_phases: flush filesystem buffers before each phase; defaults to on in force-sync mode.
        :param phase_callback: called with each phase's result as soon as that phase ends.
        """
        self.transfer = transfer or TimedTransfer()
        self.margin = margin
        self.free_space = free_space
        self.artifact_name = artifact_name
        self.sync_between_phases = sync_between_phases
        self.phase_callback = phase_callback
        self.state = RunState.INIT

    def _enter(self, state: RunState):
        logger.debug(f"{self.state.value} -> {state.value}")
        self.state = state

    def _phase_done(self, result):
        if self.phase_callback is not None:
            self.phase_callback(result)

    def _sync(self, durability):
        enabled = self.sync_between_phases
        if enabled is None:
            enabled = durability is DurabilityMode.FORCE_SYNC
        if enabled and hasattr(os, "sync"):
            os.sync()

    def build_config(self, size, block_size, timeout_seconds, durability) -> TransferConfig:
        size = size if isinstance(size, SizeSpec) else parse_size(size)
        block_size = block_size if isinstance(block_size, SizeSpec) else parse_size(block_size)
        return TransferConfig(
            total_bytes=size.to_bytes(),
            block_bytes=block_size.to_bytes(),
            durability=durability,
            timeout_seconds=timeout_seconds,
        )

    def run(
        self,
        target_dir,
        size=DEFAULT_SIZE,
        block_size=DEFAULT_BLOCK_SIZE,
        timeout_seconds: float = DEFAULT_TIMEOUT,
        durability: DurabilityMode = DurabilityMode.FORCE_SYNC,
    ) -> RunSummary:
        """
        Preflight, write, read back, clean up.

        :raises InvalidSizeFormat, SizeTooSmall: bad sizes, nothing touched.
        :raises DirectoryNotFound, InsufficientSpace: preflight failed, nothing touched.
        :raises TransferFailed: the write phase hit an I/O error; the test file is already gone.
        """
        self.state = RunState.INIT
        config = self.build_config(size, block_size, timeout_seconds, durability)

        self._enter(RunState.PREFLIGHT)
        try:
            target_dir = resolve_target_dir(target_dir)
            check_free_space(target_dir, config.total_bytes, self.margin, self.free_space)
        except Exception:
            self._enter(RunState.ABORTED)
            raise

        artifact_path = os.path.join(target_dir, self.artifact_name)
        read_result = None
        try:
            self._enter(RunState.WRITING)
            self._sync(durability)
            write_result = self.transfer.run(Direction.WRITE_FROM_ZERO_SOURCE, config, artifact_path)
            self._phase_done(write_result)

            if write_result.outcome is Outcome.FAILED:
                raise TransferFailed(write_result) from write_result.error
            if write_result.outcome is Outcome.TIMED_OUT:
                logger.warning("Write timed out, skipping the read phase")
            else:
                self._enter(RunState.READING)
                self._sync(durability)
                read_result = self.transfer.run(Direction.READ_TO_DISCARD, config, artifact_path)
                self._phase_done(read_result)
        except BaseException:
            self._enter(RunState.CLEANUP)
            remove_artifact(artifact_path)
            self._enter(RunState.ABORTED)
            raise

        self._enter(RunState.CLEANUP)
        remove_artifact(artifact_path)

        self._enter(RunState.REPORTED)
        return RunSummary(
            target_dir=target_dir,
            artifact_path=artifact_path,
            config=config,
            write_result=write_result,
            read_result=read_result,
        )
