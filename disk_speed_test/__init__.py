"""Sequential write/read throughput test for a directory."""

from disk_speed_test.benchmark import BenchmarkRunner, RunState, RunSummary, remove_artifact
from disk_speed_test.errors import (
    DirectoryNotFound,
    DiskSpeedTestError,
    InsufficientSpace,
    InvalidSizeFormat,
    SizeTooSmall,
    TransferFailed,
)
from disk_speed_test.preflight import check_free_space
from disk_speed_test.sizes import SizeSpec, compute_block_count, parse_size, to_bytes
from disk_speed_test.transfer import (
    Direction,
    DurabilityMode,
    Outcome,
    ProgressUpdate,
    TimedTransfer,
    TransferConfig,
    TransferResult,
)

__version__ = "0.1.0"
