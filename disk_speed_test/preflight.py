import math
import os

from disk_speed_test.config import DEFAULT_MARGIN
from disk_speed_test.errors import DirectoryNotFound, InsufficientSpace
from disk_speed_test.logger import get_logger

logger = get_logger("preflight")


def resolve_target_dir(path) -> str:
    """Return the absolute, symlink-free form of path, which must be an existing directory."""
    resolved = os.path.realpath(os.path.expanduser(str(path)))
    if not os.path.isdir(resolved):
        raise DirectoryNotFound(resolved)
    return resolved


def get_free_space(path) -> int:
    """Bytes available to an unprivileged user, as reported by `df --output=avail`."""
    st = os.statvfs(path)
    return st.f_bavail * st.f_frsize


def required_space(total_bytes: int, margin: float = DEFAULT_MARGIN) -> int:
    if margin < 0:
        raise ValueError(f"Safety margin must not be negative: {margin}")
    return math.ceil(total_bytes * (1 + margin))


def check_free_space(path, total_bytes: int, margin: float = DEFAULT_MARGIN, free_space=None):
    """
    Make sure the test file plus a safety margin fits in the free space of path.

    :param path: directory that will hold the test file.
    :param total_bytes: size of the test file.
    :param margin: extra fraction of total_bytes that must stay free (0.5 = 50%).
    :param free_space: callable returning available bytes for a path; defaults to statvfs.
    :return: (required, available) in bytes.
    :raises DirectoryNotFound: path is not an existing directory.
    :raises InsufficientSpace: available < required.
    """
    if not os.path.isdir(path):
        raise DirectoryNotFound(path)

    required = required_space(total_bytes, margin)
    available = (free_space or get_free_space)(path)
    logger.debug(f"Free space check on {path}: need {required} bytes, have {available} bytes (margin {margin:.0%})")

    if available < required:
        raise InsufficientSpace(required, available, path)
    return required, available
