import re
from dataclasses import dataclass

from disk_speed_test.errors import InvalidSizeFormat, SizeTooSmall

UNIT_EXPONENTS = {"K": 1, "M": 2, "G": 3}
SIZE_PATTERN = re.compile(r"^(\d+)([KMG])$")

# dd prints rates with decimal prefixes, so do we
DECIMAL_UNITS = ["bytes", "kB", "MB", "GB", "TB"]


@dataclass(frozen=True)
class SizeSpec:
    value: int
    unit: str

    def __post_init__(self):
        if self.unit not in UNIT_EXPONENTS or self.value <= 0:
            raise InvalidSizeFormat(f"{self.value}{self.unit}")

    def to_bytes(self) -> int:
        return self.value * 1024 ** UNIT_EXPONENTS[self.unit]

    def __str__(self):
        return f"{self.value}{self.unit}"


def parse_size(text: str) -> SizeSpec:
    """Parse a size such as '4G', '512m' or '1024M' into a SizeSpec."""
    if not isinstance(text, str):
        raise InvalidSizeFormat(text)
    match = SIZE_PATTERN.match(text.strip().upper())
    if not match:
        raise InvalidSizeFormat(text)
    return SizeSpec(int(match.group(1)), match.group(2))


def to_bytes(spec: SizeSpec) -> int:
    return spec.to_bytes()


def compute_block_count(total_bytes: int, block_bytes: int) -> int:
    """Number of whole blocks of block_bytes that fit in total_bytes."""
    if block_bytes <= 0:
        raise SizeTooSmall(total_bytes, block_bytes)
    count = total_bytes // block_bytes
    if count == 0:
        raise SizeTooSmall(total_bytes, block_bytes)
    return count


def format_bytes(num_bytes) -> str:
    value = float(num_bytes)
    for unit in DECIMAL_UNITS[:-1]:
        if abs(value) < 1000:
            return f"{int(value)} bytes" if unit == "bytes" else f"{value:.1f} {unit}"
        value /= 1000
    return f"{value:.1f} {DECIMAL_UNITS[-1]}"


def format_rate(bytes_per_sec) -> str:
    if bytes_per_sec is None:
        return "N/A"
    value = float(bytes_per_sec)
    for unit in DECIMAL_UNITS[1:-1]:
        value /= 1000
        if abs(value) < 1000:
            return f"{value:.1f} {unit}/s"
    return f"{value / 1000:.1f} {DECIMAL_UNITS[-1]}/s"
