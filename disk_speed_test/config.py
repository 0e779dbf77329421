import argparse

ARTIFACT_NAME = "disk_speed_test.tmp"
DEFAULT_SIZE = "1G"
DEFAULT_BLOCK_SIZE = "1M"
DEFAULT_TIMEOUT = 120
DEFAULT_MARGIN = 0.5
DEFAULT_LOG_FILE = None
REPORT_CSV = "report.csv"
REPORT_PLOT = "speed.png"

EPILOG = """\
examples:
  disk-speed-test /mnt/mydisk
  disk-speed-test -s 4G -b 4M /mnt/nas
  disk-speed-test -s 1G -f /home/user/storage   # fast 1GB test through the page cache
"""


def build_parser():
    parser = argparse.ArgumentParser(
        prog="disk-speed-test",
        description="Sequential write/read speed test of a directory",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("target", metavar="TARGET_DIR", help="Directory to test (must exist)")
    parser.add_argument("-s", "--size", default=DEFAULT_SIZE, help=f"Test file size, e.g. 1G, 4G, 1024M (default: {DEFAULT_SIZE})")
    parser.add_argument("-b", "--block-size", default=DEFAULT_BLOCK_SIZE, help=f"Block size, e.g. 1M, 4M, 128K (default: {DEFAULT_BLOCK_SIZE})")
    parser.add_argument("-t", "--timeout", type=int, default=DEFAULT_TIMEOUT, help=f"Timeout in seconds for each phase, 0 disables (default: {DEFAULT_TIMEOUT})")
    parser.add_argument("-f", "--fast", action="store_true", help="Fast mode: skip forced sync (uses the cache, faster but less accurate)")
    parser.add_argument("-m", "--margin", type=float, default=DEFAULT_MARGIN, help=f"Free space safety margin as a fraction of the size (default: {DEFAULT_MARGIN})")
    parser.add_argument("-o", "--outdir", help=f"Write {REPORT_CSV} and {REPORT_PLOT} to this directory")
    parser.add_argument("--no-progress", action="store_true", help="Do not print live progress")
    parser.add_argument("--log-file", default=DEFAULT_LOG_FILE, help="Also write log messages to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser
