import logging
import os
import sys

from disk_speed_test.benchmark import BenchmarkRunner
from disk_speed_test.config import REPORT_CSV, REPORT_PLOT, build_parser
from disk_speed_test.errors import DiskSpeedTestError
from disk_speed_test.logger import set_logger
from disk_speed_test.report import generate_plot, write_report
from disk_speed_test.sizes import format_bytes, format_rate
from disk_speed_test.transfer import DurabilityMode, Outcome, TimedTransfer

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


class ProgressPrinter:
    """Prints dd-style status lines, rewriting the current line until the phase changes."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self.direction = None

    def __call__(self, update):
        if self.direction is not None and update.direction is not self.direction:
            self.stream.write("\n")
        self.direction = update.direction
        self.stream.write(
            f"\r  {update.bytes_transferred} bytes ({format_bytes(update.bytes_transferred)}) copied, "
            f"{update.elapsed_seconds:.0f} s, {format_rate(update.rate_bytes_per_sec)}   "
        )
        self.stream.flush()

    def finish(self):
        if self.direction is not None:
            self.stream.write("\n")
            self.direction = None


def print_header(args, config):
    print("=== Disk Speed Test ===")
    print(f"Target Directory : {os.path.realpath(args.target)}")
    print(f"Test File Size   : {args.size.upper()} (count={config.block_count} blocks)")
    print(f"Block Size       : {args.block_size.upper()}")
    print(f"Durability       : {config.durability.description}")
    print(f"Timeout          : {args.timeout}s" if args.timeout else "Timeout          : disabled")
    print()


def print_result(result):
    if result is None:
        return
    if result.outcome is Outcome.COMPLETED:
        print(f"{result.direction.label} completed: {format_rate(result.throughput_bytes_per_sec)}")
    elif result.outcome is Outcome.TIMED_OUT:
        print(
            f"{result.direction.label} timed out after {result.elapsed_seconds:.0f}s "
            f"({format_bytes(result.bytes_transferred)} done) - disk too slow?"
        )
    else:
        print(f"{result.direction.label} failed: {result.error}")


def print_summary(summary):
    print("=== SUMMARY ===")
    print(f"Durability  : {summary.durability.description}")
    print(f"Write Speed : {format_rate(summary.write_speed)}")
    print(f"Read Speed  : {format_rate(summary.read_speed)}")


def main(argv=None):
    args = build_parser().parse_args(argv)
    logger = set_logger("DISKSPEED", log_file=args.log_file, level=logging.DEBUG if args.verbose else logging.WARNING)

    if args.timeout < 0:
        print(f"Error: Timeout must not be negative: {args.timeout}")
        return EXIT_FAILURE
    if args.margin < 0:
        print(f"Error: Safety margin must not be negative: {args.margin}")
        return EXIT_FAILURE

    durability = DurabilityMode.BUFFERED if args.fast else DurabilityMode.FORCE_SYNC
    progress = None if args.no_progress else ProgressPrinter()

    def phase_done(result):
        if progress is not None:
            progress.finish()
        print_result(result)

    runner = BenchmarkRunner(transfer=TimedTransfer(progress_callback=progress), margin=args.margin, phase_callback=phase_done)

    try:
        config = runner.build_config(args.size, args.block_size, args.timeout, durability)
        print_header(args, config)
        summary = runner.run(args.target, args.size, args.block_size, args.timeout, durability)
    except DiskSpeedTestError as e:
        print(f"Error: {e}")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        print()
        print("Interrupted, test file removed.")
        return EXIT_INTERRUPTED

    print()
    print_summary(summary)

    if args.outdir:
        try:
            os.makedirs(args.outdir, exist_ok=True)
            write_report(summary, os.path.join(args.outdir, REPORT_CSV))
            generate_plot(summary, os.path.join(args.outdir, REPORT_PLOT))
        except OSError as e:
            print(f"Error: Could not write report to {args.outdir}: {e}")
            return EXIT_FAILURE

    if summary.failed:
        logger.error("Test finished with a failed phase")
        return EXIT_FAILURE
    if summary.timed_out:
        print("Test finished with a timeout, results are partial.")
    else:
        print("Test completed successfully.")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
