"""Command-line interface for the SQLite history backend."""

from __future__ import annotations

import argparse
import logging
import re
import signal
import sys
from typing import TextIO

from sqlite_historian.backend import HistoryBackend
from sqlite_historian.config import BackendConfig
from sqlite_historian.errors import HistorianError
from sqlite_historian.timecodec import (
    format_store_time,
    parse_store_time,
    to_query_time,
    to_store_time,
)
from sqlite_historian.types import END_OF_DATA, Index, MatchStrategy, StatusCode

logger = logging.getLogger(__name__)

STRATEGIES = {
    "equal-or-after": MatchStrategy.EQUAL_OR_AFTER,
    "after": MatchStrategy.AFTER,
    "equal-or-before": MatchStrategy.EQUAL_OR_BEFORE,
    "before": MatchStrategy.BEFORE,
}

_SECONDS_RE = re.compile(r"-?[0-9]+")


# =============================================================================
# Logging setup
# =============================================================================


def setup_logging(verbose: bool, debug: bool) -> None:
    """Configure logging based on verbosity flags."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


# =============================================================================
# Time arguments
# =============================================================================


def parse_time(text: str) -> int:
    """
    Parse a time argument into Unix seconds.

    Accepts either store text ("YYYY-MM-DD HH:MM:SS") or an integer number
    of seconds.
    """
    if _SECONDS_RE.fullmatch(text):
        return int(text)

    try:
        return parse_store_time(text, strict=True)
    except HistorianError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def format_index(index: Index) -> str:
    """Render an index for output."""
    if index == END_OF_DATA:
        return "END_OF_DATA"
    return format_store_time(index)


# =============================================================================
# Backend factory
# =============================================================================


def create_backend(args: argparse.Namespace) -> HistoryBackend:
    """Create a history backend based on CLI arguments and environment."""
    config = BackendConfig.from_env()

    overrides = {
        "location": args.db if args.db is not None else config.location,
        "series_id": args.series if args.series is not None else config.series_id,
        # History persists between CLI runs unless --reset is given
        "reset_on_start": args.reset,
        "max_response_size": config.max_response_size,
        "store": "memory" if args.memory else config.store,
    }
    return HistoryBackend(BackendConfig(**overrides))


# =============================================================================
# Command handlers
# =============================================================================


class Recorder:
    """Reads samples from a text stream and writes them to a backend."""

    def __init__(self, backend: HistoryBackend) -> None:
        self.backend = backend
        self.running = False
        self.stored = 0
        self.rejected = 0

    def stop(self) -> None:
        """Signal the record loop to stop."""
        self.running = False

    def record_line(self, line: str) -> StatusCode | None:
        """
        Store one line of input.

        Lines are "VALUE" or "TIME VALUE", where TIME is Unix seconds or
        store text. Blank lines and lines starting with "#" are skipped.
        """
        line = line.strip()
        if not line or line.startswith("#"):
            return None

        head, _, tail = line.rpartition(" ")
        try:
            value = float(tail)
            timestamp = to_query_time(parse_time(head)) if head else None
        except (ValueError, argparse.ArgumentTypeError) as e:
            logger.warning("Skipping malformed line %r: %s", line, e)
            self.rejected += 1
            return StatusCode.BAD_INTERNAL_ERROR

        status = self.backend.set_sample(value, timestamp)
        if status == StatusCode.GOOD:
            self.stored += 1
        else:
            self.rejected += 1
        return status

    def run(self, stream: TextIO) -> None:
        """Record lines until the stream ends or stop() is called."""
        self.running = True
        logger.info("Recording samples (Ctrl+C to stop)")

        try:
            for line in stream:
                if not self.running:
                    break
                self.record_line(line)
        finally:
            self.running = False

        logger.info("Recorded %d samples, rejected %d", self.stored, self.rejected)


def cmd_record(backend: HistoryBackend, args: argparse.Namespace) -> int:
    """Handle 'record' command - store samples read from stdin."""
    recorder = Recorder(backend)

    def signal_handler(_sig: int, _frame: object) -> None:
        recorder.stop()
        # Interrupts a read blocked on the stream
        raise KeyboardInterrupt

    previous_int = signal.signal(signal.SIGINT, signal_handler)
    previous_term = signal.signal(signal.SIGTERM, signal_handler)
    try:
        recorder.run(args.input)
    except KeyboardInterrupt:
        print("\nStopping...")
    finally:
        signal.signal(signal.SIGINT, previous_int)
        signal.signal(signal.SIGTERM, previous_term)
        if args.input is not sys.stdin:
            args.input.close()

    print(f"Stored {recorder.stored} samples, rejected {recorder.rejected}")
    return 0 if recorder.rejected == 0 else 1


def cmd_first(backend: HistoryBackend, _args: argparse.Namespace) -> int:
    """Handle 'first' command."""
    print(format_index(backend.first_index()))
    return 0


def cmd_last(backend: HistoryBackend, _args: argparse.Namespace) -> int:
    """Handle 'last' command."""
    print(format_index(backend.last_index()))
    return 0


def cmd_match(backend: HistoryBackend, args: argparse.Namespace) -> int:
    """Handle 'match' command."""
    index = backend.match_index(to_query_time(args.time), STRATEGIES[args.strategy])
    print(format_index(index))
    return 0 if index != END_OF_DATA else 1


def cmd_count(backend: HistoryBackend, args: argparse.Namespace) -> int:
    """Handle 'count' command."""
    print(backend.result_size(Index(args.start), Index(args.end)))
    return 0


def cmd_read(backend: HistoryBackend, args: argparse.Namespace) -> int:
    """Handle 'read' command - print values in a time range."""
    max_values = args.max_values
    if max_values is None:
        max_values = backend.config.max_response_size

    status, result = backend.copy_data_values(
        Index(args.start), Index(args.end), reverse=args.reverse, max_values=max_values
    )
    if status != StatusCode.GOOD:
        print("Failed to read history")
        return 1

    for value in result.values:
        seconds = to_store_time(value.source_timestamp)
        print(f"{format_store_time(seconds)}  {value.value:g}")

    if result.truncated:
        print(f"... truncated at {max_values} values")
    return 0


# =============================================================================
# Argument parsing
# =============================================================================


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="SQLite history backend for a single monitored point",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    %(prog)s --reset record < samples.txt             # Fresh history from stdin
    %(prog)s first                                    # Oldest sample time
    %(prog)s match "2024-01-01 12:00:00" --strategy after
    %(prog)s count 1704067200 1704153600              # Samples in a day
    %(prog)s read 1704067200 1704153600 --reverse -n 10

Input format for 'record' (one sample per line):
    17.2                          # stamped with the current time
    1704067200 17.2               # Unix seconds
    2024-01-01 00:00:00 17.2      # store time, UTC

Environment:
    HISTORIAN_DB, HISTORIAN_SERIES_ID, HISTORIAN_MAX_RESPONSE_SIZE,
    HISTORIAN_STORE
        """,
    )

    # Global options
    parser.add_argument(
        "--db",
        metavar="FILE",
        default=None,
        help="SQLite database file (default: database.sqlite)",
    )
    parser.add_argument(
        "--memory",
        action="store_true",
        help="Use an in-memory store (nothing is persisted)",
    )
    parser.add_argument(
        "--series",
        type=int,
        metavar="ID",
        default=None,
        help="Series identifier (default: 1)",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop stored history before running the command",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # record
    record_parser = subparsers.add_parser("record", help="Store samples read from stdin")
    record_parser.add_argument(
        "input",
        nargs="?",
        type=argparse.FileType("r"),
        default=sys.stdin,
        help="Input file (default: stdin)",
    )

    # first / last
    subparsers.add_parser("first", help="Print the time of the oldest sample")
    subparsers.add_parser("last", help="Print the time of the newest sample")

    # match
    match_parser = subparsers.add_parser("match", help="Find the sample nearest a time")
    match_parser.add_argument("time", type=parse_time, help="Reference time")
    match_parser.add_argument(
        "-s",
        "--strategy",
        choices=list(STRATEGIES),
        default="equal-or-after",
        help="Match strategy (default: equal-or-after)",
    )

    # count
    count_parser = subparsers.add_parser("count", help="Count samples in a time range")
    count_parser.add_argument("start", type=parse_time, help="Start time (inclusive)")
    count_parser.add_argument("end", type=parse_time, help="End time (inclusive)")

    # read
    read_parser = subparsers.add_parser("read", help="Print samples in a time range")
    read_parser.add_argument("start", type=parse_time, help="Start time (inclusive)")
    read_parser.add_argument("end", type=parse_time, help="End time (inclusive)")
    read_parser.add_argument(
        "-r",
        "--reverse",
        action="store_true",
        help="Newest first",
    )
    read_parser.add_argument(
        "-n",
        "--max-values",
        type=int,
        metavar="N",
        default=None,
        help="Maximum values to print (default: HISTORIAN_MAX_RESPONSE_SIZE or 100)",
    )

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    return args


# =============================================================================
# Main entry point
# =============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.verbose, args.debug)

    handlers = {
        "record": cmd_record,
        "first": cmd_first,
        "last": cmd_last,
        "match": cmd_match,
        "count": cmd_count,
        "read": cmd_read,
    }

    try:
        backend = create_backend(args)
    except HistorianError as e:
        print(f"Error: {e}")
        return 1

    try:
        handler = handlers.get(args.command)
        if handler is None:
            logger.error("Unknown command: %s", args.command)
            return 1
        return handler(backend, args)

    except HistorianError as e:
        print(f"Error: {e}")
        return 1

    finally:
        backend.close()


if __name__ == "__main__":
    sys.exit(main())
