"""CLI entry point for the hourly file generator.

Usage:
    python -m hourgen
    python -m hourgen --quick --datetime 2024031507
    python -m hourgen -q -p s3://my-bucket/testfiles -o endpoint_url=http://localhost:9000
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, NoReturn, Optional

from hourgen import __version__
from hourgen.lib.env import load_env_file
from hourgen.lib.errors import ConfigurationError
from hourgen.lib.observability import setup_logging
from hourgen.lib.runner import RunResult, generate_hourly_file
from hourgen.lib.settings import GeneratorSettings

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors with the failure exit code."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(EXIT_FAILURE, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="hourgen",
        description="Write one hour of synthetic records to a partitioned Parquet file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Trickle 100 records into file:///tmp/year=.../hour=.../ over about an hour
    hourgen

    # Write the file for 2024-03-15 07:00 UTC immediately
    hourgen --quick --datetime 2024031507

    # Write to HDFS or S3
    hourgen -q -p hdfs://namenode:8020/data/testfiles
    hourgen -q -p s3://bucket/testfiles -o endpoint_url=${S3_ENDPOINT}
        """,
    )
    parser.add_argument(
        "-d",
        "--datetime",
        dest="datetime_override",
        metavar="YYYYMMDDHH",
        help="Datetime in format YYYYMMDDHH (default: current UTC hour)",
    )
    parser.add_argument(
        "-p",
        "--path",
        dest="path_prefix",
        metavar="PREFIX",
        help="Path prefix, e.g. file:///tmp or hdfs://data/testfiles (default: file:///tmp)",
    )
    parser.add_argument(
        "-q",
        "--quick",
        action="store_true",
        help="Quick. Create file and exit without pacing records",
    )
    parser.add_argument(
        "-s",
        "--schema",
        dest="schema_path",
        metavar="FILE",
        help="Record schema (.avsc or .yaml); default is the bundled samplerec.avsc",
    )
    parser.add_argument(
        "-o",
        "--storage-option",
        action="append",
        dest="storage_options",
        metavar="KEY=VALUE",
        help="Filesystem option passed to fsspec (repeatable, ${VAR} expanded)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Resolve the target and output path without writing anything",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-format",
        choices=["human", "json"],
        default=None,
        help="Log format (default: human). Can also set via HOURGEN_LOG_FORMAT",
    )
    parser.add_argument(
        "--log-file",
        help="Write logs to a file in addition to console",
    )
    parser.add_argument(
        "--env-file",
        help="Load environment variables from this .env file first",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"hourgen {__version__}",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the generator and return the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.env_file:
        load_env_file(args.env_file)

    try:
        settings = GeneratorSettings.resolve(
            datetime_override=args.datetime_override,
            path_prefix=args.path_prefix,
            quick=args.quick,
            schema_path=args.schema_path,
            storage_options=args.storage_options,
            dry_run=args.dry_run,
            log_format=args.log_format,
        )
        setup_logging(
            verbose=args.verbose,
            json_format=settings.log_format == "json",
            log_file=args.log_file,
        )
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    result: RunResult = generate_hourly_file(settings)
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
