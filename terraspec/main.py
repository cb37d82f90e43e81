#!/usr/bin/env python3
"""
TerraSpec command line entry point.

Runs every `*.tfunittest.hcl` file in a directory and reports pass/fail per
test case and assertion.

Exit status: 0 when every test case passed, 1 when any failed (or the JSON
report could not be written), 2 for a directory-level error.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console

from terraspec import __version__
from terraspec.core.environment import get_log_level, get_max_parallel
from terraspec.core.logging import setup_logging
from terraspec.core.metrics import metrics_collector
from terraspec.eval.models import RunReport
from terraspec.eval.reporter import print_report, write_json
from terraspec.eval.test_runner import TestRunner
from terraspec.exceptions import DirectoryParseError
from terraspec.services.sandbox import SandboxMode

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="terraspec",
        description="Fast, mockable unit testing for Terraform modules",
    )
    parser.add_argument("--dir", default="tests", help="directory containing .tfunittest.hcl test files")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in SandboxMode],
        default=SandboxMode.MOCK.value,
        help="mock: inject mock resources; live: plan the module as is",
    )
    parser.add_argument("--json", dest="json_out", default="", help="path to write JSON report (optional)")
    parser.add_argument(
        "--parallel",
        type=int,
        default=None,
        help="max concurrently running test cases (0 = unbounded)",
    )
    parser.add_argument("--metrics-file", default="", help="write Prometheus metrics to this file")
    parser.add_argument("--log-format", choices=["text", "json"], default="text")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging and logs of failed tests")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


async def main(argv: list[str] = None, console: Console = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_format, "DEBUG" if args.verbose else get_log_level())
    console = console or Console()

    directory = Path(args.dir).resolve()
    parallel = get_max_parallel() if args.parallel is None else max(args.parallel, 0)
    runner = TestRunner(max_parallel=parallel)

    try:
        report = await runner.run_directory(directory, SandboxMode(args.mode))
    except DirectoryParseError as e:
        logger.error(f"Run aborted: {e}")
        report = RunReport(error=str(e))

    print_report(report, console, verbose=args.verbose)

    exit_code = report.exit_code
    if args.json_out:
        try:
            write_json(report, args.json_out)
        except OSError as e:
            console.print(f"[red]failed to write json: {e}[/red]")
            exit_code = exit_code or 1

    if args.metrics_file:
        try:
            metrics_collector.write_textfile(args.metrics_file)
        except OSError as e:
            logger.warning(f"Failed to write metrics file: {e}")

    return exit_code


def run():
    exit_code = asyncio.run(main())
    sys.exit(exit_code)


if __name__ == "__main__":
    run()
