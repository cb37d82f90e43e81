import json
import logging
from pathlib import Path
from typing import Union

from rich.console import Console
from rich.markup import escape

from terraspec.eval.models import RunReport

logger = logging.getLogger(__name__)


def print_report(report: RunReport, console: Console = None, verbose: bool = False) -> None:
    """Print a pass/fail line per test case and per assertion, then a summary."""
    console = console or Console()

    for result in report.results:
        label = f"{escape(result.file)} :: {escape(result.test)}"
        if result.passed:
            console.print(f"[green]✔ {label}[/green]")
        else:
            console.print(f"[red]✘ {label}[/red]")

        for assertion in result.assertions:
            if assertion.passed:
                console.print(f"    - {escape(assertion.name)}: PASS")
            else:
                console.print(f"    - {escape(assertion.name)}: [red]FAIL[/red] — {escape(assertion.message or '')}")

        if result.error:
            console.print(f"    [red]{escape(result.error)}[/red]")
        if verbose and not result.passed and result.logs:
            console.print("    [dim]logs:[/dim]")
            for line in result.logs.rstrip().splitlines():
                console.print(f"      [dim]{escape(line)}[/dim]")

    if report.error:
        console.print(f"[bold red]run error:[/bold red] {escape(report.error)}")

    style = "green" if report.passed else "red"
    console.print(
        f"[bold {style}]{report.passed_count} passed, {report.failed_count} failed, "
        f"{report.total} total[/bold {style}]"
    )


def write_json(report: RunReport, path: Union[str, Path]) -> None:
    """Write the machine-readable report: one record per test case."""
    path = Path(path)
    path.write_text(json.dumps(report.to_list(), indent=2) + "\n", encoding="utf-8")
    logger.info(f"JSON report written to {path}")
