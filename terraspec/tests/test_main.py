import io
import json
import logging
from unittest.mock import AsyncMock, patch

import pytest
from rich.console import Console

from terraspec.eval.models import AssertionResult, RunReport, TestCaseResult
from terraspec.exceptions import DirectoryParseError
from terraspec.main import build_parser, main


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _console():
    return Console(file=io.StringIO(), width=200, color_system=None)


def _passing_report():
    return RunReport(results=[
        TestCaseResult(file="a.tfunittest.hcl", test="t", assertions=[AssertionResult("x", True)], passed=True)
    ])


def test_parser_defaults():
    args = build_parser().parse_args([])

    assert args.dir == "tests"
    assert args.mode == "mock"
    assert args.json_out == ""
    assert args.parallel is None


@pytest.mark.asyncio
async def test_exit_zero_when_all_pass(tmp_path):
    with patch("terraspec.main.TestRunner.run_directory", new=AsyncMock(return_value=_passing_report())):
        code = await main(["--dir", str(tmp_path)], console=_console())

    assert code == 0


@pytest.mark.asyncio
async def test_exit_one_when_any_fails(tmp_path):
    report = RunReport(results=[TestCaseResult(file="a", test="t", passed=False)])

    with patch("terraspec.main.TestRunner.run_directory", new=AsyncMock(return_value=report)):
        code = await main(["--dir", str(tmp_path)], console=_console())

    assert code == 1


@pytest.mark.asyncio
async def test_exit_two_on_directory_parse_error(tmp_path):
    console = _console()
    error = DirectoryParseError("syntax error at line 1, column 5", path="bad.tfunittest.hcl")

    with patch("terraspec.main.TestRunner.run_directory", new=AsyncMock(side_effect=error)):
        code = await main(["--dir", str(tmp_path)], console=console)

    assert code == 2
    assert "run error" in console.file.getvalue()


@pytest.mark.asyncio
async def test_missing_directory_is_run_error(tmp_path):
    code = await main(["--dir", str(tmp_path / "nope")], console=_console())

    assert code == 2


@pytest.mark.asyncio
async def test_json_report_and_metrics_written(tmp_path):
    json_path = tmp_path / "out.json"
    metrics_path = tmp_path / "metrics.prom"

    with patch("terraspec.main.TestRunner.run_directory", new=AsyncMock(return_value=_passing_report())):
        code = await main(
            ["--dir", str(tmp_path), "--json", str(json_path), "--metrics-file", str(metrics_path)],
            console=_console(),
        )

    assert code == 0
    assert json.loads(json_path.read_text())[0]["test"] == "t"
    assert "terraspec_test_cases_total" in metrics_path.read_text()


@pytest.mark.asyncio
async def test_json_write_failure_exits_one(tmp_path):
    with patch("terraspec.main.TestRunner.run_directory", new=AsyncMock(return_value=_passing_report())):
        code = await main(
            ["--dir", str(tmp_path), "--json", str(tmp_path / "missing" / "out.json")],
            console=_console(),
        )

    assert code == 1


@pytest.mark.asyncio
async def test_mode_and_parallel_passed_through(tmp_path):
    run_directory = AsyncMock(return_value=_passing_report())

    with patch("terraspec.main.TestRunner.run_directory", new=run_directory), \
            patch("terraspec.main.TestRunner.__init__", return_value=None) as init:
        await main(["--dir", str(tmp_path), "--mode", "live", "--parallel", "3"], console=_console())

    init.assert_called_once_with(max_parallel=3)
    assert run_directory.call_args[0][1].value == "live"
