import asyncio
import contextlib
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path

from terraspec.core.environment import get_terraform_bin
from terraspec.core.metrics import metrics_collector
from terraspec.exceptions import ExecutionError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Captured outcome of one terraform invocation"""
    args: tuple[str, ...]
    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def output(self) -> str:
        """Combined stdout and stderr as text"""
        return (self.stdout + self.stderr).decode("utf-8", errors="replace")


def _terraform_env() -> dict[str, str]:
    env = dict(os.environ)
    env["TF_IN_AUTOMATION"] = "1"
    env["TF_INPUT"] = "0"
    return env


async def run_terraform(
    workdir: Path,
    *args: str,
    timeout: float,
    binary: str = None,
) -> CommandResult:
    """
    Run `terraform <args>` in `workdir` with a wall-clock timeout.

    Returns the captured result whatever the exit status. Raises ExecutionError
    if the binary cannot be started or the timeout expires (the process is killed).
    """
    binary = binary or get_terraform_bin()
    command = args[0] if args else ""
    started = time.monotonic()

    try:
        proc = await asyncio.create_subprocess_exec(
            binary,
            *args,
            cwd=str(workdir),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=_terraform_env(),
        )
    except OSError as e:
        metrics_collector.record_terraform_command(command, time.monotonic() - started, False)
        raise ExecutionError(f"failed to start {binary} {command}: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
        metrics_collector.record_terraform_command(command, time.monotonic() - started, False)
        raise ExecutionError(f"terraform {command} timed out after {timeout:g}s") from None

    duration = time.monotonic() - started
    metrics_collector.record_terraform_command(command, duration, proc.returncode == 0)
    logger.debug(f"terraform {command} exited {proc.returncode} in {duration:.2f}s")

    return CommandResult(
        args=tuple(args),
        returncode=proc.returncode,
        stdout=stdout or b"",
        stderr=stderr or b"",
    )
