"""
Isolated per-test-case terraform workspaces.

A sandbox is a fresh temporary directory holding a copy of the module under
test (in ``module/``) plus generated mock and variable files. It is removed
on every exit path.
"""

import asyncio
import json
import logging
import os
import shutil
import stat
import subprocess
import sys
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from terraspec.core.environment import (
    MODULE_DIRNAME,
    PLAN_FILENAME,
    SANDBOX_PREFIX,
    VARS_FILENAME,
    get_init_timeout,
    get_plan_timeout,
    get_show_timeout,
    get_terraform_bin,
)
from terraspec.exceptions import ExecutionError, SandboxError, TestCaseError
from terraspec.schemas.test_spec import TestCase
from terraspec.services.mock_injector import inject_mocks
from terraspec.services.terraform import CommandResult, run_terraform

logger = logging.getLogger(__name__)


class SandboxMode(str, Enum):
    MOCK = "mock"
    LIVE = "live"


@dataclass
class SandboxRun:
    """Successful sandbox outcome: raw `show -json` payload plus all tool output"""
    plan_json: bytes
    logs: str


def copy_module(src: Path, dst: Path) -> None:
    """Recursively copy the module tree, keeping structure and permissions."""
    if not src.is_dir():
        raise SandboxError(f"failed to copy module: {src} is not a directory")
    try:
        shutil.copytree(src, dst, symlinks=True)
    except (OSError, shutil.Error) as e:
        raise SandboxError(f"failed to copy module: {e}") from e


def write_vars_file(module_dir: Path, variables: dict[str, str]) -> Path:
    """Write test variables as an auto-loaded tfvars JSON file. Values stay strings."""
    path = module_dir / VARS_FILENAME
    try:
        path.write_text(json.dumps(variables, indent=2), encoding="utf-8")
    except OSError as e:
        raise SandboxError(f"failed to write variables file: {e}") from e
    return path


def apply_platform_fixups(module_dir: Path) -> None:
    """
    Post-init fixups for provider plugins downloaded by `terraform init`.

    On POSIX hosts provider binaries get their execute bits restored; on macOS
    the quarantine attribute is cleared when `xattr` is available. Hosts without
    these capabilities skip the step. Failures are logged, never raised.
    """
    providers_dir = module_dir / ".terraform" / "providers"
    if not providers_dir.is_dir():
        return

    if os.name == "posix":
        for root, _dirs, files in os.walk(providers_dir):
            for fname in files:
                path = Path(root) / fname
                try:
                    mode = path.stat().st_mode
                    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
                except OSError as e:
                    logger.warning(f"Could not mark provider executable {path}: {e}")

    xattr = shutil.which("xattr")
    if sys.platform == "darwin" and xattr:
        try:
            subprocess.run(
                [xattr, "-dr", "com.apple.quarantine", str(providers_dir)],
                check=False,
                capture_output=True,
                timeout=30,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"Could not clear quarantine attribute on {providers_dir}: {e}")


class SandboxManager:
    """Drives one test case through copy → mocks → vars → init → plan → show."""

    def __init__(
        self,
        terraform_bin: str = None,
        init_timeout: float = None,
        plan_timeout: float = None,
        show_timeout: float = None,
    ):
        self.terraform_bin = terraform_bin or get_terraform_bin()
        self.init_timeout = init_timeout or get_init_timeout()
        self.plan_timeout = plan_timeout or get_plan_timeout()
        self.show_timeout = show_timeout or get_show_timeout()

    async def run(self, case: TestCase, spec_path: str, mode: SandboxMode = SandboxMode.MOCK) -> SandboxRun:
        """
        Execute `case` in a fresh sandbox.

        Raises a TestCaseError subclass on any failure; its `logs` carry the
        tool output gathered before the failure.
        """
        try:
            workspace = tempfile.TemporaryDirectory(prefix=SANDBOX_PREFIX)
        except OSError as e:
            raise SandboxError(f"failed to create sandbox: {e}") from e

        module_dir = Path(workspace.name) / MODULE_DIRNAME
        logger.debug(f"[{case.name}] Sandbox created at {workspace.name}")
        try:
            await asyncio.to_thread(copy_module, case.resolve_module(spec_path), module_dir)

            if SandboxMode(mode) is SandboxMode.MOCK:
                inject_mocks(module_dir, case.mocks)

            if case.vars:
                write_vars_file(module_dir, case.vars)

            return await self._plan(case, module_dir)
        finally:
            # rmtree runs off the event loop
            await asyncio.to_thread(workspace.cleanup)

    async def _plan(self, case: TestCase, module_dir: Path) -> SandboxRun:
        logs: list[str] = []

        await self._step(case, module_dir, logs, self.init_timeout, "init", "-input=false", "-no-color")
        await asyncio.to_thread(apply_platform_fixups, module_dir)
        await self._step(
            case, module_dir, logs, self.plan_timeout,
            "plan", "-input=false", "-no-color", f"-out={PLAN_FILENAME}",
        )
        show = await self._step(
            case, module_dir, logs, self.show_timeout,
            "show", "-json", "-no-color", PLAN_FILENAME,
        )
        return SandboxRun(plan_json=show.stdout, logs="".join(logs))

    async def _step(
        self,
        case: TestCase,
        module_dir: Path,
        logs: list[str],
        timeout: float,
        *args: str,
    ) -> CommandResult:
        logger.info(f"[{case.name}] terraform {args[0]}")
        logs.append(f"$ terraform {' '.join(args)}\n")
        try:
            result = await run_terraform(module_dir, *args, timeout=timeout, binary=self.terraform_bin)
        except TestCaseError as e:
            logs.append(f"{e}\n")
            raise ExecutionError(str(e), logs="".join(logs)) from e

        logs.append(result.output)

        if result.returncode != 0:
            raise ExecutionError(
                f"terraform {args[0]} exited with status {result.returncode}",
                logs="".join(logs),
            )
        return result
