"""
Pytest configuration and shared fixtures for the terraspec test suite.

This module provides:
- A small Terraform module tree on disk
- `terraform show -json` payloads
- Test specification file factories
- A fake terraform executor so no real binary is needed
"""

import json
from pathlib import Path
from typing import Callable
from unittest.mock import patch

import pytest

from terraspec.services.terraform import CommandResult


SAMPLE_PLAN = {
    "format_version": "1.2",
    "planned_values": {
        "outputs": {
            "vpc_cidr": {"sensitive": False, "value": "10.0.0.0/16"},
            "subnet_ids": {"sensitive": False, "value": ["subnet-1", "subnet-2"]},
            "tags": {"sensitive": False, "value": {"env": "test", "team": "infra"}},
        },
        "root_module": {
            "resources": [
                {
                    "address": "aws_vpc.main",
                    "type": "aws_vpc",
                    "name": "main",
                    "values": {"cidr_block": "10.0.0.0/16", "enable_dns_support": True},
                }
            ],
            "child_modules": [
                {
                    "address": "module.subnets",
                    "resources": [
                        {
                            "address": "module.subnets.aws_subnet.a",
                            "type": "aws_subnet",
                            "name": "a",
                            "values": {"cidr_block": "10.0.1.0/24", "map_public_ip_on_launch": False},
                        }
                    ],
                    "child_modules": [
                        {
                            "address": "module.subnets.module.nat",
                            "resources": [
                                {
                                    "type": "aws_nat_gateway",
                                    "name": "this",
                                    "values": {"connectivity_type": "private"},
                                }
                            ],
                        }
                    ],
                }
            ],
        },
    },
}


SAMPLE_SPEC = '''
# VPC module tests
test "vpc cidr validation" {
  module = "../modules/vpc"

  vars = {
    cidr_block = "10.0.0.0/16"
  }

  mock "aws_vpc.main" {
    attributes = {
      id         = "vpc-123"
      cidr_block = "10.0.0.0/16"
    }
  }

  assert "cidr matches variable" {
    actual    = "output.vpc_cidr"
    expected  = "var.cidr_block"
    condition = "equals"
  }
}
'''


@pytest.fixture
def plan_payload() -> bytes:
    return json.dumps(SAMPLE_PLAN).encode("utf-8")


@pytest.fixture
def module_dir(tmp_path) -> Path:
    """
    A module with a nested submodule directory and an executable helper.

    `aws_vpc.main` is referenced but not declared; tests supply it as a mock.
    """
    module = tmp_path / "modules" / "vpc"
    (module / "subnets").mkdir(parents=True)
    (module / "main.tf").write_text('resource "aws_internet_gateway" "main" {\n  vpc_id = aws_vpc.main.id\n}\n')
    (module / "variables.tf").write_text('variable "cidr_block" {}\n')
    (module / "outputs.tf").write_text('output "vpc_cidr" {\n  value = aws_vpc.main.cidr_block\n}\n')
    (module / "subnets" / "main.tf").write_text('resource "aws_subnet" "a" {}\n')
    helper = module / "scripts.sh"
    helper.write_text("#!/bin/sh\necho ok\n")
    helper.chmod(0o755)
    return module


@pytest.fixture
def tests_dir(tmp_path, module_dir) -> Path:
    directory = tmp_path / "tests"
    directory.mkdir()
    return directory


@pytest.fixture
def write_spec(tests_dir) -> Callable[[str, str], Path]:
    """Write a .tfunittest.hcl file into the tests directory."""
    def _write(name: str, content: str) -> Path:
        path = tests_dir / f"{name}.tfunittest.hcl"
        path.write_text(content)
        return path
    return _write


class FakeTerraform:
    """
    Stand-in for `run_terraform`.

    `returncodes` maps a command (init/plan/show) to its exit status and
    `show_payload` is what `show` prints. Every call is recorded with a
    snapshot of the files present in the working directory.
    """

    def __init__(self, show_payload: bytes):
        self.show_payload = show_payload
        self.returncodes: dict[str, int] = {}
        self.raises: dict[str, Exception] = {}
        self.calls: list[tuple[str, ...]] = []
        self.workdirs: list[Path] = []
        self.snapshots: list[dict[str, str]] = []

    async def __call__(self, workdir, *args, timeout, binary=None):
        command = args[0]
        self.calls.append(args)
        self.workdirs.append(Path(workdir))
        self.snapshots.append({
            str(p.relative_to(workdir)): p.read_text()
            for p in Path(workdir).rglob("*")
            if p.is_file() and p.suffix in {".tf", ".json"}
        })
        if command in self.raises:
            raise self.raises[command]
        code = self.returncodes.get(command, 0)
        stdout = self.show_payload if command == "show" else f"{command} output\n".encode()
        stderr = f"{command} failed\n".encode() if code else b""
        return CommandResult(args=tuple(args), returncode=code, stdout=stdout, stderr=stderr)

    @property
    def commands(self) -> list[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def fake_terraform(plan_payload):
    fake = FakeTerraform(plan_payload)
    with patch("terraspec.services.sandbox.run_terraform", new=fake):
        yield fake


@pytest.fixture
def sandbox_root(tmp_path, monkeypatch) -> Path:
    """Redirect temporary sandboxes to a directory the test can inspect."""
    root = tmp_path / "sandboxes"
    root.mkdir()
    monkeypatch.setattr("tempfile.tempdir", str(root))
    return root


@pytest.fixture
def sample_spec() -> str:
    return SAMPLE_SPEC
