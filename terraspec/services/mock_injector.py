"""
Writes synthetic resource definitions for mocked resources into a module copy.

Each mock ``<type>.<name>`` becomes ``terraspec_mock.<type>.<name>.tf`` holding
a resource block with the literal attribute values and an output
``<type>_<name>_attrs`` re-exporting them, so the plan exposes mock values the
same way as real resources. Nothing here knows the provider schema.

A mock adds a declaration; it does not replace one. Mocked resources must be
referenced by the module but declared nowhere in it, otherwise terraform
rejects the duplicate resource block during plan.
"""

import logging
import re
from pathlib import Path
from typing import Iterable

from terraspec.exceptions import MockInjectionError
from terraspec.schemas.test_spec import MockSpec

logger = logging.getLogger(__name__)

MOCK_FILE_PREFIX = "terraspec_mock"

# HCL identifiers (resource types, names, argument names)
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")


def split_resource_id(resource: str) -> tuple[str, str]:
    """Split `<type>.<name>`; anything but two non-empty parts is rejected."""
    parts = resource.split(".")
    if len(parts) != 2 or not all(p.strip() for p in parts):
        raise MockInjectionError(
            f"invalid mock resource identifier {resource!r}: expected format <type>.<name>"
        )
    return parts[0], parts[1]


def escape_hcl_string(value: str) -> str:
    """Escape a value for use inside a double-quoted HCL string literal."""
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    # Disable template interpolation and directives
    return escaped.replace("${", "$${").replace("%{", "%%{")


def mock_file_name(type_name: str, name: str) -> str:
    return f"{MOCK_FILE_PREFIX}.{type_name}.{name}.tf"


def output_name(type_name: str, name: str) -> str:
    return f"{type_name}_{name}_attrs"


def render_mock(type_name: str, name: str, attributes: dict[str, str]) -> str:
    """HCL source for one mock: resource block plus attribute re-export output."""
    lines = [f'resource "{escape_hcl_string(type_name)}" "{escape_hcl_string(name)}" {{']
    for attr, value in attributes.items():
        lines.append(f'  {attr} = "{escape_hcl_string(value)}"')
    lines.append("}")
    lines.append("")
    lines.append(f'output "{output_name(type_name, name)}" {{')
    lines.append("  value = {")
    for attr in attributes:
        lines.append(f"    {attr} = {type_name}.{name}.{attr}")
    lines.append("  }")
    lines.append("}")
    return "\n".join(lines) + "\n"


def _validate(mock: MockSpec) -> tuple[str, str]:
    type_name, name = split_resource_id(mock.resource)
    if not (_IDENTIFIER.match(type_name) and _IDENTIFIER.match(name)):
        raise MockInjectionError(
            f"invalid mock resource identifier {mock.resource!r}: type and name must be identifiers"
        )
    for attr in mock.attributes:
        if not _IDENTIFIER.match(attr):
            raise MockInjectionError(
                f"invalid attribute name {attr!r} in mock {mock.resource!r}"
            )
    return type_name, name


def inject_mocks(module_dir: Path, mocks: Iterable[MockSpec]) -> list[Path]:
    """
    Write one definitions file per mock into `module_dir`.

    Every mock is validated before anything is written, so a malformed
    identifier leaves the module untouched. Returns the written paths.
    """
    module_dir = Path(module_dir)
    validated = [(mock, *_validate(mock)) for mock in mocks]

    written: dict[Path, str] = {}
    for mock, type_name, name in validated:
        path = module_dir / mock_file_name(type_name, name)
        if path in written:
            logger.warning(f"Mock {mock.resource!r} declared more than once; last declaration wins")
        written[path] = render_mock(type_name, name, dict(mock.attributes))

    for path, content in written.items():
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise MockInjectionError(f"failed writing mock file {path.name}: {e}") from e
        logger.debug(f"Wrote mock definitions {path.name}")

    return list(written)
