"""
Typed references used in assertion `actual` / `expected` fields.

Tokens are parsed once into one of:

- ``OutputRef``    ``output.<name>``
- ``ResourceRef``  ``resource.<type>.<name>[.<attr>]``
- ``VarRef``       ``var.<name>`` (expected side only)
- ``LiteralRef``   anything else

and later resolved against a ``PlanIndex`` and the test case variables.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Union

OUTPUT_PREFIX = "output."
RESOURCE_PREFIX = "resource."
VAR_PREFIX = "var."


class Side(str, Enum):
    ACTUAL = "actual"
    EXPECTED = "expected"


class _NotFound:
    """Sentinel for an output or resource attribute absent from the plan."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "<nil>"

    def __str__(self):
        return "<nil>"


NOT_FOUND = _NotFound()


@dataclass(frozen=True)
class LiteralRef:
    value: str


@dataclass(frozen=True)
class OutputRef:
    name: str

    @property
    def token(self) -> str:
        return f"{OUTPUT_PREFIX}{self.name}"


@dataclass(frozen=True)
class ResourceRef:
    type: str
    name: str
    attribute: Optional[str] = None

    @property
    def key(self) -> str:
        """Lookup key in the plan resource index"""
        if self.attribute is None:
            return f"{self.type}.{self.name}"
        return f"{self.type}.{self.name}.{self.attribute}"

    @property
    def token(self) -> str:
        return f"{RESOURCE_PREFIX}{self.key}"


@dataclass(frozen=True)
class VarRef:
    name: str
    raw: str


Reference = Union[LiteralRef, OutputRef, ResourceRef, VarRef]


def parse_reference(token: str, side: Side = Side.ACTUAL) -> Reference:
    """Parse a raw token into a typed reference. Never fails: unknown shapes are literals."""
    if token.startswith(OUTPUT_PREFIX) and len(token) > len(OUTPUT_PREFIX):
        return OutputRef(name=token[len(OUTPUT_PREFIX):])

    if token.startswith(RESOURCE_PREFIX):
        parts = token[len(RESOURCE_PREFIX):].split(".", 2)
        if len(parts) >= 2 and all(parts):
            attribute = parts[2] if len(parts) == 3 else None
            return ResourceRef(type=parts[0], name=parts[1], attribute=attribute)
        return LiteralRef(value=token)

    if side == Side.EXPECTED and token.startswith(VAR_PREFIX) and len(token) > len(VAR_PREFIX):
        return VarRef(name=token[len(VAR_PREFIX):], raw=token)

    return LiteralRef(value=token)


def resolve_reference(ref: Reference, plan, variables: Mapping[str, str]) -> Any:
    """
    Resolve a reference to a comparison value.

    Missing outputs and resource attributes resolve to ``NOT_FOUND`` rather than
    failing the test case; an unknown ``var.`` falls back to the raw token.
    """
    if isinstance(ref, OutputRef):
        return plan.outputs.get(ref.name, NOT_FOUND)
    if isinstance(ref, ResourceRef):
        return plan.resources.get(ref.key, NOT_FOUND)
    if isinstance(ref, VarRef):
        return variables.get(ref.name, ref.raw)
    return ref.value


def render_value(value: Any) -> str:
    """Render a resolved value as the string conditions compare: strings as-is, everything else as JSON."""
    if isinstance(value, str):
        return value
    if value is NOT_FOUND:
        return str(NOT_FOUND)
    try:
        return json.dumps(value, sort_keys=True)
    except (TypeError, ValueError):
        return str(value)
