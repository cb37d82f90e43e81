"""
Flattens `terraform show -json <planfile>` output into a PlanIndex.

Only an undecodable payload is an error. Missing or wrongly shaped fields
anywhere in the tree are treated as "nothing here".
"""

import json
import logging
from typing import Any, Iterator, Optional, Union

from terraspec.eval.models import PlanIndex
from terraspec.exceptions import ExtractionError

logger = logging.getLogger(__name__)

# Safety net against cyclic or absurdly deep child_modules nesting
MAX_MODULE_DEPTH = 64


class PlanNode:
    """Read-only view over a decoded JSON value with shape-safe accessors."""

    __slots__ = ("value",)

    def __init__(self, value: Any = None):
        self.value = value

    @property
    def is_null(self) -> bool:
        return self.value is None

    def get(self, key: str) -> "PlanNode":
        if isinstance(self.value, dict):
            return PlanNode(self.value.get(key))
        return PlanNode(None)

    def as_object(self) -> dict[str, Any]:
        return self.value if isinstance(self.value, dict) else {}

    def as_array(self) -> list[Any]:
        return self.value if isinstance(self.value, list) else []

    def as_str(self) -> Optional[str]:
        return self.value if isinstance(self.value, str) else None

    def items(self) -> Iterator[tuple[str, "PlanNode"]]:
        for key, value in self.as_object().items():
            yield key, PlanNode(value)

    def elements(self) -> Iterator["PlanNode"]:
        for value in self.as_array():
            yield PlanNode(value)


def decode_plan(payload: Union[bytes, str]) -> PlanNode:
    """Decode the raw payload, raising ExtractionError if it is not JSON."""
    try:
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        return PlanNode(json.loads(payload))
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        raise ExtractionError(f"failed to parse terraform json: {e}") from e


def collect_outputs(planned_values: PlanNode) -> dict[str, Any]:
    outputs = {}
    for name, wrapper in planned_values.get("outputs").items():
        # Outputs without a "value" field (unknown until apply) are skipped
        if "value" in wrapper.as_object():
            outputs[name] = wrapper.get("value").value
    return outputs


def collect_resources(module: PlanNode, out: dict[str, Any], depth: int = 0) -> None:
    """Walk a module and every descendant, indexing `type.name.attr` and `type.name`."""
    if depth > MAX_MODULE_DEPTH:
        logger.warning(f"Plan module nesting exceeds {MAX_MODULE_DEPTH}, ignoring deeper modules")
        return

    for resource in module.get("resources").elements():
        type_name = resource.get("type").as_str()
        name = resource.get("name").as_str()
        if not type_name or not name:
            continue
        values = resource.get("values").as_object()
        for attr, value in values.items():
            out[f"{type_name}.{name}.{attr}"] = value
        out[f"{type_name}.{name}"] = values

    for child in module.get("child_modules").elements():
        collect_resources(child, out, depth + 1)


def extract_plan(payload: Union[bytes, str]) -> PlanIndex:
    """Build a fresh PlanIndex from a `terraform show -json` payload."""
    root = decode_plan(payload)
    planned_values = root.get("planned_values")

    index = PlanIndex()
    if planned_values.is_null:
        logger.debug("Plan has no planned_values; outputs and resources are empty")
        return index

    index.outputs = collect_outputs(planned_values)
    collect_resources(planned_values.get("root_module"), index.resources)
    logger.debug(
        f"Extracted {len(index.outputs)} outputs and {len(index.resources)} resource keys from plan"
    )
    return index
