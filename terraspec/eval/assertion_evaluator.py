import json
import logging
import re
from enum import Enum
from typing import Any, Mapping

from terraspec.core.metrics import metrics_collector
from terraspec.eval.models import AssertionResult, PlanIndex
from terraspec.eval.references import (
    NOT_FOUND,
    LiteralRef,
    Reference,
    render_value,
    resolve_reference,
)
from terraspec.exceptions import AssertionEvaluationError

logger = logging.getLogger(__name__)


class Condition(str, Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    MATCHES = "matches"
    JSON_EQUALS = "json_equals"

    @classmethod
    def parse(cls, raw: str) -> "Condition":
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            raise AssertionEvaluationError(f"unknown condition {raw!r}") from None


def json_structurally_equal(a: Any, b: Any) -> bool:
    """Deep equality of decoded JSON that keeps booleans distinct from numbers."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(json_structurally_equal(a[k], b[k]) for k in a)
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(json_structurally_equal(x, y) for x, y in zip(a, b))
    return type(a) is type(b) and a == b


def _compile_pattern(pattern: str) -> re.Pattern:
    try:
        return re.compile(pattern)
    except (re.error, OverflowError, RecursionError) as e:
        raise AssertionEvaluationError(f"invalid regex \"{pattern}\": {e}") from e


def _decode_side(side: str, text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise AssertionEvaluationError(f"{side} is not valid JSON: {e.msg}") from e
    except (ValueError, RecursionError) as e:
        raise AssertionEvaluationError(f"{side} is not valid JSON: {e}") from e


def _missing_hint(ref: Reference, value: Any) -> str:
    if value is NOT_FOUND and not isinstance(ref, LiteralRef):
        return f" ({ref.token} not found in plan)"
    return ""


class AssertionEvaluator:
    """Evaluates assertion conditions. Never raises: every problem becomes a failed result."""

    @staticmethod
    def evaluate(name: str, condition: str, actual: Any, expected: Any) -> AssertionResult:
        """
        Compare resolved actual/expected values under `condition`.

        Conditions (case-insensitive):
        - equals: rendered strings are identical
        - contains: expected is a substring of actual
        - matches: expected is a regex found in actual
        - json_equals: both sides decode to structurally equal JSON
        """
        act = render_value(actual)
        exp = render_value(expected)

        try:
            cond = Condition.parse(condition)

            if cond is Condition.EQUALS:
                if act == exp:
                    return AssertionResult(name=name, passed=True)
                return AssertionResult(name=name, passed=False, message=f"expected \"{exp}\", got \"{act}\"")

            if cond is Condition.CONTAINS:
                if exp in act:
                    return AssertionResult(name=name, passed=True)
                return AssertionResult(name=name, passed=False, message=f"\"{act}\" does not contain \"{exp}\"")

            if cond is Condition.MATCHES:
                if _compile_pattern(exp).search(act):
                    return AssertionResult(name=name, passed=True)
                return AssertionResult(name=name, passed=False, message=f"\"{act}\" does not match \"{exp}\"")

            # Condition.JSON_EQUALS
            a = _decode_side("actual", act)
            b = _decode_side("expected", exp)
            try:
                if json_structurally_equal(a, b):
                    return AssertionResult(name=name, passed=True)
                message = f"json structures differ: expected {json.dumps(b, sort_keys=True)}, got {json.dumps(a, sort_keys=True)}"
            except RecursionError as e:
                raise AssertionEvaluationError(f"json structures too deeply nested to compare: {e}") from e
            return AssertionResult(name=name, passed=False, message=message)

        except AssertionEvaluationError as e:
            return AssertionResult(name=name, passed=False, message=str(e))

    def evaluate_spec(
        self,
        spec,
        plan: PlanIndex,
        variables: Mapping[str, str],
    ) -> AssertionResult:
        """Resolve an AssertionSpec's references and evaluate it."""
        actual = resolve_reference(spec.actual_ref, plan, variables)
        expected = resolve_reference(spec.expected_ref, plan, variables)

        result = self.evaluate(spec.name, spec.condition, actual, expected)
        if not result.passed:
            hint = _missing_hint(spec.actual_ref, actual) + _missing_hint(spec.expected_ref, expected)
            if hint:
                result.message = f"{result.message}{hint}"

        metrics_collector.record_assertion(result.passed, spec.condition)
        logger.debug(f"Assertion {spec.name!r}: {'PASS' if result.passed else 'FAIL'}")
        return result
