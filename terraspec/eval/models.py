from dataclasses import dataclass, field
from typing import Any, Optional


# Data Models
@dataclass
class PlanIndex:
    """Lookup indices built from one `terraform show -json` payload"""
    outputs: dict[str, Any] = field(default_factory=dict)
    resources: dict[str, Any] = field(default_factory=dict)


@dataclass
class AssertionResult:
    """Result of evaluating a single assertion"""
    name: str
    passed: bool
    message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = {"name": self.name, "passed": self.passed}
        if self.message:
            data["message"] = self.message
        return data


@dataclass
class TestCaseResult:
    """Result of running a single test case end to end"""
    __test__ = False

    file: str
    test: str
    assertions: list[AssertionResult] = field(default_factory=list)
    passed: bool = False
    logs: str = ""
    error: Optional[str] = None  # pipeline failure that prevented assertions

    def to_dict(self) -> dict[str, Any]:
        data = {
            "file": self.file,
            "test": self.test,
            "assertions": [a.to_dict() for a in self.assertions],
            "passed": self.passed,
        }
        if self.logs:
            data["logs"] = self.logs
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class RunReport:
    """All test case results of one run"""
    results: list[TestCaseResult] = field(default_factory=list)
    error: Optional[str] = None  # directory-level failure

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed_count(self) -> int:
        return self.total - self.passed_count

    @property
    def passed(self) -> bool:
        return self.error is None and all(r.passed for r in self.results)

    @property
    def exit_code(self) -> int:
        if self.error is not None:
            return 2
        return 0 if self.passed else 1

    def to_list(self) -> list[dict[str, Any]]:
        return [r.to_dict() for r in self.results]
