class TerraspecError(Exception):
    """Base class for all terraspec errors."""


class DirectoryParseError(TerraspecError):
    """Raised when a test directory or one of its specification files cannot be parsed. Aborts the whole run."""

    def __init__(self, message: str, path: str = None):
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class TestCaseError(TerraspecError):
    """Base class for errors confined to a single test case."""

    __test__ = False

    def __init__(self, message: str, logs: str = ""):
        self.logs = logs
        super().__init__(message)


class SandboxError(TestCaseError):
    """Raised when the sandbox workspace cannot be created or the module cannot be copied."""


class MockInjectionError(TestCaseError):
    """Raised for a malformed mock resource identifier or a failed mock file write."""


class ExecutionError(TestCaseError):
    """Raised when terraform exits non-zero, times out or cannot be started."""


class ExtractionError(TestCaseError):
    """Raised when the plan JSON payload cannot be decoded."""


class AssertionEvaluationError(TerraspecError):
    """Raised for an unknown condition or invalid pattern. Always recorded as a failed assertion."""
