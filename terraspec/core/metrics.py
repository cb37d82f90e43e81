from prometheus_client import CollectorRegistry, Counter, Histogram, write_to_textfile
import logging

logger = logging.getLogger(__name__)

# Prometheus Registry
REGISTRY = CollectorRegistry()

test_cases_total = Counter(
    'terraspec_test_cases_total',
    'Test cases executed',
    ['status', 'mode'],
    registry=REGISTRY
)

assertions_total = Counter(
    'terraspec_assertions_total',
    'Assertions evaluated',
    ['status', 'condition'],
    registry=REGISTRY
)

terraform_command_duration_seconds = Histogram(
    'terraspec_terraform_command_duration_seconds',
    'Terraform command duration in seconds',
    ['command', 'status'],
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
    registry=REGISTRY
)


class RunMetricsCollector:
    """Records per-run metrics for test cases, assertions and terraform calls"""

    def record_test_case(self, passed: bool, mode: str, failed_stage: str = None):
        status = 'passed' if passed else (failed_stage or 'failed')
        test_cases_total.labels(status=status, mode=mode).inc()

    def record_assertion(self, passed: bool, condition: str):
        status = 'passed' if passed else 'failed'
        assertions_total.labels(status=status, condition=(condition or '').lower()).inc()

    def record_terraform_command(self, command: str, duration_seconds: float, success: bool):
        terraform_command_duration_seconds.labels(
            command=command,
            status='success' if success else 'error'
        ).observe(duration_seconds)

    def write_textfile(self, path: str):
        """Write all metrics in Prometheus text format to `path`"""
        write_to_textfile(path, REGISTRY)
        logger.info(f"Metrics written to {path}")


# Global instance
metrics_collector = RunMetricsCollector()
