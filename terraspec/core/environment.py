import logging
import os

logger = logging.getLogger(__name__)

# Defaults
DEFAULT_TERRAFORM_BIN = "terraform"
DEFAULT_INIT_TIMEOUT = 120.0
DEFAULT_PLAN_TIMEOUT = 120.0
DEFAULT_SHOW_TIMEOUT = 60.0
DEFAULT_MAX_PARALLEL = 0  # 0 = unbounded

# Test discovery
TEST_FILE_GLOB = "*.tfunittest.hcl"

# Files written into each sandbox
SANDBOX_PREFIX = "terraspec-"
MODULE_DIRNAME = "module"
VARS_FILENAME = "terraspec.auto.tfvars.json"
PLAN_FILENAME = "plan.tfplan"


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive {name}={raw!r}, using {default}")
        return default
    return value


def get_terraform_bin() -> str:
    """Returns the terraform executable, overridable via TERRASPEC_TERRAFORM_BIN"""
    return os.getenv("TERRASPEC_TERRAFORM_BIN") or DEFAULT_TERRAFORM_BIN


def get_init_timeout() -> float:
    return _get_float("TERRASPEC_INIT_TIMEOUT", DEFAULT_INIT_TIMEOUT)


def get_plan_timeout() -> float:
    return _get_float("TERRASPEC_PLAN_TIMEOUT", DEFAULT_PLAN_TIMEOUT)


def get_show_timeout() -> float:
    return _get_float("TERRASPEC_SHOW_TIMEOUT", DEFAULT_SHOW_TIMEOUT)


def get_max_parallel() -> int:
    """Returns the cap on concurrently running test cases (0 means no cap)"""
    raw = os.getenv("TERRASPEC_MAX_PARALLEL")
    if raw is None or raw.strip() == "":
        return DEFAULT_MAX_PARALLEL
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid TERRASPEC_MAX_PARALLEL={raw!r}")
        return DEFAULT_MAX_PARALLEL
    return max(value, 0)


def get_log_level() -> str:
    return os.getenv("TERRASPEC_LOG_LEVEL", "INFO").upper()
