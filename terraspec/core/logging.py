import logging
import sys

from pythonjsonlogger.json import JsonFormatter

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(fmt: str = "text", level: str = "INFO"):
    """
    Configures root logging for a terraspec run.

    Log records go to stderr so that stdout only carries the test report.
    `fmt="json"` emits one JSON object per record for CI log collectors.
    """
    # 1. Get the root logger
    root_logger = logging.getLogger()
    invalid_level = None
    try:
        root_logger.setLevel(level)
    except (TypeError, ValueError):
        invalid_level, level = level, "INFO"
        root_logger.setLevel(level)

    # 2. Prevent duplicate logs by removing existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # 3. Create StreamHandler for stderr
    log_handler = logging.StreamHandler(sys.stderr)

    # 4. Define format
    if fmt == "json":
        formatter = JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%SZ",
        )
    else:
        formatter = logging.Formatter(TEXT_FORMAT)
    log_handler.setFormatter(formatter)
    root_logger.addHandler(log_handler)

    # 5. Library-specific verbosity
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("lark").setLevel(logging.WARNING)

    if invalid_level is not None:
        root_logger.warning(f"Ignoring invalid log level {invalid_level!r}, using {level}")
    root_logger.debug(f"Logging initialized (format={fmt}, level={level})")
