"""
Logging setup for the RAA verifier.

One root configuration for the whole process: a rotating system.log under
VERIFIER_LOG_DIR (default logs/verifier) plus a compact stdout stream for
container logs. uvicorn's own loggers are routed through the same handlers.

Usage:
    from libs.core.logging_config import setup_logging, get_logger

    setup_logging(level="DEBUG")      # once, from the lifespan
    logger = get_logger(__name__)

Tail a running instance:
    tail -f logs/verifier/system.log
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

# =============================================================================
# Configuration
# =============================================================================

LOG_DIR = Path(os.getenv("VERIFIER_LOG_DIR", "logs/verifier"))
SYSTEM_LOG_FILE = LOG_DIR / "system.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB per file
BACKUP_COUNT = 5

DEFAULT_LOG_LEVEL = "INFO"

FILE_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)-40s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-5s | %(message)s"
CONSOLE_DATE_FORMAT = "%H:%M:%S"

# Third-party loggers that only matter when something is already wrong
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "playwright")

# uvicorn installs its own handlers; these are re-pointed at the root
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

_configured = False


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL)).upper()
    return getattr(logging, name, logging.INFO)


def _file_handler(log_level: int) -> RotatingFileHandler:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        SYSTEM_LOG_FILE,
        maxBytes=MAX_LOG_SIZE,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, FILE_DATE_FORMAT))
    return handler


def _console_handler(log_level: int) -> logging.StreamHandler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, CONSOLE_DATE_FORMAT))
    return handler


def setup_logging(
    level: Optional[str] = None,
    log_to_console: bool = True,
    log_to_file: bool = True,
    service_name: str = "verifier",
) -> None:
    """
    Install the process-wide handlers. Later calls are no-ops.

    Args:
        level: DEBUG/INFO/WARNING/ERROR; falls back to LOG_LEVEL, then INFO
        log_to_console: Stream to stdout
        log_to_file: Write the rotating system.log
        service_name: Logger used for the startup banner
    """
    global _configured
    if _configured:
        return

    log_level = _resolve_level(level)
    handlers: List[logging.Handler] = []
    if log_to_file:
        handlers.append(_file_handler(log_level))
    if log_to_console:
        handlers.append(_console_handler(log_level))

    root = logging.getLogger()
    root.setLevel(log_level)
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    for handler in handlers:
        root.addHandler(handler)

    for name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True

    banner = logging.getLogger(service_name)
    banner.info(f"Logging ready for {service_name} at {logging.getLevelName(log_level)}")
    if log_to_file:
        banner.info(f"Log file: {SYSTEM_LOG_FILE.absolute()}")


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass __name__."""
    return logging.getLogger(name)


# =============================================================================
# Request log lines
# =============================================================================


def log_request_start(logger: logging.Logger, trace_id: str, code: str, client_key: str):
    """Log the start of a verification request with standard format."""
    logger.info(f"[{trace_id}] REQUEST START | code={code[:40]} | client={client_key}")


def log_request_end(logger: logging.Logger, trace_id: str, status: str, elapsed_ms: float):
    """Log the end of a verification request with standard format."""
    logger.info(f"[{trace_id}] REQUEST END | {status} | elapsed={elapsed_ms:.0f}ms")
