"""Loguru-based logging configuration.

Provides:
- Colorized console output on stderr
- A rotating log file
- Intercept handler for standard logging compatibility (httpx, uvicorn)

Environment Variables:
- MODEL_PROBER_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR). Default: INFO
- MODEL_PROBER_LOG_DIR: Log directory path. Default: logs/
"""

import logging
import os
import sys
from pathlib import Path

from loguru import logger

# Environment variables
LOG_LEVEL = os.environ.get("MODEL_PROBER_LOG_LEVEL", "INFO").upper()
LOG_DIR = Path(os.environ.get("MODEL_PROBER_LOG_DIR", "logs"))

LOG_FILE_NAME = "model-prober.log"

# Track if logging has been configured to avoid duplicate setup
_logging_configured = False


def setup_logging() -> None:
    """Configure Loguru with a console sink and a rotating file sink.

    The file is rotated at 10 MB and retained for 7 days.
    """
    global _logging_configured
    if _logging_configured:
        return
    _logging_configured = True

    LOG_DIR.mkdir(parents=True, exist_ok=True)

    # Remove default handler
    logger.remove()

    logger.add(
        sys.stderr,
        level=LOG_LEVEL,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
    )

    logger.add(
        LOG_DIR / LOG_FILE_NAME,
        level=LOG_LEVEL,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        rotation="10 MB",
        retention="7 days",
    )


def _stderr_sink(message: str) -> None:
    # Resolve sys.stderr per call so redirected streams are honoured
    sys.stderr.write(message)


def configure_cli_logging(verbose: bool = False) -> None:
    """Console-only logging for CLI commands.

    Only warnings and errors are shown unless ``verbose`` is set.
    """
    logger.remove()
    logger.add(
        _stderr_sink,
        level="DEBUG" if verbose else "WARNING",
        format="<level>{level: <8}</level> | <level>{message}</level>",
        colorize=False,
    )


class InterceptHandler(logging.Handler):
    """Intercept standard logging and redirect to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a log record by forwarding to Loguru."""
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = str(record.levelno)

        # Find caller from where the logged message originated
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def intercept_standard_logging() -> None:
    """Redirect all standard logging to Loguru."""
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    # Suppress noisy third-party loggers
    for name in ["httpx", "httpcore", "uvicorn.access"]:
        logging.getLogger(name).setLevel(logging.WARNING)
