"""
Logging setup for evokit runs.

The library only emits records through loguru; applications call
`setup_logger` once to get a console sink and, optionally, a rotating file
sink for long evolutions.
"""

from datetime import datetime, timezone
import os
import sys
from typing import Iterable, Optional

from loguru import logger

PLAIN_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"
COLOR_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<blue>{function}</blue>:<yellow>{line}</yellow> | "
    "<level>{message}</level>"
)


def _module_filter(quiet_modules: Iterable[str], quiet_level: str):
    """Raise the threshold of records coming from `quiet_modules`."""
    prefixes = tuple(quiet_modules)
    threshold = logger.level(quiet_level).no

    def accept(record) -> bool:
        if record["name"] and record["name"].startswith(prefixes):
            return record["level"].no >= threshold
        return True

    return accept


def setup_logger(
    log_dir: Optional[str] = "logs",
    level: str = "INFO",
    rotation: str = "50 MB",
    retention: str = "30 days",
    enable_colors: bool = True,
    quiet_modules: Iterable[str] = (),
    quiet_level: str = "WARNING",
) -> Optional[str]:
    """
    Configure console and file logging.

    Args:
        log_dir: Directory for log files; None logs to the console only
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        rotation: Log rotation policy (e.g., "50 MB", "1 day")
        retention: Log retention policy (e.g., "30 days", "1 month")
        enable_colors: Whether to color console output (only on a TTY)
        quiet_modules: Module prefixes (e.g. "evokit.evolution.engine.core")
            whose records below `quiet_level` are dropped from both sinks
        quiet_level: Minimum level for records of `quiet_modules`

    Returns:
        Path to the log file, or None without a file sink
    """
    quiet_modules = tuple(quiet_modules)
    record_filter = _module_filter(quiet_modules, quiet_level)

    # Drop previously installed sinks so repeated calls don't duplicate output
    logger.remove()

    colorize = enable_colors and sys.stderr.isatty()
    logger.add(
        sys.stderr,
        level=level,
        format=COLOR_FORMAT if colorize else PLAIN_FORMAT,
        colorize=colorize,
        filter=record_filter,
        backtrace=True,
        diagnose=False,
    )

    log_file = None
    if log_dir is not None:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        log_file = os.path.join(log_dir, f"evokit_{timestamp}.log")
        # enqueue: engine stages log from executor threads
        logger.add(
            log_file,
            level=level,
            format=PLAIN_FORMAT,
            filter=record_filter,
            rotation=rotation,
            retention=retention,
            compression="zip",
            encoding="utf-8",
            backtrace=True,
            diagnose=False,
            enqueue=True,
        )

    logger.info("[Logger] logging to console{}", f" and {log_file}" if log_file else "")
    logger.debug("[Logger] level: {}, colors: {}, quiet: {}", level, colorize, list(quiet_modules))
    return log_file
