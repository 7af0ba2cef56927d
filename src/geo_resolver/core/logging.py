"""Loguru logging configuration.

Console output is human-readable unless ``json_logs`` is set.  Records bound
with ``json_output=True`` (batch summaries, cleanup counts) are additionally
emitted as JSON so log shippers can pick them up.  A rotating, compressed log
file is written when ``log_dir`` is provided.
"""

import sys
from pathlib import Path

from loguru import logger

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}"
_LOG_FILE_NAME = "geo-resolver.log"


def setup_logging(log_level: str = "INFO", log_dir: str | None = None, *, json_logs: bool = False) -> None:
    """Configure Loguru sinks.

    Args:
        log_level: Minimum log level to emit (case-insensitive).
        log_dir: Optional directory for log files.  When set, a file sink is
            added that rotates every 24 hours, keeps 7 days and zips old files.
        json_logs: Serialize every console record as JSON.
    """
    level = log_level.upper()
    logger.remove()

    if json_logs:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(sys.stderr, level=level, format=_LOG_FORMAT)
        logger.add(
            sys.stderr,
            level=level,
            serialize=True,
            filter=lambda record: record["extra"].get("json_output", False),
        )

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path / _LOG_FILE_NAME,
            level=level,
            format=_LOG_FORMAT,
            rotation="24h",
            retention="7 days",
            compression="zip",
        )

    logger.debug("Logging configured: level={}, log_dir={}", level, log_dir)
