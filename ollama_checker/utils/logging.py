"""
Logging configuration and utilities.

Every run writes one log file named after its start time. Two business
loggers share that file: ``probe`` for success/error events and ``network``
for raw request/response traces. The console only gets ERROR and above,
since the terminal is used for the progress display.
"""

import logging
import sys
import time
from pathlib import Path
from typing import Optional
from datetime import datetime, timedelta


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

BUSINESS_PREFIX = "business."


class BusinessLogFilter(logging.Filter):
    """Selects (or, with ``exclude``, rejects) records from business loggers."""

    def __init__(self, exclude: bool = False):
        super().__init__()
        self.exclude = exclude

    def filter(self, record: logging.LogRecord) -> bool:
        is_business = record.name.startswith(BUSINESS_PREFIX)
        return not is_business if self.exclude else is_business


def setup_logging(
    log_level: str = "INFO",
    log_dir: str = "logs",
    retention_days: int = 7,
    run_started: Optional[datetime] = None
) -> Path:
    """
    Set up logging for a single checker run.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory that holds the per-run log files
        retention_days: Number of days to retain old log files
        run_started: Timestamp used for the log file name (defaults to now)

    Returns:
        Path of the log file created for this run

    Raises:
        OSError: If the log directory or file cannot be created
    """
    logs_path = Path(log_dir)
    logs_path.mkdir(parents=True, exist_ok=True)

    started = run_started or datetime.now()
    log_file = logs_path / started.strftime("%Y%m%d-%H%M%S.log")

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    # Clear existing handlers
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.ERROR)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    console_handler.addFilter(BusinessLogFilter(exclude=True))
    root_logger.addHandler(console_handler)

    cleanup_old_logs(logs_path, retention_days, keep=log_file)

    return log_file


def shutdown_logging() -> None:
    """Flush, close and detach the root handlers installed by setup_logging()."""
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        handler.flush()
        root_logger.removeHandler(handler)
        handler.close()


def get_logger(name: str) -> logging.Logger:
    """
    Get a module logger.

    Args:
        name: Logger name (typically __name__)
    """
    return logging.getLogger(name)


def get_business_logger(business_name: str) -> logging.Logger:
    """
    Get a business logger by short name.

    Business loggers propagate to the root handlers, so the ``probe`` and
    ``network`` streams end up in the same run file and are told apart by
    logger name.

    Args:
        business_name: Business name ('probe', 'network', 'checker')
    """
    return logging.getLogger(f"{BUSINESS_PREFIX}{business_name}")


def cleanup_old_logs(logs_dir: Path, retention_days: int = 7, keep: Optional[Path] = None) -> int:
    """
    Remove log files older than the retention period.

    Args:
        logs_dir: Log directory
        retention_days: Number of days to keep
        keep: A log file that must survive cleanup (the current run's file)

    Returns:
        Number of files removed
    """
    if not logs_dir.exists():
        return 0

    cleaned_count = 0
    cutoff_date = datetime.now() - timedelta(days=retention_days)

    for log_file in logs_dir.glob("*.log*"):
        if not log_file.is_file() or (keep is not None and log_file == keep):
            continue

        file_mtime = datetime.fromtimestamp(log_file.stat().st_mtime)
        if file_mtime < cutoff_date:
            try:
                log_file.unlink()
                cleaned_count += 1
            except OSError as e:
                logging.getLogger(__name__).warning(f"Failed to remove old log {log_file.name}: {e}")

    if cleaned_count > 0:
        logging.getLogger(__name__).info(f"Removed {cleaned_count} expired log files from {logs_dir}")

    return cleaned_count


def log_business_operation(business_name: str, operation_name: str = None):
    """
    Log when a business operation starts and how it ends.

    Args:
        business_name: Business logger name
        operation_name: Operation name (defaults to the function name)
    """
    def decorator(func):
        def wrapper(*args, **kwargs):
            logger = get_business_logger(business_name)
            op_name = operation_name or func.__name__

            logger.info(f"Starting {op_name}")
            start_time = time.time()

            try:
                result = func(*args, **kwargs)
                duration = time.time() - start_time
                logger.info(f"Finished {op_name} in {duration:.2f}s")
                return result

            except Exception as e:
                duration = time.time() - start_time
                logger.error(f"{op_name} failed after {duration:.2f}s: {e}")
                raise

        wrapper.__name__ = func.__name__
        wrapper.__doc__ = func.__doc__
        return wrapper
    return decorator
