"""
Tests for logging setup.
"""

import logging
import os
import time
from datetime import datetime

import pytest

from ollama_checker.utils.logging import (
    setup_logging, cleanup_old_logs, get_business_logger, log_business_operation, BusinessLogFilter
)


def test_log_file_named_after_run_start(tmp_path, restore_root_logger):
    log_file = setup_logging("INFO", str(tmp_path / "logs"), run_started=datetime(2024, 3, 9, 14, 5, 7))

    assert log_file == tmp_path / "logs" / "20240309-140507.log"
    assert log_file.exists()


def test_business_records_reach_file_only(tmp_path, restore_root_logger):
    log_file = setup_logging("DEBUG", str(tmp_path))
    probe_logger = get_business_logger("probe")
    level = probe_logger.level
    probe_logger.setLevel(logging.DEBUG)
    try:
        probe_logger.error("[ERROR] Network error: http://a (refused)")
    finally:
        probe_logger.setLevel(level)

    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "business.probe" in log_file.read_text(encoding="utf-8")

    console = [h for h in logging.getLogger().handlers if not isinstance(h, logging.FileHandler)][0]
    record = logging.LogRecord("business.probe", logging.ERROR, __file__, 1, "x", None, None)
    assert not console.filter(record)


def test_business_filter_modes():
    business = logging.LogRecord("business.network", logging.DEBUG, __file__, 1, "x", None, None)
    plain = logging.LogRecord("ollama_checker.main", logging.DEBUG, __file__, 1, "x", None, None)

    assert BusinessLogFilter().filter(business)
    assert not BusinessLogFilter().filter(plain)
    assert BusinessLogFilter(exclude=True).filter(plain)


def test_cleanup_removes_expired_files_only(tmp_path):
    old = tmp_path / "20200101-000000.log"
    fresh = tmp_path / "20991231-000000.log"
    current = tmp_path / "current.log"
    for path in (old, fresh, current):
        path.write_text("x")
    ten_days_ago = time.time() - 10 * 86400
    os.utime(old, (ten_days_ago, ten_days_ago))
    os.utime(current, (ten_days_ago, ten_days_ago))

    removed = cleanup_old_logs(tmp_path, retention_days=7, keep=current)

    assert removed == 1
    assert not old.exists()
    assert fresh.exists()
    assert current.exists()


def test_business_operation_decorator_reraises():
    @log_business_operation("checker", "exploding op")
    def explode():
        """Docstring survives."""
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        explode()
    assert explode.__doc__ == "Docstring survives."
