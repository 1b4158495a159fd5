"""
Tests for logger functionality.
"""

import logging

import pytest
from cronstore.logger import StructuredLogger, get_logger, reset_logger


class TestStructuredLogger:
    """Test structured logging functionality."""

    def test_logger_creation(self):
        """Logger should be created silent by default."""
        logger = StructuredLogger(name="test")

        assert logger.logger.name == "test"
        assert logger.metrics["operations"] == 0
        assert any(isinstance(h, logging.NullHandler) for h in logger.logger.handlers)

    def test_log_methods(self, tmp_path):
        """All log level methods should work."""
        logger = StructuredLogger(name="test", log_dir=tmp_path, enable_file=True)

        # Should not raise exceptions
        logger.debug("Debug message")
        logger.info("Info message")
        logger.warning("Warning message")
        logger.error("Error message")
        logger.critical("Critical message")

    def test_log_with_context(self, tmp_path):
        """Context should be rendered as JSON after the message."""
        logger = StructuredLogger(name="test", log_dir=tmp_path, enable_file=True)

        logger.info("Job saved", job="backup", rows=1)

        content = next(tmp_path.glob("*.log")).read_text()
        assert 'Job saved | Context: {"job": "backup", "rows": 1}' in content

    def test_metrics_tracking(self):
        """Metrics should be tracked correctly."""
        logger = StructuredLogger(name="test")

        logger.record_operation("add")
        logger.record_operation("add")
        logger.record_operation("lock")
        logger.record_failure("add", "QueryError")
        logger.record_lock(True)
        logger.record_lock(False)
        logger.record_lock(False)
        logger.record_skipped_row()

        metrics = logger.get_metrics()

        assert metrics["operations"] == 3
        assert metrics["operations_failed"] == 1
        assert metrics["errors_by_type"]["QueryError"] == 1
        assert metrics["locks_acquired"] == 1
        assert metrics["locks_contended"] == 2
        assert metrics["rows_skipped"] == 1
        assert metrics["operation_counts"]["add"] == {"calls": 2, "failures": 1, "failure_rate": 0.5}
        assert metrics["operation_counts"]["lock"]["failure_rate"] == 0.0

    def test_get_metrics_is_a_snapshot(self):
        """Mutating the snapshot must not change the live counters."""
        logger = StructuredLogger(name="test")
        logger.record_operation("add")

        snapshot = logger.get_metrics()
        snapshot["operation_counts"]["add"]["calls"] = 100

        assert logger.metrics["operation_counts"]["add"]["calls"] == 1
        assert "failure_rate" not in logger.metrics["operation_counts"]["add"]

    def test_failure_rate_calculation(self):
        logger = StructuredLogger(name="test")

        for _ in range(3):
            logger.record_operation("history")
        logger.record_failure("history", "SerializationError")

        rate = logger.get_metrics()["operation_counts"]["history"]["failure_rate"]
        assert rate == pytest.approx(0.333, rel=0.01)

    def test_log_file_creation(self, tmp_path):
        """Log file should be created in specified directory."""
        logger = StructuredLogger(name="test", log_dir=tmp_path, enable_file=True)

        logger.info("Test message")

        log_files = list(tmp_path.glob("cronstore_*.log"))
        assert len(log_files) == 1
        assert "Test message" in log_files[0].read_text()

    def test_metrics_summary(self, tmp_path):
        logger = StructuredLogger(name="test", log_dir=tmp_path, enable_file=True)
        logger.record_operation("lock")
        logger.record_lock(True)

        logger.log_metrics_summary()

        content = next(tmp_path.glob("*.log")).read_text()
        assert "Operations: 1 (0 failed)" in content
        assert "Locks: 1 acquired, 0 contended" in content


class TestGlobalLogger:
    """Test global logger singleton."""

    def test_get_logger_singleton(self):
        """get_logger should return same instance."""
        reset_logger()

        logger1 = get_logger()
        logger2 = get_logger()

        assert logger1 is logger2

    def test_reset_logger(self):
        """reset_logger should create new instance."""
        reset_logger()

        logger1 = get_logger()
        logger1.record_operation("add")

        reset_logger()

        logger2 = get_logger()

        assert logger2 is not logger1
        assert logger2.metrics["operations"] == 0
        reset_logger()
