"""Tests for the logging utility module."""

import logging

import pytest
import structlog


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_configure_logging_default(self):
        """Test configure_logging with defaults."""
        from taskweave.utils.logging import configure_logging

        # Should not raise
        configure_logging()

    def test_configure_logging_json_format(self):
        """Test configure_logging with JSON output and no timestamps."""
        from taskweave.utils.logging import configure_logging

        configure_logging(level="DEBUG", json_format=True, include_timestamp=False)

    def test_configure_logging_invalid_level(self):
        """Unknown level names are rejected."""
        from taskweave.utils.logging import configure_logging

        with pytest.raises(AttributeError):
            configure_logging(level="CHATTY")


class TestSdkLoggers:
    """Tests for vendor logger levels."""

    def test_sdk_loggers_quieted_at_info(self):
        """HTTP and SDK loggers only report warnings at INFO."""
        from taskweave.utils.logging import configure_logging

        configure_logging(level="INFO")

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("openai").level == logging.WARNING

    def test_sdk_loggers_follow_debug(self):
        """DEBUG also enables SDK debug output."""
        from taskweave.utils.logging import configure_logging

        configure_logging(level="DEBUG")

        assert logging.getLogger("anthropic").level == logging.DEBUG


class TestLogContext:
    """Tests for LogContext."""

    def test_binds_and_unbinds(self):
        """Context variables are visible only inside the block."""
        from taskweave.utils.logging import LogContext

        with LogContext(workflow_id="wf_123"):
            assert structlog.contextvars.get_contextvars()["workflow_id"] == "wf_123"

        assert "workflow_id" not in structlog.contextvars.get_contextvars()


class TestLogOperation:
    """Tests for log_operation."""

    def test_success(self):
        """Successful operations are marked as such."""
        from taskweave.utils.logging import log_operation

        with log_operation("execute_workflow", tasks=2) as op:
            op["results"] = 2

        assert op["success"] is True
        assert op["results"] == 2
        assert op["duration_seconds"] >= 0

    def test_failure_propagates(self):
        """Errors are recorded and re-raised."""
        from taskweave.utils.logging import log_operation

        with pytest.raises(ValueError):
            with log_operation("decompose_goal") as op:
                raise ValueError("bad plan")

        assert op["success"] is False
        assert op["error"] == "bad plan"
