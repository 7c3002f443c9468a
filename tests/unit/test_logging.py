"""
Tests for imageforge.core.logging module.
"""

import pytest
from structlog.testing import capture_logs

from imageforge.core.logging import OperationLogger, get_logger


class TestOperationLogger:
    """Tests for OperationLogger."""

    def test_completed(self) -> None:
        with capture_logs() as logs:
            with OperationLogger("image build", get_logger("tests"), image="image.sif"):
                pass

        assert [e["event"] for e in logs] == ["Starting image build", "Completed image build"]
        assert logs[1]["image"] == "image.sif"
        assert logs[1]["operation"] == "image build"
        assert "duration_seconds" in logs[1]

    def test_failure_is_logged_and_propagated(self) -> None:
        with capture_logs() as logs, pytest.raises(ValueError):
            with OperationLogger("upload transfer", get_logger("tests")):
                raise ValueError("scp failed")

        assert logs[-1]["log_level"] == "error"
        assert logs[-1]["error_type"] == "ValueError"
        assert logs[-1]["error"] == "scp failed"
