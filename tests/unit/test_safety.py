"""
Tests for imageforge.core.safety module.
"""

from collections import namedtuple
from pathlib import Path

import pytest

from imageforge.core import safety
from imageforge.core.safety import (
    InteractiveConfirmation,
    PreflightCheck,
    PreflightChecker,
    PreflightReport,
    StaticConfirmation,
    check_free_space,
    check_not_in_container,
    check_tools_installed,
    in_container,
)


class TestConfirmation:
    """Tests for the confirmation sources."""

    def test_static_records_prompts(self) -> None:
        confirmation = StaticConfirmation(False)
        assert confirmation.confirm("Proceed?") is False
        assert confirmation.prompts == ["Proceed?"]

    def test_interactive_defaults_to_no(self, mocker) -> None:
        confirm = mocker.patch("imageforge.core.safety.click.confirm", return_value=False)
        assert InteractiveConfirmation().confirm("Proceed?") is False
        confirm.assert_called_once_with("Proceed?", default=False)


class TestPreflightReport:
    """Tests for PreflightReport."""

    def test_all_passed(self) -> None:
        report = PreflightReport(
            checks=[
                PreflightCheck(name="Check 1", passed=True, message="OK"),
                PreflightCheck(name="Check 2", passed=True, message="OK"),
            ]
        )
        assert report.all_passed is True

    def test_failed_checks(self) -> None:
        report = PreflightReport(
            checks=[
                PreflightCheck(name="Check 1", passed=True, message="OK"),
                PreflightCheck(name="Check 2", passed=False, message="Bad", severity="error"),
            ]
        )
        assert report.all_passed is False
        assert [c.name for c in report.failed] == ["Check 2"]


class TestPreflightChecker:
    """Tests for PreflightChecker."""

    def test_run_checks(self) -> None:
        checker = PreflightChecker()
        checker.add_check("Tools", check_tools_installed)
        report = checker.run_checks({"tools": ["sh"]})
        assert report.all_passed

    def test_os_error_becomes_failed_check(self) -> None:
        def broken(context):
            raise OSError("disk on fire")

        checker = PreflightChecker()
        checker.add_check("Broken", broken)
        report = checker.run_checks({})

        assert report.failed[0].severity == "error"
        assert "disk on fire" in report.checks[0].message


class TestChecks:
    def test_missing_tool(self) -> None:
        check = check_tools_installed({"tools": ["sh", "imageforge-no-such-tool"]})
        assert not check.passed
        assert check.details["missing"] == ["imageforge-no-such-tool"]

    def test_free_space_walks_up_to_existing_parent(self, temp_dir: Path) -> None:
        check = check_free_space({"path": temp_dir / "not" / "yet", "min_free_bytes": 0})
        assert check.passed
        assert check.details["free_bytes"] >= 0

    def test_insufficient_free_space(self, temp_dir: Path, mocker) -> None:
        usage = namedtuple("usage", "total used free percent")
        mocker.patch(
            "imageforge.core.safety.psutil.disk_usage",
            return_value=usage(100, 99, 1024, 99.0),
        )
        check = check_free_space({"path": temp_dir, "min_free_bytes": 10 * 1024**3})
        assert not check.passed
        assert check.severity == "error"
        assert "required" in check.message


class TestInContainer:
    @pytest.mark.parametrize("variable", ["APPTAINER_CONTAINER", "SINGULARITY_CONTAINER"])
    def test_environment_marker(self, monkeypatch, variable: str) -> None:
        monkeypatch.setenv(variable, "/images/image.sif")
        assert in_container() is True
        assert check_not_in_container({}).passed is False

    def test_host(self, monkeypatch, mocker) -> None:
        monkeypatch.delenv("APPTAINER_CONTAINER", raising=False)
        monkeypatch.delenv("SINGULARITY_CONTAINER", raising=False)
        mocker.patch.object(safety.Path, "exists", return_value=False)
        assert in_container() is False
        assert check_not_in_container({}).passed is True
