"""
ImageForge safety features.

Operator confirmations as an injectable capability, and preflight checks
run before touching the artifact store or invoking external tools.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Protocol

import click
import humanize
import psutil

from imageforge.core.logging import get_logger

logger = get_logger(__name__)


class Confirmation(Protocol):
    """Source of yes/no answers for destructive or irreversible steps."""

    def confirm(self, prompt: str) -> bool: ...


class InteractiveConfirmation:
    """Asks the operator on the terminal; anything but yes means no."""

    def confirm(self, prompt: str) -> bool:
        return click.confirm(prompt, default=False)


class StaticConfirmation:
    """Always gives the same answer; used for ``--yes`` and in tests."""

    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.prompts: list[str] = []

    def confirm(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        logger.debug("Automatic confirmation", prompt=prompt, answer=self.answer)
        return self.answer


@dataclass
class PreflightCheck:
    """Result of a single preflight check."""

    name: str
    passed: bool
    message: str
    severity: str = "info"  # info, warning, error
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class PreflightReport:
    """Complete preflight check report."""

    checks: list[PreflightCheck] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def all_passed(self) -> bool:
        return all(c.passed for c in self.checks)

    @property
    def failed(self) -> list[PreflightCheck]:
        return [c for c in self.checks if not c.passed]


PreflightFunc = Callable[[dict[str, Any]], PreflightCheck]


class PreflightChecker:
    """Performs preflight checks before operations."""

    def __init__(self) -> None:
        self._checks: list[tuple[str, PreflightFunc]] = []

    def add_check(self, name: str, check_func: PreflightFunc) -> None:
        """Add a preflight check function."""
        self._checks.append((name, check_func))

    def run_checks(self, context: dict[str, Any]) -> PreflightReport:
        """Run all preflight checks and return report."""
        report = PreflightReport()
        for name, check_func in self._checks:
            try:
                report.checks.append(check_func(context))
            except OSError as e:
                report.checks.append(
                    PreflightCheck(
                        name=name,
                        passed=False,
                        message=f"Check failed with error: {e}",
                        severity="error",
                    )
                )
        for check in report.failed:
            logger.warning("Preflight check failed", check=check.name, message=check.message)
        return report


def check_tools_installed(context: dict[str, Any]) -> PreflightCheck:
    """Check that every tool in ``context['tools']`` is on PATH."""
    tools: list[str] = context.get("tools", [])
    missing = [tool for tool in tools if shutil.which(tool) is None]
    if missing:
        return PreflightCheck(
            name="Tools",
            passed=False,
            message=f"Missing: {', '.join(missing)}",
            severity="error",
            details={"missing": missing},
        )
    return PreflightCheck(name="Tools", passed=True, message="All required tools found")


def in_container() -> bool:
    """Whether this process runs inside an Apptainer/Singularity container."""
    return any(
        os.environ.get(var) for var in ("APPTAINER_CONTAINER", "SINGULARITY_CONTAINER")
    ) or Path("/.singularity.d").exists()


def check_not_in_container(context: dict[str, Any]) -> PreflightCheck:
    """Refuse to nest containers."""
    if in_container():
        return PreflightCheck(
            name="Container",
            passed=False,
            message="Already inside an Apptainer container",
            severity="error",
        )
    return PreflightCheck(name="Container", passed=True, message="Running on the host")


def check_free_space(context: dict[str, Any]) -> PreflightCheck:
    """Check the filesystem holding ``context['path']`` has room for a build."""
    path = Path(context["path"])
    required = int(context.get("min_free_bytes", 0))
    while not path.exists() and path != path.parent:
        path = path.parent
    free = psutil.disk_usage(str(path)).free
    details = {"free_bytes": free, "required_bytes": required}
    if free < required:
        return PreflightCheck(
            name="Free Space",
            passed=False,
            message=(
                f"Only {humanize.naturalsize(free, binary=True)} free, "
                f"{humanize.naturalsize(required, binary=True)} required"
            ),
            severity="error",
            details=details,
        )
    return PreflightCheck(
        name="Free Space",
        passed=True,
        message=f"{humanize.naturalsize(free, binary=True)} free",
        details=details,
    )
