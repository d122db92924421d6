"""
Data Quality Core
=================
Check results and the report that accumulates them.
"""

from dataclasses import asdict, dataclass, field

PASS = "PASS"
WARN = "WARN"
FAIL = "FAIL"

# A check this many points under its threshold still only warns
WARN_MARGIN = 15


def check_status(passed: int, total: int, threshold: int = 100) -> tuple[str, float]:
    """Status and pass percentage. An empty check passes."""
    if total == 0:
        return PASS, 100.0

    pct = passed / total * 100
    if pct >= threshold:
        return PASS, pct
    if pct >= threshold - WARN_MARGIN:
        return WARN, pct
    return FAIL, pct


@dataclass(frozen=True)
class DQCheck:
    category: str
    check: str
    status: str
    passed: int
    total: int
    percentage: str
    message: str = ""


@dataclass
class DQReport:
    """Data quality report accumulator."""

    checks: list = field(default_factory=list)
    statistics: list = field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for c in self.checks if c.status == PASS)

    @property
    def failed(self) -> int:
        return sum(1 for c in self.checks if c.status == FAIL)

    @property
    def warnings(self) -> int:
        return sum(1 for c in self.checks if c.status == WARN)

    @property
    def total(self) -> int:
        return len(self.checks)

    def failed_checks(self) -> list[DQCheck]:
        return [c for c in self.checks if c.status == FAIL]

    def summary(self) -> dict:
        return {
            "total_checks": self.total,
            "passed": self.passed,
            "warnings": self.warnings,
            "failed": self.failed,
            "checks": [asdict(c) for c in self.checks],
            "statistics": self.statistics,
        }


def add_check(
    report: DQReport,
    category: str,
    check_name: str,
    passed: int,
    total: int,
    message: str = "",
    threshold: int = 100,
) -> DQCheck:
    """
    Record a DQ check result.

    Args:
        report: DQReport to add check to
        category: Check category (e.g., 'SCD2')
        check_name: Name of the check
        passed: Number of records that passed
        total: Total number of records checked
        message: Optional message
        threshold: Pass threshold percentage (default 100)

    Returns:
        The recorded DQCheck
    """
    status, pct = check_status(passed, total, threshold)
    check = DQCheck(
        category=category,
        check=check_name,
        status=status,
        passed=passed,
        total=total,
        percentage=f"{pct:.1f}%",
        message=message,
    )
    report.checks.append(check)
    return check


def add_stat(
    report: DQReport,
    category: str,
    metric: str,
    value: str,
    description: str = "",
) -> None:
    """Record a statistic (informational, no pass/fail)."""
    report.statistics.append(
        {
            "category": category,
            "metric": metric,
            "value": value,
            "description": description,
        }
    )
