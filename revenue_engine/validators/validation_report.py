"""Issues found while reading billing inputs and checking a month.

Every issue is located by where it came from: the input (``source``) and
spreadsheet row for reader issues, the canonical project and month for
billing-rule issues.
"""

import dataclasses
import datetime as dt
from collections import Counter
from enum import IntEnum
from typing import Any, Dict, List, Optional, Union

from revenue_engine.calculators.month_utils import format_month


class ValidationSeverity(IntEnum):
    """Severity levels for validation issues."""

    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclasses.dataclass(frozen=True)
class ValidationIssue:
    """A single validation issue.

    Attributes:
        severity: The severity level of the issue
        field: Column or attribute the issue is about
        message: Human-readable description of the issue
        value: The offending value
        source: Input the issue was read from (entries, overrides, catalog)
        row: Spreadsheet row number (header is row 1)
        project_id: Project the issue concerns
        month: Billing month as YYYY-MM

    Issues compare equal when they say the same thing about the same
    project-month, whichever input row they were found on.
    """

    severity: ValidationSeverity
    field: str
    message: str
    value: Any
    source: Optional[str] = dataclasses.field(default=None, compare=False)
    row: Optional[int] = dataclasses.field(default=None, compare=False)
    project_id: Optional[str] = None
    month: Optional[str] = None

    @property
    def location(self) -> str:
        """Where the issue is, e.g. ``"entries row 4"`` or ``"P-1 2026-01"``."""
        parts = []
        if self.row is not None:
            prefix = f"{self.source} " if self.source else ""
            parts.append(f"{prefix}row {self.row}")
        elif self.source:
            parts.append(self.source)
        parts.extend(p for p in (self.project_id, self.month) if p)
        return ", ".join(parts)

    def __str__(self) -> str:
        location = f" ({self.location})" if self.location else ""
        return f"[{self.severity.name}] {self.field}: {self.message}{location}"


class ValidationReport:
    """Collects validation issues from readers and rule checks.

    A report is valid while it holds no errors; warnings and info messages
    are informational. Readers reject rows with errors and keep going, so
    one bad row never hides the others.

    Args:
        source: Input name stamped on every issue added to this report

    Example:
        >>> report = ValidationReport(source="entries")
        >>> report.add_error("total_minutes", "Must be non-negative", -5, row=3)
        >>> report.add_warning("project_id", "Unknown project", "P-9", month="2026-01")
        >>> report.summary()
        '1 error(s), 1 warning(s)'
        >>> str(report.get_errors()[0])
        '[ERROR] total_minutes: Must be non-negative (entries row 3)'
    """

    def __init__(self, source: Optional[str] = None) -> None:
        self.source = source
        self.issues: List[ValidationIssue] = []

    def _count(self, severity: ValidationSeverity) -> int:
        return sum(1 for issue in self.issues if issue.severity == severity)

    @property
    def error_count(self) -> int:
        return self._count(ValidationSeverity.ERROR)

    @property
    def warning_count(self) -> int:
        return self._count(ValidationSeverity.WARNING)

    @property
    def info_count(self) -> int:
        return self._count(ValidationSeverity.INFO)

    def is_valid(self) -> bool:
        """True when the report has no errors."""
        return self.error_count == 0

    def has_errors(self) -> bool:
        return self.error_count > 0

    def add_issue(
        self,
        severity: ValidationSeverity,
        field: str,
        message: str,
        value: Any,
        row: Optional[int] = None,
        project_id: Optional[str] = None,
        month: Union[str, dt.date, None] = None,
    ) -> None:
        self.issues.append(
            ValidationIssue(
                severity=severity,
                field=field,
                message=message,
                value=value,
                source=self.source,
                row=row,
                project_id=project_id,
                month=format_month(month) if month is not None else None,
            )
        )

    def add_error(self, field: str, message: str, value: Any, **location) -> None:
        self.add_issue(ValidationSeverity.ERROR, field, message, value, **location)

    def add_warning(self, field: str, message: str, value: Any, **location) -> None:
        self.add_issue(ValidationSeverity.WARNING, field, message, value, **location)

    def add_info(self, field: str, message: str, value: Any, **location) -> None:
        self.add_issue(ValidationSeverity.INFO, field, message, value, **location)

    def get_issues(self, severity: ValidationSeverity) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == severity]

    def get_errors(self) -> List[ValidationIssue]:
        return self.get_issues(ValidationSeverity.ERROR)

    def get_warnings(self) -> List[ValidationIssue]:
        return self.get_issues(ValidationSeverity.WARNING)

    def rejected_rows(self) -> List[int]:
        """Rows with at least one error, in order; a row counts once."""
        return sorted(
            {issue.row for issue in self.get_errors() if issue.row is not None}
        )

    def issues_for_project(self, project_id: str) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.project_id == project_id]

    def count_by_project(self) -> Dict[str, int]:
        """Number of issues per project, for issues located on a project."""
        return dict(
            Counter(issue.project_id for issue in self.issues if issue.project_id)
        )

    def merge(self, other: "ValidationReport", skip_duplicates: bool = False) -> None:
        """Append another report's issues, keeping their sources.

        Args:
            other: Report to take the issues from
            skip_duplicates: Leave out issues equal to one already present
        """
        for issue in other.issues:
            if skip_duplicates and issue in self.issues:
                continue
            self.issues.append(issue)

    def summary(self) -> str:
        """Counts of errors, warnings and info messages.

        Returns:
            Summary such as "2 error(s), 1 warning(s)", or "No issues found"
        """
        parts = []
        if self.error_count:
            parts.append(f"{self.error_count} error(s)")
        if self.warning_count:
            parts.append(f"{self.warning_count} warning(s)")
        if self.info_count:
            parts.append(f"{self.info_count} info message(s)")
        return ", ".join(parts) if parts else "No issues found"

    def format(self, max_issues: Optional[int] = None) -> str:
        """Format the report for display, errors first.

        Args:
            max_issues: Show at most this many issues per severity
        """
        if not self.issues:
            return "Validation successful - no issues found"

        lines = [f"Validation Report - {self.summary()}", "=" * 60]
        for severity in sorted(ValidationSeverity, reverse=True):
            issues = self.get_issues(severity)
            if not issues:
                continue
            lines.append(f"\n{severity.name}:")
            shown = issues if max_issues is None else issues[:max_issues]
            lines.extend(f"  - {issue}" for issue in shown)
            if len(shown) < len(issues):
                lines.append(f"  ... and {len(issues) - len(shown)} more")

        return "\n".join(lines)
