"""
Review Data Models

리뷰 결과 관련 데이터 모델들
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple


NO_CHANGES_MESSAGE = "No changes to review."
NO_ISSUES_MESSAGE = "No issues found."
UNAVAILABLE_MESSAGE = "Analysis unavailable for these files"


class Severity(str, Enum):
    """Severity tag attached to a finding by the analysis service."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Severity":
        """Map a free-form severity string onto the known tags."""
        if isinstance(value, Severity):
            return value
        normalized = (value or "").strip().lower()
        aliases = {
            "error": cls.HIGH,
            "warning": cls.MEDIUM,
            "warn": cls.MEDIUM,
            "minor": cls.LOW,
            "note": cls.INFO,
            "suggestion": cls.INFO,
        }
        for member in cls:
            if member.value == normalized:
                return member
        return aliases.get(normalized, cls.INFO)


@dataclass(frozen=True)
class ReviewFinding:
    """분석 서비스가 보고한 개별 이슈"""
    severity: Severity
    message: str
    file_path: Optional[str] = None
    line: Optional[int] = None
    degraded: bool = False

    def __post_init__(self):
        """데이터 검증"""
        if not isinstance(self.severity, Severity):
            raise ValueError(f"Invalid severity: {self.severity}")
        if not self.message or not self.message.strip():
            raise ValueError("Message cannot be empty")
        if self.line is not None and self.line <= 0:
            raise ValueError("Line numbers must be positive")

    @property
    def is_diff_wide(self) -> bool:
        return self.file_path is None

    @classmethod
    def unavailable(cls, file_paths: List[str]) -> "ReviewFinding":
        """Placeholder for a chunk whose analysis could not be completed."""
        listed = ", ".join(f"`{path}`" for path in file_paths) or "(no files)"
        return cls(
            severity=Severity.INFO,
            message=f"{UNAVAILABLE_MESSAGE}: {listed}",
            degraded=True,
        )

    def render(self) -> str:
        """Markdown bullet for this finding."""
        location = f" (line {self.line})" if self.line is not None else ""
        message = " ".join(self.message.split())
        return f"- **{self.severity.value.upper()}**{location}: {message}"


@dataclass(frozen=True)
class ReportSection:
    """One file (or the diff-wide summary) with its findings."""
    title: str
    file_path: Optional[str]
    findings: Tuple[ReviewFinding, ...] = ()

    def render(self) -> str:
        lines = [f"## {self.title}", ""]
        lines.extend(finding.render() for finding in self.findings)
        return "\n".join(lines)


@dataclass(frozen=True)
class ReviewReport:
    """
    Final Markdown review artifact.

    Sections are already ordered by the assembler; ``render()`` only turns
    them into text and must stay a pure function of the report's fields.
    """
    sections: Tuple[ReportSection, ...] = ()
    files_reviewed: int = 0
    degraded_chunks: int = 0
    empty_diff: bool = False

    @property
    def total_findings(self) -> int:
        return sum(len(section.findings) for section in self.sections)

    @property
    def file_sections(self) -> List[ReportSection]:
        return [s for s in self.sections if s.file_path is not None]

    def render(self) -> str:
        if self.empty_diff:
            return NO_CHANGES_MESSAGE
        if self.total_findings == 0:
            return NO_ISSUES_MESSAGE
        return "\n\n".join(section.render() for section in self.sections)
