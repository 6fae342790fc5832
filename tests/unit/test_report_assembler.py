"""
Unit tests for report assembly and the report artifact.
"""

import pytest

from autocodereview.diff.parser import UnifiedDiffParser
from autocodereview.exceptions import ReportError
from autocodereview.models.diff import DiffDocument
from autocodereview.models.review import (
    NO_CHANGES_MESSAGE,
    NO_ISSUES_MESSAGE,
    ReviewFinding,
    Severity,
)
from autocodereview.report.assembler import ReportAssembler, wrap_report, write_report


class TestReportAssembler:
    """Unit tests for ReportAssembler class."""

    def setup_method(self):
        self.assembler = ReportAssembler()

    def test_two_files_two_sections_in_diff_order(self, two_file_diff):
        document = UnifiedDiffParser().parse(two_file_diff)
        findings = [
            ReviewFinding(Severity.LOW, "Remove debug flag", "b.py", 4),
            ReviewFinding(Severity.HIGH, "Unused import sys", "a.py", 2),
        ]

        report = self.assembler.assemble(findings, document)

        assert [s.title for s in report.sections] == ["`a.py`", "`b.py`"]
        assert report.files_reviewed == 2
        assert report.render() == (
            "## `a.py`\n"
            "\n"
            "- **HIGH** (line 2): Unused import sys\n"
            "\n"
            "## `b.py`\n"
            "\n"
            "- **LOW** (line 4): Remove debug flag"
        )

    def test_findings_sorted_by_line_within_file(self, two_file_diff):
        document = UnifiedDiffParser().parse(two_file_diff)
        findings = [
            ReviewFinding(Severity.INFO, "file-wide", "a.py"),
            ReviewFinding(Severity.LOW, "late", "a.py", 9),
            ReviewFinding(Severity.LOW, "early", "a.py", 1),
            ReviewFinding(Severity.HIGH, "also early", "a.py", 1),
        ]

        section = self.assembler.assemble(findings, document).sections[0]

        assert [f.message for f in section.findings] == ["early", "also early", "late", "file-wide"]

    def test_diff_wide_and_degraded_notes_go_to_summary(self, two_file_diff):
        document = UnifiedDiffParser().parse(two_file_diff)
        findings = [
            ReviewFinding(Severity.LOW, "nit", "b.py", 3),
            ReviewFinding.unavailable(["a.py"]),
            ReviewFinding(Severity.MEDIUM, "No tests were added"),
        ]

        report = self.assembler.assemble(findings, document)

        assert report.sections[0].title == "Summary"
        assert report.sections[0].file_path is None
        assert len(report.sections[0].findings) == 2
        assert report.degraded_chunks == 1
        assert report.render().startswith("## Summary\n\n- **INFO**: Analysis unavailable")

    def test_paths_outside_diff_come_last(self, two_file_diff):
        document = UnifiedDiffParser().parse(two_file_diff)
        findings = [
            ReviewFinding(Severity.LOW, "elsewhere", "z.py", 1),
            ReviewFinding(Severity.LOW, "here", "b.py", 1),
        ]

        report = self.assembler.assemble(findings, document)

        assert [s.file_path for s in report.sections] == ["b.py", "z.py"]

    def test_no_findings(self, two_file_diff):
        report = self.assembler.assemble([], UnifiedDiffParser().parse(two_file_diff))

        assert report.render() == NO_ISSUES_MESSAGE

    def test_empty_diff(self):
        report = self.assembler.assemble([], DiffDocument())

        assert report.empty_diff
        assert report.render() == NO_CHANGES_MESSAGE

    def test_assembly_is_deterministic(self, two_file_diff):
        document = UnifiedDiffParser().parse(two_file_diff)
        findings = [
            ReviewFinding(Severity.LOW, "x", "b.py", 2),
            ReviewFinding(Severity.LOW, "y", "a.py", 5),
            ReviewFinding(Severity.LOW, "z"),
        ]

        renders = {self.assembler.assemble(list(findings), document).render() for _ in range(5)}

        assert len(renders) == 1


class TestWriteReport:
    """Unit tests for the report artifact."""

    def test_wrap_report(self):
        assert wrap_report(NO_ISSUES_MESSAGE) == "# AutoCodeReview Report\n\nNo issues found.\n"

    def test_write_creates_parent_directories(self, tmp_path):
        report = ReportAssembler().assemble([], DiffDocument())
        target = tmp_path / "out" / "review.md"

        path = write_report(report, target)

        assert path == target
        assert target.read_text(encoding="utf-8") == "# AutoCodeReview Report\n\nNo changes to review.\n"

    def test_unwritable_path_raises_report_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory")
        report = ReportAssembler().assemble([], DiffDocument())

        with pytest.raises(ReportError):
            write_report(report, blocker / "review.md")
