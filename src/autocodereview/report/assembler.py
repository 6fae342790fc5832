"""
Report Assembler

Groups review findings into file sections and renders the Markdown report
that is written to disk and posted on the pull request.
"""

import logging
from pathlib import Path
from typing import Dict, List, Sequence, Union

from ..exceptions import ReportError
from ..models.diff import DiffDocument
from ..models.review import ReportSection, ReviewFinding, ReviewReport


logger = logging.getLogger(__name__)

REPORT_TITLE = "AutoCodeReview Report"
SUMMARY_TITLE = "Summary"


def wrap_report(body: str) -> str:
    """Apply the fixed comment template to a rendered report body."""
    return f"# {REPORT_TITLE}\n\n{body}\n"


class ReportAssembler:
    """
    Builds a ReviewReport from findings.

    Section order: diff-wide summary first, then files in the order they
    appear in the diff, then any paths the service mentioned that are not in
    the diff (in the order the findings first name them).
    """

    def assemble(self, findings: Sequence[ReviewFinding], document: DiffDocument) -> ReviewReport:
        """
        Group and order findings.

        Args:
            findings: Findings in service order
            document: Diff the findings refer to

        Returns:
            ReviewReport ready for rendering
        """
        if document.is_empty:
            logger.info("Empty diff, assembling 'no changes' report")
            return ReviewReport(empty_diff=True)

        summary: List[ReviewFinding] = []
        by_file: Dict[str, List[ReviewFinding]] = {}
        extra_paths: List[str] = []
        diff_paths = document.file_paths

        for finding in findings:
            if finding.is_diff_wide:
                summary.append(finding)
                continue
            if finding.file_path not in by_file:
                by_file[finding.file_path] = []
                if finding.file_path not in diff_paths:
                    extra_paths.append(finding.file_path)
            by_file[finding.file_path].append(finding)

        sections: List[ReportSection] = []
        if summary:
            sections.append(ReportSection(title=SUMMARY_TITLE, file_path=None, findings=tuple(summary)))

        for path in [p for p in diff_paths if p in by_file] + extra_paths:
            sections.append(ReportSection(
                title=f"`{path}`",
                file_path=path,
                findings=tuple(self._order_findings(by_file[path])),
            ))

        if extra_paths:
            logger.warning(f"Findings reference files outside the diff: {', '.join(extra_paths)}")

        report = ReviewReport(
            sections=tuple(sections),
            files_reviewed=len(document.files),
            degraded_chunks=sum(1 for f in findings if f.degraded),
        )
        logger.info(
            f"Assembled report: {len(report.file_sections)} files with findings, "
            f"{report.total_findings} findings"
        )
        return report

    def _order_findings(self, findings: List[ReviewFinding]) -> List[ReviewFinding]:
        # Stable: equal keys keep service order.
        return sorted(
            findings,
            key=lambda f: (f.line is None, f.line if f.line is not None else 0),
        )


def write_report(report: ReviewReport, path: Union[str, Path]) -> Path:
    """
    Write the wrapped report to the output artifact path.

    Raises:
        ReportError: If the file cannot be written
    """
    output = Path(path)
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, 'w', encoding='utf-8') as f:
            f.write(wrap_report(report.render()))
    except OSError as e:
        raise ReportError(f"Cannot write report to {output}: {e}") from e

    logger.info(f"Wrote report to {output}")
    return output

