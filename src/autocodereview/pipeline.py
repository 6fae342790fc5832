"""
Review Pipeline

Runs the review stages in order (acquire, analyze, assemble, write,
publish) and stops at the first fatal error so that nothing is published
from an incomplete run.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from .analysis.client import ReviewClient
from .diff.acquirer import DiffAcquirer
from .models.review import ReviewReport
from .models.run import RunContext
from .report.assembler import ReportAssembler, write_report


logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Outcome of a completed run."""
    report: ReviewReport
    report_path: Path
    degraded_chunks: int
    published: bool
    processing_time: float


class ReviewPipeline:
    """
    Pipeline driver.

    Each stage finishes before the next one starts. Fatal errors
    (``DiffUnavailable``, ``AnalysisAuthFailure``, ``ReportError``,
    ``PublishFailure``) propagate to the caller unchanged; degraded chunks
    do not make the run fail.
    """

    def __init__(
        self,
        context: RunContext,
        acquirer: DiffAcquirer,
        client: ReviewClient,
        publisher,
        assembler: Optional[ReportAssembler] = None,
    ):
        """
        Initialize review pipeline.

        Args:
            context: Run configuration, including the service credential
            acquirer: Diff acquirer for the working directory
            client: Review client with its transport
            publisher: CommentPublisher or NullPublisher
            assembler: Report assembler
        """
        self.context = context
        self.acquirer = acquirer
        self.client = client
        self.publisher = publisher
        self.assembler = assembler or ReportAssembler()

    def run(self) -> PipelineResult:
        """
        Execute one review run.

        Returns:
            PipelineResult for the completed run
        """
        start_time = datetime.now()
        logger.info(f"Starting review run: {self.context}")

        # Step 1: Acquire the diff
        if self.context.diff_from_file:
            document = self.acquirer.load(self.context.diff_path)
        else:
            document = self.acquirer.acquire(self.context.diff_path)

        # Step 2: Analyze (never for an empty diff)
        if document.is_empty:
            logger.info("No changed files, skipping analysis")
            findings = []
            degraded_chunks = 0
        else:
            findings = self.client.review(document, self.context.credential)
            degraded_chunks = self.client.last_degraded_chunks

        # Step 3: Assemble and write the report artifact
        report = self.assembler.assemble(findings, document)
        body = report.render()
        report_path = write_report(report, self.context.output_path)

        # Step 4: Publish exactly once
        self.publisher.publish(body)

        processing_time = (datetime.now() - start_time).total_seconds()
        if degraded_chunks:
            logger.warning(f"Run completed with {degraded_chunks} degraded chunks")
        logger.info(f"Review run completed ({processing_time:.2f}s)")

        return PipelineResult(
            report=report,
            report_path=report_path,
            degraded_chunks=degraded_chunks,
            published=self.publisher.published,
            processing_time=processing_time,
        )
