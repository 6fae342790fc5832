"""
Review Client

Sends a diff to the analysis service chunk by chunk and collects the
findings in file order. Transient failures are retried with exponential
backoff; a chunk that still fails degrades to a placeholder finding instead
of failing the run.
"""

import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Callable, Dict, List, Optional

from ..exceptions import AnalysisAuthFailure, AnalysisTransientFailure, MalformedResponse
from ..models.diff import DiffDocument
from ..models.review import ReviewFinding
from .chunker import DiffChunk, DiffChunker
from .schema import parse_service_response
from .transport import AnalysisTransport


logger = logging.getLogger(__name__)


class ReviewClient:
    """
    Orchestrates chunked analysis requests.

    Chunks are submitted on a bounded thread pool; results are re-sorted by
    chunk index before they are concatenated, so concurrency never changes
    the output order.
    """

    def __init__(
        self,
        transport: AnalysisTransport,
        max_chunk_size: int = 60000,
        retry_count: int = 3,
        retry_backoff: float = 2.0,
        max_workers: int = 4,
        max_findings: Optional[int] = None,
        sleep: Optional[Callable[[float], object]] = None,
    ):
        """
        Initialize review client.

        Args:
            transport: Analysis service adapter
            max_chunk_size: Maximum characters per request
            retry_count: Retries after the first attempt for transient errors
            retry_backoff: Base delay in seconds, doubled on every retry
            max_workers: Concurrent requests in flight
            max_findings: Optional cap on findings per chunk
            sleep: Delay function between attempts; defaults to waiting on
                the abort signal so a backoff ends as soon as the run aborts
        """
        if retry_count < 0:
            raise ValueError("retry_count must be non-negative")
        if max_workers <= 0:
            raise ValueError("max_workers must be positive")

        self.transport = transport
        self.chunker = DiffChunker(max_chunk_size)
        self.retry_count = retry_count
        self.retry_backoff = retry_backoff
        self.max_workers = max_workers
        self.max_findings = max_findings
        self._aborted = threading.Event()
        self._sleep = sleep or self._aborted.wait
        self.last_degraded_chunks = 0

    def review(self, document: DiffDocument, credential: str) -> List[ReviewFinding]:
        """
        Analyze a diff and return its findings.

        Args:
            document: Parsed diff
            credential: Analysis service credential

        Returns:
            Findings of all chunks, in chunk (and so file) order

        Raises:
            AnalysisAuthFailure: If the service rejects the credential
        """
        self.last_degraded_chunks = 0
        self._aborted.clear()
        chunks = self.chunker.split(document)
        if not chunks:
            logger.info("No reviewable hunks, skipping analysis")
            return []

        logger.info(f"Submitting {len(chunks)} chunks with up to {self.max_workers} workers")
        results: Dict[int, List[ReviewFinding]] = {}

        executor = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(chunks)),
            thread_name_prefix="review-chunk",
        )
        try:
            futures = {executor.submit(self._review_chunk, chunk, credential): chunk for chunk in chunks}
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            for future in done:
                error = future.exception()
                if error is not None:
                    # Auth failures abort the whole run.
                    raise error
            for future, chunk in futures.items():
                results[chunk.index] = future.result()
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        findings: List[ReviewFinding] = []
        for index in sorted(results):
            findings.extend(results[index])

        self.last_degraded_chunks = sum(
            1 for chunk_findings in results.values()
            if any(f.degraded for f in chunk_findings)
        )
        logger.info(
            f"Analysis finished: {len(findings)} findings, "
            f"{self.last_degraded_chunks} degraded chunks"
        )
        return findings

    def _review_chunk(self, chunk: DiffChunk, credential: str) -> List[ReviewFinding]:
        """Analyze one chunk, degrading on exhausted retries or bad responses."""
        options = {}
        if self.max_findings is not None:
            options['max_findings'] = self.max_findings

        for attempt in range(self.retry_count + 1):
            if self._aborted.is_set():
                # Another chunk hit an auth failure; its result is discarded.
                return []
            if attempt > 0:
                delay = self.retry_backoff * (2 ** (attempt - 1))
                logger.warning(
                    f"Retrying chunk {chunk.index} "
                    f"(attempt {attempt + 1}/{self.retry_count + 1}) in {delay:.1f}s"
                )
                self._sleep(delay)
                if self._aborted.is_set():
                    return []

            try:
                payload = self.transport.submit(chunk.text, credential, options)
                response = parse_service_response(payload)
            except AnalysisAuthFailure:
                self._aborted.set()
                logger.error(f"Credential rejected while analyzing chunk {chunk.index}")
                raise
            except AnalysisTransientFailure as e:
                logger.warning(f"Transient failure on chunk {chunk.index}: {e}")
                continue
            except MalformedResponse as e:
                logger.warning(f"Malformed response for chunk {chunk.index}: {e}")
                return self._degrade(chunk)

            if response.error:
                logger.warning(f"Service reported an error for chunk {chunk.index}: {response.error}")
                return self._degrade(chunk)

            findings = [item.to_finding() for item in response.findings]
            if self.max_findings is not None and len(findings) > self.max_findings:
                logger.info(f"Truncating chunk {chunk.index} findings to {self.max_findings}")
                findings = findings[:self.max_findings]

            logger.debug(f"Chunk {chunk.index}: {len(findings)} findings")
            return findings

        logger.error(f"All {self.retry_count + 1} attempts failed for chunk {chunk.index}")
        return self._degrade(chunk)

    def _degrade(self, chunk: DiffChunk) -> List[ReviewFinding]:
        return [ReviewFinding.unavailable(list(chunk.file_paths))]
