"""Exceptions for the review pipeline.

Every error that can abort a run carries the process exit code the CLI
reports for it, so operators can tell a missing base branch from a rejected
credential without reading the log.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit status of a pipeline run."""
    SUCCESS = 0
    UNEXPECTED = 1
    DIFF_UNAVAILABLE = 2
    AUTH_FAILURE = 3
    PUBLISH_FAILURE = 4
    REPORT_FAILURE = 5
    CONFIG_ERROR = 6


class AutoCodeReviewError(Exception):
    """Base exception for pipeline errors."""
    exit_code = ExitCode.UNEXPECTED


class ConfigurationError(AutoCodeReviewError):
    """Raised when the run configuration is incomplete or invalid."""
    exit_code = ExitCode.CONFIG_ERROR


class DiffUnavailable(AutoCodeReviewError):
    """Raised when the base branch is unreachable or the diff is malformed."""
    exit_code = ExitCode.DIFF_UNAVAILABLE


class AnalysisError(AutoCodeReviewError):
    """Base exception for analysis service errors."""
    pass


class AnalysisAuthFailure(AnalysisError):
    """Raised when the analysis service rejects the credential."""
    exit_code = ExitCode.AUTH_FAILURE


class AnalysisTransientFailure(AnalysisError):
    """Raised for network errors, timeouts and retryable service statuses."""
    pass


class MalformedResponse(AnalysisError):
    """Raised when the service response does not have the expected shape."""
    pass


class ReportError(AutoCodeReviewError):
    """Raised when the report cannot be assembled or written."""
    exit_code = ExitCode.REPORT_FAILURE


class PublishFailure(AutoCodeReviewError):
    """Raised when the report comment cannot be delivered."""
    exit_code = ExitCode.PUBLISH_FAILURE
