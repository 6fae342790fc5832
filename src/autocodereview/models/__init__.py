"""
Data Models

AutoCodeReview 파이프라인의 핵심 데이터 모델들
"""

from .diff import ChangeKind, FileDiff, DiffDocument
from .review import Severity, ReviewFinding, ReportSection, ReviewReport
from .run import PullRequestTarget, RunContext

__all__ = [
    "ChangeKind",
    "FileDiff",
    "DiffDocument",
    "Severity",
    "ReviewFinding",
    "ReportSection",
    "ReviewReport",
    "PullRequestTarget",
    "RunContext",
]
