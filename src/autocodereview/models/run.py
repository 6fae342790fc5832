"""
Run Context

한 번의 파이프라인 실행 동안 유지되는 읽기 전용 설정
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class PullRequestTarget:
    """Pull request that receives the review comment."""
    owner: str
    name: str
    number: int

    def __post_init__(self):
        """데이터 검증"""
        if not self.owner or not self.name:
            raise ValueError("Repository owner and name are required")
        if self.number <= 0:
            raise ValueError("PR number must be positive")

    @classmethod
    def from_repository(cls, repository: str, number: int) -> "PullRequestTarget":
        if repository.count('/') != 1:
            raise ValueError("Repository must be in format 'owner/repo'")
        owner, name = repository.split('/')
        return cls(owner=owner, name=name, number=number)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return f"{self.full_name}#{self.number}"


@dataclass(frozen=True)
class RunContext:
    """
    Configuration for a single pipeline run.

    Built once by the driver and passed to each stage. The credential is
    excluded from ``repr`` so the context can be logged safely.
    """
    working_dir: Path
    base_branch: str
    diff_path: Path
    output_path: Path
    credential: str = field(repr=False)
    target: Optional[PullRequestTarget] = None
    diff_from_file: bool = False

    def __post_init__(self):
        """데이터 검증"""
        if not self.base_branch:
            raise ValueError("Base branch cannot be empty")
        if not self.credential:
            raise ValueError("Analysis credential is required")
