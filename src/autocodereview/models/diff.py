"""
Diff Data Models

Structured view of a unified diff, kept byte-exact so the original text can
always be rebuilt from the parsed pieces.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple


class ChangeKind(str, Enum):
    """How a file was changed by the pull request."""
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


@dataclass(frozen=True)
class FileDiff:
    """파일 단위 변경사항"""
    path: str
    change_kind: ChangeKind
    header: str
    hunks: Tuple[str, ...] = ()
    old_path: Optional[str] = None
    is_binary: bool = False

    def __post_init__(self):
        """데이터 검증"""
        if not self.path:
            raise ValueError("File path cannot be empty")
        if not isinstance(self.change_kind, ChangeKind):
            raise ValueError(f"Invalid change_kind: {self.change_kind}")
        for hunk in self.hunks:
            if not hunk.startswith("@@"):
                raise ValueError("Hunk text must start with an '@@' header")

    @property
    def text(self) -> str:
        """Raw diff text for this file: metadata header followed by hunks."""
        return self.header + "".join(self.hunks)

    @property
    def additions(self) -> int:
        return sum(
            1 for hunk in self.hunks for line in hunk.splitlines()[1:]
            if line.startswith("+")
        )

    @property
    def deletions(self) -> int:
        return sum(
            1 for hunk in self.hunks for line in hunk.splitlines()[1:]
            if line.startswith("-")
        )


@dataclass(frozen=True)
class DiffDocument:
    """
    Parsed diff between the pull request head and its base branch.

    ``preamble`` holds whatever precedes the first file header (usually
    nothing for ``git diff`` output). ``to_text()`` rebuilds the source diff
    exactly.
    """
    files: Tuple[FileDiff, ...] = ()
    preamble: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.files

    @property
    def file_paths(self) -> List[str]:
        return [f.path for f in self.files]

    @property
    def total_additions(self) -> int:
        return sum(f.additions for f in self.files)

    @property
    def total_deletions(self) -> int:
        return sum(f.deletions for f in self.files)

    def hunk_text(self) -> str:
        """Concatenation of every hunk in file order."""
        return "".join(hunk for f in self.files for hunk in f.hunks)

    def to_text(self) -> str:
        """Rebuild the complete diff text."""
        return self.preamble + "".join(f.text for f in self.files)
