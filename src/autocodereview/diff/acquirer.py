"""
Diff Acquirer

Produces the full textual diff between the pull request head and the base
branch, either by running git in the checked-out repository or by loading a
diff artifact written by an earlier CI step.
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Union

from ..exceptions import DiffUnavailable
from ..models.diff import DiffDocument
from .parser import UnifiedDiffParser


logger = logging.getLogger(__name__)


class DiffAcquirer:
    """
    Reads repository state with git and returns a parsed DiffDocument.

    Only read-only git commands are issued; the working tree is never
    touched.
    """

    def __init__(
        self,
        working_dir: Union[str, Path],
        base_branch: str = "main",
        remote: Optional[str] = "origin",
        git_timeout: int = 60,
        parser: Optional[UnifiedDiffParser] = None,
    ):
        """
        Initialize diff acquirer.

        Args:
            working_dir: Repository checkout to diff
            base_branch: Branch the pull request targets
            remote: Remote whose tracking ref is preferred for the base
            git_timeout: Seconds before a git command is abandoned
            parser: Parser for the raw diff text
        """
        self.working_dir = Path(working_dir)
        self.base_branch = base_branch
        self.remote = remote
        self.git_timeout = git_timeout
        self.parser = parser or UnifiedDiffParser()

    def acquire(self, diff_path: Optional[Union[str, Path]] = None) -> DiffDocument:
        """
        Diff HEAD against the merge base with the base branch.

        Args:
            diff_path: Optional file to save the raw diff to

        Returns:
            Parsed DiffDocument

        Raises:
            DiffUnavailable: If the base reference is unreachable or git fails
        """
        base_ref = self.resolve_base_ref()
        logger.info(f"Computing diff of HEAD against {base_ref} in {self.working_dir}")

        diff_text = self._git(
            "diff", "--no-color", "--no-ext-diff", f"{base_ref}...HEAD"
        )

        if diff_path is not None:
            self._write_artifact(Path(diff_path), diff_text)

        return self.parser.parse(diff_text)

    def load(self, diff_path: Union[str, Path]) -> DiffDocument:
        """
        Parse a diff artifact file instead of running git.

        Args:
            diff_path: UTF-8 file containing unified diff text

        Returns:
            Parsed DiffDocument
        """
        path = Path(diff_path)
        logger.info(f"Loading diff from {path}")

        try:
            # newline='' keeps CRLF endings intact
            with open(path, 'r', encoding='utf-8', newline='') as f:
                diff_text = f.read()
        except FileNotFoundError:
            raise DiffUnavailable(f"Diff file not found: {path}")
        except (OSError, UnicodeDecodeError) as e:
            raise DiffUnavailable(f"Cannot read diff file {path}: {e}")

        return self.parser.parse(diff_text)

    def resolve_base_ref(self) -> str:
        """
        Find a commit-ish for the base branch.

        The remote tracking ref is tried first since CI checkouts usually
        only fetch ``origin/<base>``.
        """
        candidates: List[str] = []
        if self.remote:
            candidates.append(f"{self.remote}/{self.base_branch}")
        candidates.append(self.base_branch)

        for ref in candidates:
            try:
                self._git("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")
                logger.debug(f"Resolved base ref {ref}")
                return ref
            except DiffUnavailable:
                continue

        raise DiffUnavailable(
            f"Base branch '{self.base_branch}' is not reachable from {self.working_dir} "
            f"(tried: {', '.join(candidates)})"
        )

    def _git(self, *args: str) -> str:
        """Run a git command and return its stdout."""
        cmd = ["git", "-C", str(self.working_dir), *args]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                timeout=self.git_timeout,
            )
        except FileNotFoundError:
            raise DiffUnavailable("git executable not found")
        except subprocess.TimeoutExpired:
            raise DiffUnavailable(f"git {args[0]} timed out after {self.git_timeout}s")

        if result.returncode != 0:
            stderr = result.stderr.decode('utf-8', errors='replace').strip()
            raise DiffUnavailable(f"git {args[0]} failed ({result.returncode}): {stderr}")

        try:
            return result.stdout.decode('utf-8')
        except UnicodeDecodeError as e:
            raise DiffUnavailable(f"git {args[0]} produced non UTF-8 output: {e}")

    def _write_artifact(self, path: Path, diff_text: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8', newline='') as f:
                f.write(diff_text)
        except OSError as e:
            raise DiffUnavailable(f"Cannot write diff artifact {path}: {e}")
        logger.info(f"Wrote diff artifact to {path} ({len(diff_text)} chars)")
