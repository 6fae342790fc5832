"""
Comment Publisher

Delivers the rendered review report to the pull request exactly once.
"""

import logging
from typing import Protocol

import requests

from ..exceptions import PublishFailure
from ..models.run import PullRequestTarget
from ..report.assembler import wrap_report
from .client import GitHubAPIError


logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 65536  # GitHub's comment limit
TRUNCATION_NOTE = "\n\n---\n*Report truncated due to comment length limit.*"


class CommentPoster(Protocol):
    """Anything that can post a comment on a pull request."""

    def create_issue_comment(self, owner: str, repo: str, number: int, body: str): ...


class CommentPublisher:
    """
    Posts the report as a single pull request comment.

    A publisher instance delivers at most once; a second ``publish`` call is
    refused so a retried stage can never produce a duplicate comment.
    """

    def __init__(self, poster: CommentPoster, target: PullRequestTarget):
        self.poster = poster
        self.target = target
        self._published = False

    @property
    def published(self) -> bool:
        return self._published

    def publish(self, report_body: str) -> None:
        """
        Wrap the report body in the comment template and post it.

        Args:
            report_body: Output of ``ReviewReport.render()``

        Raises:
            PublishFailure: If already published or the post fails
        """
        if self._published:
            raise PublishFailure(f"Report was already published to {self.target}")

        body = self._truncate(wrap_report(report_body))
        try:
            self.poster.create_issue_comment(self.target.owner, self.target.name, self.target.number, body)
        except (GitHubAPIError, requests.RequestException, ValueError) as e:
            logger.error(f"Failed to publish review to {self.target}: {e}")
            raise PublishFailure(f"Could not post review comment to {self.target}: {e}") from e

        self._published = True
        logger.info(f"Published review to {self.target}")

    def _truncate(self, body: str) -> str:
        """Truncate comment to fit GitHub limits."""
        if len(body) <= MAX_COMMENT_LENGTH:
            return body

        truncated = body[:MAX_COMMENT_LENGTH - len(TRUNCATION_NOTE)]
        # Cut at the last complete line
        last_newline = truncated.rfind('\n')
        if last_newline > 0:
            truncated = truncated[:last_newline]

        logger.warning(f"Report is {len(body)} chars, truncating to fit a comment")
        return truncated + TRUNCATION_NOTE


class NullPublisher:
    """Skips delivery; used for local runs and ``--no-publish``."""

    published = False

    def publish(self, report_body: str) -> None:
        logger.info("Publishing disabled, report left on disk only")
