"""
GitHub Integration Layer

This module provides the GitHub API client and the publisher that posts
review reports as pull request comments.
"""

from .client import GitHubClient, GitHubAPIError, RateLimitExceeded
from .publisher import CommentPublisher, NullPublisher

__all__ = ['GitHubClient', 'GitHubAPIError', 'RateLimitExceeded', 'CommentPublisher', 'NullPublisher']
