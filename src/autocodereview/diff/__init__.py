"""
Diff Acquisition Layer

This module computes the pull request diff with git and parses it into
byte-exact file and hunk entries.
"""

from .acquirer import DiffAcquirer
from .parser import UnifiedDiffParser

__all__ = ['DiffAcquirer', 'UnifiedDiffParser']
