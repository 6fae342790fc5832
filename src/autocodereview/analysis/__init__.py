"""
Analysis Layer

This module splits diffs into bounded chunks, submits them to the external
analysis service and validates the findings it returns.
"""

from .chunker import DiffChunk, DiffChunker
from .client import ReviewClient
from .transport import AnalysisTransport, HTTPAnalysisTransport, OpenAIAnalysisTransport

__all__ = [
    'DiffChunk',
    'DiffChunker',
    'ReviewClient',
    'AnalysisTransport',
    'HTTPAnalysisTransport',
    'OpenAIAnalysisTransport',
]
