"""
AutoCodeReview

Pull request 자동 코드 리뷰 봇
"""

__version__ = "1.0.0"

from .pipeline import ReviewPipeline, PipelineResult

__all__ = ["ReviewPipeline", "PipelineResult"]
