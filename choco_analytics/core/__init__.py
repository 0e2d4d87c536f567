"""
Core Module - Aggregation and end-to-end pipeline
"""

from .aggregator import RatingAggregator
from .pipeline import ReviewPipeline, PipelineResult

__all__ = [
    'RatingAggregator',
    'ReviewPipeline',
    'PipelineResult'
]
