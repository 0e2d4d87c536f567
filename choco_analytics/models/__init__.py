"""
Models Module - Rating models consuming the cleaned table
"""

from .predictive import RatingModeler, ModelStep, TreeModelResult, build_model_frame

__all__ = [
    'RatingModeler',
    'ModelStep',
    'TreeModelResult',
    'build_model_frame'
]
