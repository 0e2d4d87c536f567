"""
Utils Module - Core utilities and helper functions for ratings analytics
"""

from .helpers import (
    canonicalize_column_name, canonicalize_column_names, safe_divide,
    format_percentage, format_rating, validate_data, create_sample_reviews
)
from .constants import COLUMN_ALIASES, REQUIRED_FIELDS, SOURCE_HEADERS

__all__ = [
    'canonicalize_column_name',
    'canonicalize_column_names',
    'safe_divide',
    'format_percentage',
    'format_rating',
    'validate_data',
    'create_sample_reviews',
    'COLUMN_ALIASES',
    'REQUIRED_FIELDS',
    'SOURCE_HEADERS'
]
