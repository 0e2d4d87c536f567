"""
Data Module - Data loading, cleaning, and validation for ratings analytics
"""

from .loaders import DataLoader, load_raw_reviews
from .processors import (
    SchemaNormalizer, FieldDeriver, DataValidator, CleaningReport, ParseIssue,
    parse_percent, parse_rating, year_to_date, split_company_maker, is_known_origin
)

__all__ = [
    'DataLoader',
    'load_raw_reviews',
    'SchemaNormalizer',
    'FieldDeriver',
    'DataValidator',
    'CleaningReport',
    'ParseIssue',
    'parse_percent',
    'parse_rating',
    'year_to_date',
    'split_company_maker',
    'is_known_origin'
]
