"""
Core constants for chocolate-bar ratings analytics

Contains column identifiers, the canonical-to-field alias table, grouping
thresholds and other constants used throughout the analytics package.
"""

from typing import Dict, List

# Canonical (whitespace-collapsed, lowercased) source headers mapped to the
# field names used everywhere downstream
COLUMN_ALIASES: Dict[str, str] = {
    'company_(maker-if-known)': 'company_maker',
    'specific_bean_origin_or_bar_name': 'specific_bean_origin',
    'ref': 'ref',
    'review_date': 'review_date',
    'cocoa_percent': 'cocoa_percent',
    'company_location': 'company_location',
    'rating': 'rating',
    'bean_type': 'bean_type',
    'broad_bean_origin': 'broad_bean_origin',
}

# Headers as they appear in the published ratings file
SOURCE_HEADERS: List[str] = [
    'Company \n(Maker-if-known)',
    'Specific Bean Origin\nor Bar Name',
    'REF',
    'Review\nDate',
    'Cocoa\nPercent',
    'Company\nLocation',
    'Rating',
    'Bean\nType',
    'Broad Bean\nOrigin',
]

# Fields every source must provide (after canonicalisation and aliasing)
REQUIRED_FIELDS: List[str] = list(COLUMN_ALIASES.values())

# Cocoa percent bounds, lower bound exclusive
COCOA_PERCENT_BOUNDS = (0.0, 100.0)

# Grouping defaults
DEFAULT_LOW_RATING_THRESHOLD = 2.5
DEFAULT_COMPANY_MIN_COUNT = 10   # strict: count > 10
DEFAULT_MAKER_MIN_COUNT = 3      # inclusive: count >= 3
DEFAULT_ORIGIN_MIN_COUNT = 10    # strict: count > 10
DEFAULT_LOCATION_MIN_COUNT = 0   # strict: count > 0
MIN_ORIGIN_LENGTH = 2

# Model collaborator defaults
MODEL_RESPONSE = 'rating'
MODEL_PREDICTORS = ['cocoa_percent', 'review_year', 'company_location']
CATEGORICAL_PREDICTORS = ['company_location']

# Aggregate column names
AGGREGATE_COLUMNS = ['count', 'mean_rating', 'std_rating']
LOW_RATING_COLUMNS = ['count_below', 'total', 'fraction']

# File format constants
SUPPORTED_FILE_FORMATS = ['.csv', '.txt']
DEFAULT_ENCODING = 'utf-8'
DEFAULT_DELIMITER = ','
