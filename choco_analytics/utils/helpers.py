"""
Helper Functions - Utility functions for chocolate-bar ratings analytics

Contains commonly used helper functions for column-name canonicalisation,
safe arithmetic, formatting, data validation and sample data generation.
"""

import pandas as pd
import numpy as np
from typing import List, Optional, Dict, Any, Tuple
import re

from .constants import SOURCE_HEADERS, REQUIRED_FIELDS

_WHITESPACE_RUN = re.compile(r'\s+')


def canonicalize_column_name(name: str) -> str:
    """
    Canonicalise a column header

    Any run of whitespace or line-break characters becomes a single
    underscore, the result is lowercased and stripped of surrounding
    underscores. Already-canonical names are returned unchanged.

    Args:
        name: Raw column header

    Returns:
        Canonical column name
    """
    canonical = _WHITESPACE_RUN.sub('_', str(name).strip()).lower()
    return canonical.strip('_')


def canonicalize_column_names(columns: List[str]) -> List[str]:
    """Canonicalise a list of column headers, preserving order"""
    return [canonicalize_column_name(col) for col in columns]


def find_duplicate_names(names: List[str]) -> Dict[str, int]:
    """Return names occurring more than once, with their counts"""
    counts = pd.Series(names, dtype=object).value_counts(sort=False)
    return {name: int(count) for name, count in counts.items() if count > 1}


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default if denominator is zero

    Args:
        numerator: Numerator value
        denominator: Denominator value
        default: Default value if division by zero

    Returns:
        Division result or default value
    """
    if denominator == 0 or pd.isna(denominator):
        return default
    return numerator / denominator


def format_percentage(value: float, decimals: int = 1, fraction: bool = False) -> str:
    """
    Format a value as percentage

    Args:
        value: Value to format
        decimals: Number of decimal places
        fraction: If True, treat input as a fraction in [0, 1]

    Returns:
        Formatted percentage string
    """
    if value is None or pd.isna(value):
        return 'N/A'

    percentage = value * 100 if fraction else value
    return f"{percentage:.{decimals}f}%"


def format_rating(value: float, decimals: int = 2) -> str:
    """Format a rating (or mean rating) for display"""
    if value is None or pd.isna(value):
        return 'N/A'
    return f"{value:.{decimals}f}"


def validate_data(
    data: pd.DataFrame,
    required_columns: Optional[List[str]] = None,
    allow_missing: bool = True
) -> Tuple[bool, List[str]]:
    """
    Validate a cleaned ratings table before analysis

    Args:
        data: DataFrame to validate
        required_columns: List of required column names
        allow_missing: Whether to allow missing values in required columns

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []
    required_columns = required_columns if required_columns is not None else REQUIRED_FIELDS

    missing_columns = [col for col in required_columns if col not in data.columns]
    if missing_columns:
        errors.append(f"Missing required columns: {missing_columns}")

    if not allow_missing:
        for col in required_columns:
            if col in data.columns and data[col].isna().any():
                errors.append(f"Missing values found in column '{col}'")

    if 'rating' in data.columns and pd.api.types.is_numeric_dtype(data['rating']):
        if (data['rating'] < 0).any():
            errors.append("Negative values found in column 'rating'")

    if 'cocoa_percent' in data.columns and pd.api.types.is_numeric_dtype(data['cocoa_percent']):
        out_of_range = (data['cocoa_percent'] <= 0) | (data['cocoa_percent'] > 100)
        if out_of_range.any():
            errors.append(f"{int(out_of_range.sum())} values outside (0, 100] in column 'cocoa_percent'")

    return len(errors) == 0, errors


def create_sample_reviews(
    n_reviews: int = 600,
    start_year: int = 2006,
    end_year: int = 2017,
    include_header_row: bool = True,
    seed: int = 42
) -> pd.DataFrame:
    """
    Create a synthetic raw ratings table shaped like the published source

    All values are strings and the headers carry the source's line breaks,
    so the result exercises the full cleaning pipeline. When
    ``include_header_row`` is set, a re-encoded copy of the header is
    inserted as the first data row, as in the published file.

    Args:
        n_reviews: Number of review rows to generate
        start_year: First review year
        end_year: Last review year (inclusive)
        include_header_row: Insert the spurious header row
        seed: Random seed for reproducibility

    Returns:
        DataFrame of raw string values
    """
    rng = np.random.default_rng(seed)

    companies = [
        ('Soma', None), ('Bonnat', 'Chapuis'), ('A. Morin', None),
        ('Fresco', None), ('Pralus', None), ('Valrhona', None),
        ('Domori', None), ('Arete', None), ('Smooth Chocolator, The', None),
        ('Hotel Chocolat', 'Coppeneur'), ('Zotter', None), ('Guittard', None),
        ('Coppeneur', None), ('Cacao Sampaka', 'Chapuis'),
    ]
    locations = {
        'Soma': 'Canada', 'Bonnat': 'France', 'A. Morin': 'France',
        'Fresco': 'U.S.A.', 'Pralus': 'France', 'Valrhona': 'France',
        'Domori': 'Italy', 'Arete': 'U.S.A.', 'Smooth Chocolator, The': 'Australia',
        'Hotel Chocolat': 'U.K.', 'Zotter': 'Austria', 'Guittard': 'U.S.A.',
        'Coppeneur': 'Germany', 'Cacao Sampaka': 'Spain',
    }
    origins = ['Peru', 'Venezuela', 'Ecuador', 'Madagascar', 'Dominican Republic',
               'Ghana', 'Belize', 'Bolivia', '\xa0', '']
    origin_weights = np.array([14, 14, 12, 10, 10, 8, 6, 6, 3, 1], dtype=float)
    origin_weights /= origin_weights.sum()
    bean_types = ['Trinitario', 'Criollo', 'Forastero', '\xa0']

    rows = []
    for i in range(n_reviews):
        company, maker = companies[rng.integers(len(companies))]
        label = f"{company} ({maker})" if maker else company
        year = int(rng.integers(start_year, end_year + 1))
        cocoa = float(rng.choice([60, 63, 65, 67, 70, 70, 70, 72, 75, 80, 85, 100]))
        # later reviews and mid-range cocoa score slightly higher
        mean_rating = 3.0 + 0.03 * (year - start_year) - 0.02 * abs(cocoa - 70)
        rating = float(np.clip(np.round(rng.normal(mean_rating, 0.45) * 4) / 4, 1.0, 5.0))
        origin = str(rng.choice(origins, p=origin_weights))

        rows.append({
            SOURCE_HEADERS[0]: label,
            SOURCE_HEADERS[1]: f"{origin.strip() or 'Blend'}, batch {i % 17}",
            SOURCE_HEADERS[2]: str(2000 - i),
            SOURCE_HEADERS[3]: str(year),
            SOURCE_HEADERS[4]: f"{cocoa:g}%",
            SOURCE_HEADERS[5]: locations[company],
            SOURCE_HEADERS[6]: f"{rating:g}",
            SOURCE_HEADERS[7]: str(rng.choice(bean_types)),
            SOURCE_HEADERS[8]: origin,
        })

    data = pd.DataFrame(rows, columns=SOURCE_HEADERS)

    if include_header_row:
        header_row = pd.DataFrame([dict(zip(SOURCE_HEADERS, SOURCE_HEADERS))], columns=SOURCE_HEADERS)
        data = pd.concat([header_row, data], ignore_index=True)

    return data
