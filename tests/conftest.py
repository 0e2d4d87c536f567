"""
Basic test configuration and utilities for chocolate-bar ratings analytics
"""

import io

import pytest
import pandas as pd
import numpy as np

from choco_analytics.utils.constants import SOURCE_HEADERS
from choco_analytics.utils.helpers import create_sample_reviews


@pytest.fixture
def sample_raw_reviews():
    """Synthetic raw reviews, spurious header row first"""
    return create_sample_reviews(n_reviews=300, seed=7)


@pytest.fixture
def sample_csv_text(sample_raw_reviews):
    """The synthetic raw reviews written out as CSV text"""
    buffer = io.StringIO()
    sample_raw_reviews.to_csv(buffer, index=False)
    return buffer.getvalue()


@pytest.fixture
def sample_csv_file(tmp_path, sample_raw_reviews):
    """The synthetic raw reviews written to a CSV file"""
    path = tmp_path / 'flavors_of_cacao.csv'
    sample_raw_reviews.to_csv(path, index=False, encoding='utf-8')
    return path


@pytest.fixture
def cleaned_records(sample_raw_reviews):
    """Synthetic reviews after normalization and field derivation"""
    from choco_analytics import SchemaNormalizer, FieldDeriver

    normalized, _ = SchemaNormalizer().normalize(sample_raw_reviews)
    records, _ = FieldDeriver().derive(normalized)
    return records


def make_raw_row(**overrides):
    """One raw row keyed by the source headers, with valid defaults"""
    row = dict(zip(SOURCE_HEADERS, [
        'Bonnat (Chapuis)', 'Peru, batch 1', '1000', '2012', '70%',
        'France', '3.5', 'Criollo', 'Peru',
    ]))
    fields = dict(zip(
        ['company_maker', 'specific_bean_origin', 'ref', 'review_date', 'cocoa_percent',
         'company_location', 'rating', 'bean_type', 'broad_bean_origin'],
        SOURCE_HEADERS,
    ))
    for name, value in overrides.items():
        row[fields[name]] = value
    return row


def make_raw_frame(rows):
    """Raw frame from ``make_raw_row`` dicts"""
    return pd.DataFrame(rows, columns=SOURCE_HEADERS)


def make_records(
    ratings,
    years=None,
    companies=None,
    makers=None,
    origins=None,
    locations=None,
    cocoa=None
):
    """Cleaned-style records built directly, one per rating"""
    n = len(ratings)
    years = years if years is not None else [2012] * n
    companies = companies if companies is not None else ['Soma'] * n
    makers = makers if makers is not None else [None] * n
    origins = origins if origins is not None else ['Peru'] * n
    locations = locations if locations is not None else ['Canada'] * n
    cocoa = cocoa if cocoa is not None else [70.0] * n

    return pd.DataFrame({
        'company_maker': [c if m is None else f"{c} ({m})" for c, m in zip(companies, makers)],
        'company': pd.Series(companies, dtype=object),
        'maker': pd.Series(makers, dtype=object),
        'company_location': pd.Series(locations, dtype=object),
        'review_date': pd.to_datetime([f"{y}-01-01" for y in years]),
        'review_year': pd.Series(years, dtype=int),
        'cocoa_percent': pd.Series(cocoa, dtype=float),
        'rating': pd.Series(ratings, dtype=float),
        'broad_bean_origin': pd.Series(origins, dtype=object),
    })


def assert_valid_aggregate(table, with_std=False):
    """Helper function to validate the shape of an aggregate table"""
    assert isinstance(table, pd.DataFrame)
    expected = ['count', 'mean_rating'] + (['std_rating'] if with_std else [])
    assert list(table.columns) == expected

    if len(table):
        assert (table['count'] > 0).all()
        assert np.isfinite(table['mean_rating'].astype(float)).all()
