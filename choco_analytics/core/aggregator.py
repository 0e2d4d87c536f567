"""
Rating Aggregator - Grouped summary statistics over cleaned ratings

Provides read-only analysis of the cleaned ratings table including:
- Ratings by review year, with dispersion and low-rating share
- Ratings by company, maker, bean origin and company location
- Company x origin review counts for heatmaps
- Descriptive statistics and cocoa/rating correlation

All grouping preserves first-seen key order; callers sort explicitly.
"""

import logging
import warnings
from typing import Dict, List, Union

import numpy as np
import pandas as pd
from scipy import stats

from ..data.processors import known_origin_mask
from ..utils.constants import (
    AGGREGATE_COLUMNS, LOW_RATING_COLUMNS, MIN_ORIGIN_LENGTH,
    DEFAULT_LOW_RATING_THRESHOLD, DEFAULT_COMPANY_MIN_COUNT, DEFAULT_MAKER_MIN_COUNT,
    DEFAULT_ORIGIN_MIN_COUNT, DEFAULT_LOCATION_MIN_COUNT
)
from ..utils.helpers import safe_divide

logger = logging.getLogger(__name__)


class RatingAggregator:
    """
    Grouped rating statistics for a cleaned ratings table

    Attributes:
        records (pd.DataFrame): Cleaned records (never modified)
        min_origin_length (int): Minimum trimmed length of a known bean origin
    """

    def __init__(self, records: pd.DataFrame, min_origin_length: int = MIN_ORIGIN_LENGTH):
        """
        Initialize the RatingAggregator

        Args:
            records: Output of the field deriver
            min_origin_length: Minimum trimmed length of a known bean origin
        """
        if not records.empty and 'rating' not in records.columns:
            raise ValueError("Records have no 'rating' column")

        self.records = records.copy()
        self.min_origin_length = min_origin_length

    # ------------------------------------------------------------------
    # Grouped summaries
    # ------------------------------------------------------------------

    def group_by_year(self) -> pd.DataFrame:
        """
        Count, mean and sample standard deviation of ratings per review year

        ``std_rating`` uses the n-1 denominator and is NaN for single-review
        years.

        Returns:
            DataFrame indexed by ``review_date``
        """
        return self._summarize(self.records, 'review_date', include_std=True)

    def low_rating_share(self, threshold: float = DEFAULT_LOW_RATING_THRESHOLD) -> pd.DataFrame:
        """
        Share of ratings strictly below ``threshold`` per review year

        Args:
            threshold: Rating below which a review counts as low

        Returns:
            DataFrame indexed by ``review_date`` with ``count_below``,
            ``total`` and ``fraction`` (rounded to 2 decimals, 0.0 when a
            year has no reviews)
        """
        if self.records.empty:
            return self._empty(LOW_RATING_COLUMNS, 'review_date')

        below = (self.records['rating'] < threshold).rename('below')
        grouped = below.groupby(self.records['review_date'], sort=False)

        result = pd.DataFrame({
            'count_below': grouped.sum().astype(int),
            'total': grouped.size().astype(int),
        })
        result['fraction'] = [
            round(safe_divide(count, total), 2)
            for count, total in zip(result['count_below'], result['total'])
        ]
        return result

    def group_by_company(self, min_count: int = DEFAULT_COMPANY_MIN_COUNT) -> pd.DataFrame:
        """Mean rating of companies with strictly more than ``min_count`` reviews"""
        summary = self._summarize(self.records, 'company')
        return self._filter_by_count(summary, min_count, inclusive=False)

    def group_by_maker(self, min_count: int = DEFAULT_MAKER_MIN_COUNT) -> pd.DataFrame:
        """Mean rating of makers with at least ``min_count`` reviews; records without a maker are skipped"""
        if self.records.empty or 'maker' not in self.records.columns:
            return self._empty(AGGREGATE_COLUMNS[:2], 'maker')

        with_maker = self.records[self.records['maker'].notna()]
        summary = self._summarize(with_maker, 'maker')
        return self._filter_by_count(summary, min_count, inclusive=True)

    def group_by_origin(self, min_count: int = DEFAULT_ORIGIN_MIN_COUNT) -> pd.DataFrame:
        """Mean rating of known bean origins with strictly more than ``min_count`` reviews"""
        summary = self._summarize(self._known_origin_records(), 'broad_bean_origin')
        return self._filter_by_count(summary, min_count, inclusive=False)

    def group_by_location(self, min_count: int = DEFAULT_LOCATION_MIN_COUNT) -> pd.DataFrame:
        """Mean rating of company locations with strictly more than ``min_count`` reviews"""
        summary = self._summarize(self.records, 'company_location')
        return self._filter_by_count(summary, min_count, inclusive=False)

    def company_origin_heatmap_counts(self, min_count: int = DEFAULT_COMPANY_MIN_COUNT) -> pd.DataFrame:
        """
        Review counts per company and known bean origin

        Only companies passing ``group_by_company(min_count)`` appear.

        Returns:
            DataFrame with companies as rows, origins as columns, zero-filled
        """
        companies = self.group_by_company(min_count).index
        data = self._known_origin_records()
        if data.empty or len(companies) == 0:
            return pd.DataFrame(dtype=int)

        data = data[data['company'].isin(companies)]
        counts = data.groupby(['company', 'broad_bean_origin'], sort=False).size()
        matrix = counts.unstack(fill_value=0)

        row_order = [c for c in pd.unique(data['company']) if c in matrix.index]
        col_order = [o for o in pd.unique(data['broad_bean_origin']) if o in matrix.columns]
        return matrix.reindex(index=row_order, columns=col_order).astype(int)

    # ------------------------------------------------------------------
    # Descriptive statistics
    # ------------------------------------------------------------------

    def rating_summary(self) -> pd.DataFrame:
        """Descriptive statistics of ratings and cocoa percentages"""
        columns = [c for c in ('rating', 'cocoa_percent') if c in self.records.columns]
        if self.records.empty or not columns:
            return pd.DataFrame()
        return self.records[columns].describe()

    def cocoa_rating_correlation(self, method: str = 'pearson') -> Dict[str, Union[str, int, float]]:
        """
        Correlation between cocoa percent and rating

        Args:
            method: 'pearson' or 'spearman'

        Returns:
            Dict with method, coefficient, p_value and n
        """
        if method not in ('pearson', 'spearman'):
            raise ValueError(f"Unknown correlation method: {method}")

        n = len(self.records)
        result = {'method': method, 'coefficient': np.nan, 'p_value': np.nan, 'n': n}
        if n < 3:
            warnings.warn(f"Correlation needs at least 3 records, got {n}")
            return result

        x = self.records['cocoa_percent'].astype(float)
        y = self.records['rating'].astype(float)
        if x.nunique() < 2 or y.nunique() < 2:
            warnings.warn("Correlation undefined for constant input")
            return result

        if method == 'pearson':
            coefficient, p_value = stats.pearsonr(x, y)
        else:
            coefficient, p_value = stats.spearmanr(x, y)

        result['coefficient'] = float(coefficient)
        result['p_value'] = float(p_value)
        return result

    def summarize_all(self, threshold: float = DEFAULT_LOW_RATING_THRESHOLD,
                      company_min_count: int = DEFAULT_COMPANY_MIN_COUNT,
                      maker_min_count: int = DEFAULT_MAKER_MIN_COUNT,
                      origin_min_count: int = DEFAULT_ORIGIN_MIN_COUNT,
                      location_min_count: int = DEFAULT_LOCATION_MIN_COUNT) -> Dict[str, pd.DataFrame]:
        """Compute every named aggregate table"""
        tables = {
            'by_year': self.group_by_year(),
            'low_rating_share': self.low_rating_share(threshold),
            'by_company': self.group_by_company(company_min_count),
            'by_maker': self.group_by_maker(maker_min_count),
            'by_origin': self.group_by_origin(origin_min_count),
            'by_location': self.group_by_location(location_min_count),
            'company_origin_counts': self.company_origin_heatmap_counts(company_min_count),
        }
        logger.info("Computed %d aggregate tables over %d records", len(tables), len(self.records))
        return tables

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _known_origin_records(self) -> pd.DataFrame:
        """Records with a known bean origin, origin trimmed for grouping"""
        if self.records.empty:
            return self.records
        mask = known_origin_mask(self.records, self.min_origin_length)
        data = self.records[mask].copy()
        data['broad_bean_origin'] = data['broad_bean_origin'].astype(str).str.strip()
        return data

    @staticmethod
    def _summarize(data: pd.DataFrame, key: str, include_std: bool = False) -> pd.DataFrame:
        columns = AGGREGATE_COLUMNS if include_std else AGGREGATE_COLUMNS[:2]
        if data.empty or key not in data.columns:
            return RatingAggregator._empty(columns, key)

        grouped = data.groupby(key, sort=False)['rating']
        if include_std:
            return grouped.agg(count='size', mean_rating='mean', std_rating='std')
        return grouped.agg(count='size', mean_rating='mean')

    @staticmethod
    def _filter_by_count(summary: pd.DataFrame, min_count: int, inclusive: bool) -> pd.DataFrame:
        keep = summary['count'] >= min_count if inclusive else summary['count'] > min_count
        return summary[keep]

    @staticmethod
    def _empty(columns: List[str], index_name: str) -> pd.DataFrame:
        return pd.DataFrame(columns=columns, index=pd.Index([], name=index_name))


# Functional interface over a records table

def group_by_year(records: pd.DataFrame) -> pd.DataFrame:
    return RatingAggregator(records).group_by_year()


def low_rating_share(records: pd.DataFrame, threshold: float = DEFAULT_LOW_RATING_THRESHOLD) -> pd.DataFrame:
    return RatingAggregator(records).low_rating_share(threshold)


def group_by_company(records: pd.DataFrame, min_count: int = DEFAULT_COMPANY_MIN_COUNT) -> pd.DataFrame:
    return RatingAggregator(records).group_by_company(min_count)


def group_by_maker(records: pd.DataFrame, min_count: int = DEFAULT_MAKER_MIN_COUNT) -> pd.DataFrame:
    return RatingAggregator(records).group_by_maker(min_count)


def group_by_origin(records: pd.DataFrame, min_count: int = DEFAULT_ORIGIN_MIN_COUNT) -> pd.DataFrame:
    return RatingAggregator(records).group_by_origin(min_count)


def group_by_location(records: pd.DataFrame, min_count: int = DEFAULT_LOCATION_MIN_COUNT) -> pd.DataFrame:
    return RatingAggregator(records).group_by_location(min_count)


def company_origin_heatmap_counts(records: pd.DataFrame,
                                  min_count: int = DEFAULT_COMPANY_MIN_COUNT) -> pd.DataFrame:
    return RatingAggregator(records).company_origin_heatmap_counts(min_count)
