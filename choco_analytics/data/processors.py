"""
Data Processors - Clean, retype and validate chocolate-bar ratings

Provides data processing capabilities for:
- Column-name canonicalisation and ambiguity checks
- Removal of re-parsed header rows masquerading as data
- Percent and rating parsing with per-record error reporting
- Derived fields (review date, company / maker split)
- Known-origin predicate shared by every origin-based analysis
- Data validation and quality checks
"""

import logging
import re
import warnings
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from scipy import stats

from ..exceptions import ParseError, SchemaError
from ..utils.constants import (
    COLUMN_ALIASES, COCOA_PERCENT_BOUNDS, MIN_ORIGIN_LENGTH, REQUIRED_FIELDS
)
from ..utils.helpers import canonicalize_column_name, canonicalize_column_names, find_duplicate_names

logger = logging.getLogger(__name__)

_YEAR_PATTERN = re.compile(r'\d{4}')
_MAKER_PATTERN = re.compile(r'\(([^)]*)\)')

PARSE_ERROR_POLICIES = ('exclude', 'raise')


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool)


def parse_percent(value: Any) -> float:
    """
    Parse a cocoa percentage such as ``"70%"`` into ``70.0``

    A trailing ``%`` is optional. Numeric input is accepted as-is so that
    parsing an already-parsed column is a no-op.

    Raises:
        ParseError: remainder is not numeric or not in (0, 100]
    """
    if _is_number(value):
        number = float(value)
    else:
        text = str(value).strip() if value is not None else ''
        if text.endswith('%'):
            text = text[:-1].strip()
        try:
            number = float(text)
        except ValueError:
            raise ParseError(f"Not a percentage: {value!r}", column='cocoa_percent', value=value)

    low, high = COCOA_PERCENT_BOUNDS
    if not np.isfinite(number) or not (low < number <= high):
        raise ParseError(f"Percentage outside ({low:g}, {high:g}]: {value!r}",
                         column='cocoa_percent', value=value)
    return number


def parse_rating(value: Any) -> float:
    """Parse a rating into a float, raising ParseError when not numeric"""
    if _is_number(value):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except (TypeError, ValueError):
            raise ParseError(f"Not a numeric rating: {value!r}", column='rating', value=value)

    if not np.isfinite(number):
        raise ParseError(f"Not a finite rating: {value!r}", column='rating', value=value)
    return number


def year_to_date(value: Any) -> pd.Timestamp:
    """
    Turn a bare review year into January 1 of that year

    Accepts a 4-digit year string or integer. Timestamps already at
    January 1 pass through unchanged.

    Raises:
        ParseError: value is not a 4-digit year
    """
    if isinstance(value, (pd.Timestamp, datetime)) and not pd.isna(value):
        if value.month == 1 and value.day == 1:
            return pd.Timestamp(year=value.year, month=1, day=1)
        raise ParseError(f"Review date is not a year start: {value!r}", column='review_date', value=value)

    if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
        text = str(int(value))
    elif isinstance(value, str):
        text = value.strip()
    else:
        raise ParseError(f"Not a 4-digit year: {value!r}", column='review_date', value=value)

    if not _YEAR_PATTERN.fullmatch(text):
        raise ParseError(f"Not a 4-digit year: {value!r}", column='review_date', value=value)
    try:
        return pd.Timestamp(year=int(text), month=1, day=1)
    except (ValueError, pd.errors.OutOfBoundsDatetime) as e:
        raise ParseError(f"Year out of range: {value!r}", column='review_date', value=value) from e


def split_company_maker(value: Any) -> Tuple[str, Optional[str]]:
    """
    Split ``"Company (Maker)"`` into its company and maker parts

    Only the first parenthesis group counts and nesting is not tracked:
    the first ``)`` after the first ``(`` closes it. An empty group yields
    no maker.

    Returns:
        Tuple of (company, maker or None)
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        raise ParseError("Missing company label", column='company_maker', value=value)

    text = str(value)
    company = text.split('(', 1)[0].strip()
    match = _MAKER_PATTERN.search(text)
    maker = match.group(1).strip() if match else None
    return company, (maker or None)


def is_known_origin(value: Any, min_length: int = MIN_ORIGIN_LENGTH) -> bool:
    """True iff a bean origin is present and at least ``min_length`` chars after trimming"""
    if value is None:
        return False
    if not isinstance(value, str):
        if pd.isna(value):
            return False
        value = str(value)
    return len(value.strip()) >= min_length


def known_origin_mask(records: pd.DataFrame, min_length: int = MIN_ORIGIN_LENGTH) -> pd.Series:
    """Boolean mask of records whose broad bean origin is known"""
    if 'broad_bean_origin' not in records.columns:
        return pd.Series(False, index=records.index)
    return records['broad_bean_origin'].map(lambda v: is_known_origin(v, min_length)).astype(bool)


# ---------------------------------------------------------------------------
# Cleaning report
# ---------------------------------------------------------------------------

@dataclass
class ParseIssue:
    """One field that failed type coercion

    ``row`` is the record's row label from the loader, kept through every
    cleaning stage, so it identifies the source data row.
    """
    row: Any
    column: str
    value: Any
    message: str


@dataclass
class CleaningReport:
    """Per-record problems found while cleaning, alongside the cleaned table"""
    n_input: int = 0
    n_output: int = 0
    n_dropped_headers: int = 0
    issues: List[ParseIssue] = field(default_factory=list)

    @property
    def n_excluded(self) -> int:
        """Number of distinct source rows excluded because of parse errors"""
        return len({issue.row for issue in self.issues})

    @property
    def has_issues(self) -> bool:
        return bool(self.issues)

    def merge(self, other: 'CleaningReport') -> 'CleaningReport':
        """Combine with the report of a later stage"""
        return CleaningReport(
            n_input=self.n_input,
            n_output=other.n_output,
            n_dropped_headers=self.n_dropped_headers + other.n_dropped_headers,
            issues=self.issues + other.issues,
        )

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [(i.row, i.column, i.value, i.message) for i in self.issues],
            columns=['row', 'column', 'value', 'message'],
        )

    def summary(self, sample: int = 5) -> Dict[str, Any]:
        """Counts plus a sample of offending rows"""
        return {
            'n_input': self.n_input,
            'n_output': self.n_output,
            'n_dropped_headers': self.n_dropped_headers,
            'n_excluded': self.n_excluded,
            'issues_by_column': self.to_frame()['column'].value_counts().to_dict(),
            'sample': [
                {'row': i.row, 'column': i.column, 'value': i.value, 'message': i.message}
                for i in self.issues[:sample]
            ],
        }


class _ProcessorBase:
    """Shared processing log and parse-error policy"""

    def __init__(self, on_parse_error: str = 'exclude'):
        if on_parse_error not in PARSE_ERROR_POLICIES:
            raise ValueError(f"Unknown parse error policy: {on_parse_error}")
        self.on_parse_error = on_parse_error
        self.processing_log = []

    def _coerce_column(
        self,
        data: pd.DataFrame,
        column: str,
        parser: Callable[[Any], Any],
        issues: List[ParseIssue]
    ) -> Tuple[Dict[Any, Any], List[Any]]:
        """Apply ``parser`` to every value, collecting failures"""
        parsed = {}
        failed = []
        for idx, value in data[column].items():
            try:
                parsed[idx] = parser(value)
            except ParseError as e:
                if self.on_parse_error == 'raise':
                    raise
                issues.append(ParseIssue(row=idx, column=column, value=value, message=str(e)))
                failed.append(idx)
        return parsed, failed

    def _report_issues(self, report: CleaningReport, stage: str):
        if not report.issues:
            return
        message = f"{stage}: excluded {report.n_excluded} records with unparseable fields"
        logger.warning(message)
        warnings.warn(message)
        self._log(message)

    def _log(self, message: str):
        """Add message to processing log"""
        self.processing_log.append(f"{datetime.now().strftime('%H:%M:%S')}: {message}")
        logger.debug(message)

    def get_processing_log(self) -> List[str]:
        """Get processing log"""
        return self.processing_log.copy()


# ---------------------------------------------------------------------------
# Schema normalizer
# ---------------------------------------------------------------------------

class SchemaNormalizer(_ProcessorBase):
    """
    Turn raw string rows into typed records

    Canonicalises column names once, drops re-parsed header rows, and parses
    ``cocoa_percent`` and ``rating`` to floats. Records with unparseable
    numeric fields are excluded and reported (or raised, depending on the
    ``on_parse_error`` policy). Running it on its own output is a no-op.
    Row labels of the input are kept.
    """

    def normalize(self, raw: pd.DataFrame) -> Tuple[pd.DataFrame, CleaningReport]:
        """
        Normalize a raw ratings table

        Args:
            raw: Frame as produced by the loader (or a previous normalize)

        Returns:
            Tuple of (typed frame, cleaning report)

        Raises:
            SchemaError: two headers canonicalise to the same name
            ParseError: only under the 'raise' policy
        """
        self.processing_log = []
        data = raw.copy()
        report = CleaningReport(n_input=len(data))

        canonical = canonicalize_column_names(list(data.columns))
        duplicates = find_duplicate_names(canonical)
        if duplicates:
            raise SchemaError(f"Ambiguous columns after canonicalisation: {sorted(duplicates)}")

        fields = [COLUMN_ALIASES.get(name, name) for name in canonical]
        duplicates = find_duplicate_names(fields)
        if duplicates:
            raise SchemaError(f"Columns map to the same field: {sorted(duplicates)}")

        data.columns = fields
        self._log(f"Canonicalised {len(fields)} column names")

        header_rows = self._header_row_mask(data, dict(zip(fields, canonical)))
        report.n_dropped_headers = int(header_rows.sum())
        if report.n_dropped_headers:
            data = data.loc[~header_rows]
            logger.info("Dropped %d re-parsed header rows", report.n_dropped_headers)
            self._log(f"Dropped {report.n_dropped_headers} re-parsed header rows")

        failed = set()
        for column, parser in (('cocoa_percent', parse_percent), ('rating', parse_rating)):
            if column not in data.columns:
                continue
            parsed, bad = self._coerce_column(data, column, parser, report.issues)
            failed.update(bad)
            data[column] = pd.Series(parsed, index=data.index, dtype=float)
            self._log(f"Parsed {column} ({len(bad)} failures)")

        if failed:
            data = data.drop(index=list(failed))

        report.n_output = len(data)
        self._report_issues(report, 'Schema normalizer')
        return data, report

    @staticmethod
    def _header_row_mask(data: pd.DataFrame, canonical_headers: Dict[str, str]) -> pd.Series:
        """Rows whose every value canonicalises to its own column's header"""
        mask = pd.Series(True, index=data.index)
        for column, header in canonical_headers.items():
            values = data[column].map(lambda v: canonicalize_column_name(v) if isinstance(v, str) else None)
            mask &= values == header
        return mask


# ---------------------------------------------------------------------------
# Derived-field deriver
# ---------------------------------------------------------------------------

class FieldDeriver(_ProcessorBase):
    """
    Add derived fields to normalized records

    - ``review_date``: January 1 of the review year, ``review_year`` alongside
    - ``company`` / ``maker``: split of ``company_maker``

    Existing derived values are recomputed from their sources, so deriving
    twice gives the same table.
    """

    def derive(self, records: pd.DataFrame) -> Tuple[pd.DataFrame, CleaningReport]:
        """
        Derive review dates and company / maker fields

        Args:
            records: Output of ``SchemaNormalizer.normalize``

        Returns:
            Tuple of (frame with derived columns, cleaning report)
        """
        self.processing_log = []
        data = records.copy()
        report = CleaningReport(n_input=len(data))
        failed = set()

        if 'review_date' in data.columns:
            dates, bad = self._coerce_column(data, 'review_date', year_to_date, report.issues)
            failed.update(bad)
            data['review_date'] = pd.to_datetime(pd.Series(dates, index=data.index, dtype=object))
            self._log(f"Derived review dates ({len(bad)} failures)")

        if 'company_maker' in data.columns:
            parts, bad = self._coerce_column(data, 'company_maker', split_company_maker, report.issues)
            failed.update(bad)
            company = pd.Series({idx: p[0] for idx, p in parts.items()}, index=data.index, dtype=object)
            maker = pd.Series({idx: p[1] for idx, p in parts.items()}, index=data.index, dtype=object)
            data = data.drop(columns=[c for c in ('company', 'maker') if c in data.columns])
            position = data.columns.get_loc('company_maker') + 1
            data.insert(position, 'company', company)
            data.insert(position + 1, 'maker', maker)
            self._log(f"Split company/maker ({int(maker.notna().sum())} makers found)")

        if failed:
            data = data.drop(index=list(failed))

        if 'review_date' in data.columns:
            data['review_year'] = data['review_date'].dt.year.astype(int)

        report.n_output = len(data)
        self._report_issues(report, 'Field deriver')
        return data, report


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class DataValidator:
    """
    Validate cleaned ratings data quality

    Provides validation checks for the cleaned table including:
    - Required field presence
    - Range validation of ratings and cocoa percentages
    - Duplicate review references
    - Summary statistics
    """

    def __init__(self, rating_range: Tuple[float, float] = (1.0, 5.0)):
        self.rating_range = rating_range
        self.validation_results = {}

    def validate_records(self, data: pd.DataFrame) -> Dict[str, Union[bool, List[str], Dict]]:
        """
        Validate a cleaned ratings table

        Args:
            data: Cleaned records

        Returns:
            Dict with 'is_valid', 'errors', 'warnings' and 'statistics'
        """
        self.validation_results = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'statistics': {}
        }

        missing = [col for col in REQUIRED_FIELDS if col not in data.columns]
        if missing:
            self._add_error(f"Missing fields: {missing}")

        if data.empty:
            self._add_warning("No records to validate")
            return self.validation_results

        if 'rating' in data.columns:
            low, high = self.rating_range
            outside = ((data['rating'] < low) | (data['rating'] > high)).sum()
            if outside:
                self._add_warning(f"{outside} ratings outside [{low:g}, {high:g}]")

        if 'ref' in data.columns:
            duplicated = data.duplicated(subset=[c for c in ('ref', 'company_maker', 'specific_bean_origin')
                                                 if c in data.columns]).sum()
            if duplicated:
                self._add_warning(f"Found {duplicated} duplicate reviews")

        if 'broad_bean_origin' in data.columns:
            unknown = int((~known_origin_mask(data)).sum())
            if unknown:
                self._add_warning(f"{unknown} records have an unknown bean origin")

        self._calculate_validation_statistics(data, [c for c in ('rating', 'cocoa_percent') if c in data.columns])
        return self.validation_results

    def _calculate_validation_statistics(self, data: pd.DataFrame, columns: List[str]):
        """Calculate summary statistics for validation"""
        summary = {}

        for col in columns:
            col_data = data[col].dropna()

            summary[col] = {
                'count': len(col_data),
                'missing': int(data[col].isna().sum()),
                'mean': col_data.mean(),
                'std': col_data.std(),
                'min': col_data.min(),
                'max': col_data.max(),
                'median': col_data.median(),
                'skewness': stats.skew(col_data) if len(col_data) > 2 else np.nan,
                'kurtosis': stats.kurtosis(col_data) if len(col_data) > 3 else np.nan
            }

        self.validation_results['statistics'] = summary

    def _add_error(self, message: str):
        """Add error to validation results"""
        self.validation_results['is_valid'] = False
        self.validation_results['errors'].append(message)

    def _add_warning(self, message: str):
        """Add warning to validation results"""
        self.validation_results['warnings'].append(message)
