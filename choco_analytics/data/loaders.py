"""
Data Loaders - Load raw chocolate-bar ratings into memory

Provides data loading capabilities for:
- Delimited text files (the published ratings CSV)
- Open text handles (uploads, in-memory buffers)
- Synthetic sample data for demonstrations and tests

Loaders never retype values: every field comes back as a string, in input
order, under its original header.
"""

import csv
import io
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, List, Union

import pandas as pd

from ..exceptions import FormatError
from ..utils.constants import (
    COLUMN_ALIASES, DEFAULT_DELIMITER, DEFAULT_ENCODING, REQUIRED_FIELDS, SUPPORTED_FILE_FORMATS
)
from ..utils.helpers import canonicalize_column_name, create_sample_reviews

logger = logging.getLogger(__name__)

SourceType = Union[str, os.PathLike, IO[str]]


def _check_source_path(source: SourceType) -> None:
    """Raise the OSError family for paths that cannot be read"""
    if isinstance(source, (str, os.PathLike)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Data file not found: {source}")
        if path.is_dir():
            raise IsADirectoryError(f"Expected a file, got a directory: {source}")


def _read_source_text(source: SourceType, encoding: str) -> str:
    """Read a path or text handle into one string"""
    _check_source_path(source)

    if not isinstance(source, (str, os.PathLike)):
        return source.read()

    try:
        with open(source, 'r', encoding=encoding, newline='') as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise FormatError(f"Source is not valid {encoding} text: {e}") from e


def _check_row_shapes(text: str, delimiter: str) -> None:
    """
    Reject rows whose field count differs from the header's

    pandas pads short rows with empty values, so field counts are checked
    on the source text before it is parsed into a frame.

    Raises:
        FormatError: source has no header, or a row has too few or too many fields
    """
    reader = csv.reader(io.StringIO(text), delimiter=delimiter)
    n_fields = None
    offending = []

    for record in reader:
        if not record:
            continue
        if n_fields is None:
            n_fields = len(record)
        elif len(record) != n_fields:
            offending.append((reader.line_num, len(record)))

    if n_fields is None:
        raise FormatError("Source is empty, header row missing")

    if offending:
        shown = ', '.join(f"line {line} has {count}" for line, count in offending[:10])
        raise FormatError(
            f"{len(offending)} rows do not match the header's {n_fields} fields ({shown})"
        )


def missing_required_headers(headers: List[str]) -> List[str]:
    """Return required fields that no header canonicalises to"""
    present = set()
    for header in headers:
        canonical = canonicalize_column_name(header)
        present.add(COLUMN_ALIASES.get(canonical, canonical))
    return [field for field in REQUIRED_FIELDS if field not in present]


def load_raw_reviews(
    source: SourceType,
    delimiter: str = DEFAULT_DELIMITER,
    encoding: str = DEFAULT_ENCODING,
    check_required: bool = True
) -> pd.DataFrame:
    """
    Read a delimited ratings source into a frame of raw strings

    The first non-blank line is the header. Every following row must carry
    exactly as many fields as the header; short rows are rejected rather
    than padded.

    Args:
        source: Path or open text handle
        delimiter: Field delimiter
        encoding: Text encoding (paths only)
        check_required: Require the published source's columns in the header

    Returns:
        DataFrame of strings with the original headers, input order preserved

    Raises:
        FileNotFoundError / OSError: source cannot be read
        FormatError: header missing or row shapes inconsistent
    """
    text = _read_source_text(source, encoding)
    _check_row_shapes(text, delimiter)

    try:
        table = pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError as e:
        raise FormatError(f"Source is empty, header row missing: {e}") from e
    except pd.errors.ParserError as e:
        raise FormatError(f"Malformed source: {e}") from e

    if table.empty:
        raise FormatError("Source is empty, header row missing")

    header_cells = table.iloc[0].tolist()
    blank = [i for i, cell in enumerate(header_cells) if pd.isna(cell) or str(cell).strip() == '']
    if blank:
        raise FormatError(f"Blank header cells at positions {blank}")
    headers = [str(cell) for cell in header_cells]

    rows = table.iloc[1:].reset_index(drop=True)
    rows.columns = headers

    if check_required:
        missing = missing_required_headers(headers)
        if missing:
            raise FormatError(f"Header row missing or incomplete, no column for: {missing}")

    logger.info("Loaded %d raw rows with %d columns", len(rows), len(headers))
    return rows


class BaseDataLoader(ABC):
    """Base class for all data loaders"""

    def __init__(self, delimiter: str = DEFAULT_DELIMITER, encoding: str = DEFAULT_ENCODING):
        """
        Initialize base data loader

        Args:
            delimiter: Field delimiter for delimited sources
            encoding: Text encoding for file sources
        """
        self.delimiter = delimiter
        self.encoding = encoding

    @abstractmethod
    def load_data(self, **kwargs) -> pd.DataFrame:
        """Load data - must be implemented by subclasses"""
        pass


class DataLoader(BaseDataLoader):
    """General purpose loader for ratings files and sample data"""

    def load_from_file(
        self,
        file_path: SourceType,
        check_required: bool = True
    ) -> pd.DataFrame:
        """
        Load raw reviews from a delimited file or handle

        Args:
            file_path: Path to data file, or an open text handle
            check_required: Require the published source's columns

        Returns:
            DataFrame of raw strings
        """
        if isinstance(file_path, (str, os.PathLike)):
            suffix = Path(file_path).suffix.lower()
            if suffix and suffix not in SUPPORTED_FILE_FORMATS:
                raise ValueError(f"Unsupported file format: {suffix}")

        return load_raw_reviews(
            file_path,
            delimiter=self.delimiter,
            encoding=self.encoding,
            check_required=check_required,
        )

    def load_sample_data(
        self,
        n_reviews: int = 600,
        include_header_row: bool = True,
        seed: int = 42,
        **kwargs
    ) -> pd.DataFrame:
        """
        Load synthetic raw reviews for testing and demonstration

        Args:
            n_reviews: Number of reviews to generate
            include_header_row: Insert the spurious duplicate header row
            seed: Random seed
            **kwargs: Additional parameters for sample data generation

        Returns:
            DataFrame of raw strings shaped like the published source
        """
        return create_sample_reviews(
            n_reviews=n_reviews,
            include_header_row=include_header_row,
            seed=seed,
            **kwargs
        )

    def load_data(self, source: str = 'file', **kwargs) -> pd.DataFrame:
        """
        Load data from specified source

        Args:
            source: Data source ('file', 'sample')
            **kwargs: Source-specific arguments

        Returns:
            DataFrame with raw reviews
        """
        if source == 'file':
            return self.load_from_file(**kwargs)
        elif source == 'sample':
            return self.load_sample_data(**kwargs)
        else:
            raise ValueError(f"Unknown data source: {source}")
