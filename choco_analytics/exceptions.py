"""
Exceptions raised by the chocolate-bar ratings pipeline

Unreadable sources surface as the built-in ``OSError`` family
(``FileNotFoundError`` and friends). Everything else derives from
``ChocoAnalyticsError``, which is also a ``ValueError`` so callers that only
guard against bad data keep working.
"""

from typing import Any, Optional


class ChocoAnalyticsError(ValueError):
    """Base class for data errors raised by the package"""


class FormatError(ChocoAnalyticsError):
    """Header row missing or row shapes inconsistent. Fatal."""


class SchemaError(ChocoAnalyticsError):
    """Two source headers canonicalise to the same column name. Fatal."""


class ParseError(ChocoAnalyticsError):
    """
    A single field failed type coercion

    Recoverable at record granularity: the normalizer excludes the record
    and lists it in the cleaning report.
    """

    def __init__(self, message: str, column: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.column = column
        self.value = value
