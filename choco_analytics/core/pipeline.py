"""
Review Pipeline - Load, clean, derive and aggregate in one pass

Threads an explicitly passed records table through each stage; nothing is
held as module state. Fatal errors (unreadable source, bad format,
ambiguous schema) propagate before any aggregate is computed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import pandas as pd

from ..config import AnalyticsConfig, get_config
from ..data.loaders import DataLoader, SourceType
from ..data.processors import CleaningReport, DataValidator, FieldDeriver, SchemaNormalizer
from .aggregator import RatingAggregator

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Cleaned records, cleaning report and aggregate tables of one run"""
    records: pd.DataFrame
    report: CleaningReport
    aggregates: Dict[str, pd.DataFrame] = field(default_factory=dict)
    validation: Dict[str, Any] = field(default_factory=dict)

    def report_summary(self, sample: int = 5) -> Dict[str, Any]:
        return self.report.summary(sample)


class ReviewPipeline:
    """
    End-to-end chocolate-bar ratings pipeline

    Attributes:
        config (AnalyticsConfig): Active configuration
        loader (DataLoader): Source loader
        normalizer (SchemaNormalizer): Column / type normalizer
        deriver (FieldDeriver): Derived-field builder
    """

    def __init__(self, config: Optional[AnalyticsConfig] = None):
        self.config = config or get_config()
        self.loader = DataLoader(
            delimiter=self.config.data_source.delimiter,
            encoding=self.config.data_source.encoding,
        )
        self.normalizer = SchemaNormalizer(on_parse_error=self.config.cleaning.on_parse_error)
        self.deriver = FieldDeriver(on_parse_error=self.config.cleaning.on_parse_error)
        self.validator = DataValidator()

    def clean(self, raw: pd.DataFrame) -> Tuple[pd.DataFrame, CleaningReport]:
        """
        Normalize and derive fields of a raw table

        Report rows refer to the raw table's row labels; the cleaned records
        come back with a fresh index.

        Returns:
            Tuple of (cleaned records, combined cleaning report)
        """
        normalized, normalize_report = self.normalizer.normalize(raw)
        records, derive_report = self.deriver.derive(normalized)
        return records.reset_index(drop=True), normalize_report.merge(derive_report)

    def aggregate(self, records: pd.DataFrame) -> Dict[str, pd.DataFrame]:
        """Compute every configured aggregate table"""
        settings = self.config.aggregation
        aggregator = RatingAggregator(records, min_origin_length=self.config.cleaning.min_origin_length)
        return aggregator.summarize_all(
            threshold=settings.low_rating_threshold,
            company_min_count=settings.company_min_count,
            maker_min_count=settings.maker_min_count,
            origin_min_count=settings.origin_min_count,
            location_min_count=settings.location_min_count,
        )

    def run_frame(self, raw: pd.DataFrame) -> PipelineResult:
        """Run cleaning and aggregation on an already-loaded raw table"""
        records, report = self.clean(raw)

        validation = {}
        if self.config.cleaning.validate_records:
            validation = self.validator.validate_records(records)
            for message in validation['warnings']:
                logger.warning(message)

        aggregates = self.aggregate(records)
        logger.info(
            "Pipeline finished: %d of %d rows kept, %d excluded, %d header rows dropped",
            report.n_output, report.n_input, report.n_excluded, report.n_dropped_headers
        )
        return PipelineResult(records=records, report=report, aggregates=aggregates, validation=validation)

    def run(self, source: SourceType) -> PipelineResult:
        """
        Load a ratings source and run the full pipeline

        Args:
            source: Path or open text handle of the ratings CSV

        Returns:
            PipelineResult
        """
        raw = self.loader.load_from_file(source, check_required=self.config.data_source.check_required_columns)
        return self.run_frame(raw)

    def run_sample(self, **kwargs) -> PipelineResult:
        """Run the pipeline on synthetic sample data"""
        return self.run_frame(self.loader.load_sample_data(**kwargs))

    def get_processing_log(self) -> list:
        return self.normalizer.get_processing_log() + self.deriver.get_processing_log()
