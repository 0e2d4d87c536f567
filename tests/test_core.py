"""
Test core aggregation, pipeline and configuration functionality
"""

import io

import pytest
import pandas as pd
import numpy as np

from choco_analytics import (
    RatingAggregator, ReviewPipeline, AnalyticsConfig, get_config, reset_config,
    FormatError, SchemaError
)
from choco_analytics.core import aggregator as agg
from choco_analytics.utils.constants import SOURCE_HEADERS
from .conftest import make_records, make_raw_row, make_raw_frame, assert_valid_aggregate


class TestRatingAggregator:
    """Test grouped rating summaries"""

    def test_group_by_year_empty(self):
        """Empty input gives an empty result, not an error"""
        assert len(agg.group_by_year(make_records([]))) == 0
        assert len(RatingAggregator(pd.DataFrame()).group_by_year()) == 0

    def test_group_by_year(self):
        records = make_records([3.0, 4.0, 2.0], years=[2010, 2010, 2008])
        table = agg.group_by_year(records)

        assert_valid_aggregate(table, with_std=True)
        assert [d.year for d in table.index] == [2010, 2008]
        assert table.loc[pd.Timestamp('2010-01-01'), 'count'] == 2
        assert table.loc[pd.Timestamp('2010-01-01'), 'mean_rating'] == pytest.approx(3.5)
        assert table.loc[pd.Timestamp('2010-01-01'), 'std_rating'] == pytest.approx(np.sqrt(0.5))

    def test_single_review_year_std_is_nan(self):
        table = agg.group_by_year(make_records([2.0], years=[2008]))
        assert np.isnan(table.loc[pd.Timestamp('2008-01-01'), 'std_rating'])

    def test_low_rating_share(self):
        """Two of four ratings fall below 2.5"""
        table = agg.low_rating_share(make_records([1.0, 2.0, 3.0, 4.0]), threshold=2.5)
        row = table.loc[pd.Timestamp('2012-01-01')]

        assert row['count_below'] == 2
        assert row['total'] == 4
        assert row['fraction'] == 0.5

    def test_low_rating_share_rounding(self):
        table = agg.low_rating_share(make_records([1.0, 3.0, 3.0]))
        assert table['fraction'].iloc[0] == 0.33

    def test_low_rating_share_empty(self):
        table = agg.low_rating_share(make_records([]))

        assert len(table) == 0
        assert list(table.columns) == ['count_below', 'total', 'fraction']

    def test_group_by_company_strict_minimum(self):
        """Exactly ten reviews is not enough; eleven is"""
        companies = ['Ten'] * 10 + ['Eleven'] * 11
        records = make_records([3.0] * 21, companies=companies)
        table = agg.group_by_company(records, min_count=10)

        assert_valid_aggregate(table)
        assert 'Ten' not in table.index
        assert 'Eleven' in table.index
        assert table.loc['Eleven', 'count'] == 11

    def test_group_by_company_keeps_first_seen_order(self):
        records = make_records([3.0, 4.0, 2.0], companies=['Zeta', 'Alpha', 'Zeta'])
        table = agg.group_by_company(records, min_count=0)

        assert table.index.tolist() == ['Zeta', 'Alpha']
        assert table.loc['Zeta', 'mean_rating'] == pytest.approx(2.5)

    def test_group_by_maker_inclusive_minimum(self):
        makers = ['Chapuis'] * 3 + ['Coppeneur'] * 2 + [None] * 5
        records = make_records([3.0] * 10, makers=makers)
        table = agg.group_by_maker(records, min_count=3)

        assert table.index.tolist() == ['Chapuis']
        assert table.loc['Chapuis', 'count'] == 3

    def test_group_by_origin_known_only(self):
        """Unknown origins never form a group"""
        origins = ['Peru'] * 11 + ['\xa0'] * 11 + [''] * 11 + ['Ghana'] * 10 + ['P'] * 12
        records = make_records([3.0] * len(origins), origins=origins)
        table = agg.group_by_origin(records, min_count=10)

        assert table.index.tolist() == ['Peru']

    def test_group_by_origin_trims_names(self):
        records = make_records([3.0, 4.0], origins=['Peru', 'Peru '])
        table = agg.group_by_origin(records, min_count=0)

        assert table.loc['Peru', 'count'] == 2

    def test_group_by_location(self):
        records = make_records([3.0, 4.0, 2.0], locations=['France', 'U.S.A.', 'France'])
        table = agg.group_by_location(records)

        assert table.index.tolist() == ['France', 'U.S.A.']
        assert table.loc['France', 'mean_rating'] == pytest.approx(2.5)

    def test_company_origin_heatmap_counts(self):
        companies = ['Soma'] * 11 + ['Fresco'] * 5
        origins = ['Peru'] * 6 + ['Ghana'] * 4 + [''] + ['Peru'] * 5
        records = make_records([3.0] * 16, companies=companies, origins=origins)
        matrix = agg.company_origin_heatmap_counts(records)

        assert matrix.index.tolist() == ['Soma']
        assert matrix.columns.tolist() == ['Peru', 'Ghana']
        assert matrix.loc['Soma', 'Peru'] == 6
        assert matrix.loc['Soma', 'Ghana'] == 4

    def test_heatmap_zero_fill(self):
        companies = ['A', 'A', 'B']
        origins = ['Peru', 'Ghana', 'Peru']
        matrix = agg.company_origin_heatmap_counts(
            make_records([3.0] * 3, companies=companies, origins=origins), min_count=0
        )

        assert matrix.loc['B', 'Ghana'] == 0

    def test_heatmap_empty(self):
        assert agg.company_origin_heatmap_counts(make_records([3.0])).empty

    def test_input_not_modified(self, cleaned_records):
        before = cleaned_records.copy()
        RatingAggregator(cleaned_records).summarize_all()

        pd.testing.assert_frame_equal(before, cleaned_records)

    def test_summarize_all(self, cleaned_records):
        tables = RatingAggregator(cleaned_records).summarize_all()

        assert set(tables) == {
            'by_year', 'low_rating_share', 'by_company', 'by_maker',
            'by_origin', 'by_location', 'company_origin_counts'
        }
        assert tables['by_year']['count'].sum() == len(cleaned_records)

    def test_rating_summary(self, cleaned_records):
        summary = RatingAggregator(cleaned_records).rating_summary()

        assert summary.loc['count', 'rating'] == len(cleaned_records)
        assert 1.0 <= summary.loc['mean', 'rating'] <= 5.0

    def test_cocoa_rating_correlation(self):
        records = make_records([2.0, 2.5, 3.0, 3.5, 4.0], cocoa=[60.0, 65.0, 70.0, 75.0, 80.0])
        result = RatingAggregator(records).cocoa_rating_correlation()

        assert result['coefficient'] == pytest.approx(1.0)
        assert result['n'] == 5

    def test_correlation_too_few_records(self):
        with pytest.warns(UserWarning):
            result = RatingAggregator(make_records([3.0])).cocoa_rating_correlation('spearman')
        assert np.isnan(result['coefficient'])

    def test_correlation_unknown_method(self):
        with pytest.raises(ValueError):
            RatingAggregator(make_records([3.0])).cocoa_rating_correlation('kendall')

    def test_missing_rating_column(self):
        with pytest.raises(ValueError):
            RatingAggregator(pd.DataFrame({'company': ['A']}))


class TestReviewPipeline:
    """Test the end-to-end pipeline"""

    def test_run_from_file(self, sample_csv_file):
        result = ReviewPipeline(AnalyticsConfig()).run(sample_csv_file)

        assert len(result.records) == 300
        assert result.report.n_input == 301
        assert result.report.n_dropped_headers == 1
        assert result.report.n_excluded == 0
        assert 'by_year' in result.aggregates
        assert result.validation['is_valid']

    def test_run_sample(self):
        result = ReviewPipeline(AnalyticsConfig()).run_sample(n_reviews=100)
        assert len(result.records) == 100

    def test_per_record_errors_reported(self):
        raw = make_raw_frame([make_raw_row(), make_raw_row(cocoa_percent='abc'), make_raw_row(review_date='08')])
        buffer = io.StringIO()
        raw.to_csv(buffer, index=False)
        buffer.seek(0)

        with pytest.warns(UserWarning):
            result = ReviewPipeline(AnalyticsConfig()).run(buffer)

        summary = result.report_summary()
        assert len(result.records) == 1
        assert summary['n_excluded'] == 2
        assert len(summary['sample']) == 2

    def test_exclusions_counted_across_stages(self):
        """A record dropped by each stage counts twice, with source row labels"""
        raw = make_raw_frame([make_raw_row(), make_raw_row(cocoa_percent='abc'), make_raw_row(review_date='08')])

        with pytest.warns(UserWarning):
            records, report = ReviewPipeline(AnalyticsConfig()).clean(raw)

        assert report.n_excluded == 2
        assert [(i.row, i.column) for i in report.issues] == [(1, 'cocoa_percent'), (2, 'review_date')]
        assert isinstance(records.index, pd.RangeIndex)
        assert len(records) == 1

    def test_out_of_range_year_excluded(self):
        raw = make_raw_frame([make_raw_row(), make_raw_row(review_date='0000')])

        with pytest.warns(UserWarning):
            records, report = ReviewPipeline(AnalyticsConfig()).clean(raw)

        assert len(records) == 1
        assert report.issues[0].value == '0000'

    def test_missing_file_is_fatal(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ReviewPipeline(AnalyticsConfig()).run(tmp_path / 'missing.csv')

    def test_format_error_is_fatal(self):
        with pytest.raises(FormatError):
            ReviewPipeline(AnalyticsConfig()).run(io.StringIO('a,b\n1,2\n'))

    def test_ambiguous_schema_is_fatal(self):
        header = ','.join(f'"{h}"' for h in SOURCE_HEADERS) + ',RATING\n'
        row = 'Soma,Peru,1,2012,70%,Canada,3.5,Criollo,Peru,3.5\n'
        with pytest.raises(SchemaError):
            ReviewPipeline(AnalyticsConfig()).run(io.StringIO(header + row))

    def test_configured_thresholds(self, sample_raw_reviews):
        config = AnalyticsConfig()
        config.update_from_dict({'aggregation': {'company_min_count': 1000, 'low_rating_threshold': 5.1}})
        result = ReviewPipeline(config).run_frame(sample_raw_reviews)

        assert result.aggregates['by_company'].empty
        assert (result.aggregates['low_rating_share']['fraction'] == 1.0).all()


class TestConfiguration:
    """Test configuration handling"""

    def test_defaults(self):
        config = AnalyticsConfig()

        assert config.cleaning.on_parse_error == 'exclude'
        assert config.aggregation.low_rating_threshold == 2.5
        assert config.aggregation.company_min_count == 10
        assert config.aggregation.maker_min_count == 3
        assert config.model.predictors == ['cocoa_percent', 'review_year', 'company_location']
        assert config.validate_configuration()['errors'] == []

    def test_yaml_file(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text("aggregation:\n  origin_min_count: 5\ncleaning:\n  on_parse_error: raise\n")
        config = AnalyticsConfig(str(path))

        assert config.aggregation.origin_min_count == 5
        assert config.cleaning.on_parse_error == 'raise'

    def test_save_and_reload(self, tmp_path):
        config = AnalyticsConfig()
        config.aggregation.maker_min_count = 7
        path = tmp_path / 'saved.yaml'
        config.save_configuration(str(path))

        assert AnalyticsConfig(str(path)).aggregation.maker_min_count == 7

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv('CHOCO_LOW_RATING_THRESHOLD', '3.0')
        monkeypatch.setenv('CHOCO_ON_PARSE_ERROR', 'raise')
        config = AnalyticsConfig()

        assert config.aggregation.low_rating_threshold == 3.0
        assert config.cleaning.on_parse_error == 'raise'

    def test_invalid_environment_value(self, monkeypatch):
        monkeypatch.setenv('CHOCO_COMPANY_MIN_COUNT', 'many')
        with pytest.warns(UserWarning):
            config = AnalyticsConfig()
        assert config.aggregation.company_min_count == 10

    def test_validation_errors(self):
        config = AnalyticsConfig()
        config.cleaning.on_parse_error = 'coerce'
        config.aggregation.maker_min_count = -1

        issues = config.validate_configuration()
        assert len(issues['errors']) == 2

    def test_global_config(self):
        reset_config()
        first = get_config()

        assert get_config() is first
        reset_config()
        assert get_config() is not first
        reset_config()
