#!/usr/bin/env python3
"""
Chocolate-bar Ratings Analytics Example Script

Demonstrates key functionality of the analytics package including:
- Data loading and cleaning
- Cleaning report
- Grouped rating summaries
- Linear and decision-tree rating models

Usage:
    python run_analysis.py [path/to/flavors_of_cacao.csv]

Without a path the synthetic sample data is used.
"""

import sys
import warnings

from choco_analytics import (
    ReviewPipeline, RatingAggregator, RatingModeler,
    format_rating, format_percentage, get_config
)


def main():
    """Run the ratings analytics example"""

    print("🍫 Chocolate-bar Ratings Analytics")
    print("=" * 50)

    # 1. Load Configuration
    print("\n📋 Loading Configuration...")
    config = get_config()
    print(f"✅ Configuration loaded successfully")
    print(f"   - Parse error policy: {config.cleaning.on_parse_error}")
    print(f"   - Low rating threshold: {config.aggregation.low_rating_threshold}")

    # 2. Load and clean
    print("\n📊 Loading and Cleaning Data...")
    pipeline = ReviewPipeline(config)
    if len(sys.argv) > 1:
        result = pipeline.run(sys.argv[1])
    else:
        result = pipeline.run_sample()

    summary = result.report_summary(config.cleaning.report_sample_size)
    records = result.records
    print(f"✅ {summary['n_output']} of {summary['n_input']} rows kept")
    print(f"   - Header rows dropped: {summary['n_dropped_headers']}")
    print(f"   - Records excluded: {summary['n_excluded']}")
    for issue in summary['sample']:
        print(f"     row {issue['row']}: {issue['message']}")

    # 3. Ratings by year
    print("\n📈 Ratings by Review Year...")
    by_year = result.aggregates['by_year'].sort_index()
    low_share = result.aggregates['low_rating_share']
    for date, row in by_year.iterrows():
        share = low_share.loc[date, 'fraction']
        print(f"   {date.year}: {int(row['count']):4d} reviews, "
              f"mean {format_rating(row['mean_rating'])} ± {format_rating(row['std_rating'])}, "
              f"low {format_percentage(share, fraction=True)}")

    # 4. Top companies, makers and origins
    print("\n🏆 Top Groups by Mean Rating...")
    for name in ('by_company', 'by_maker', 'by_origin', 'by_location'):
        table = result.aggregates[name].sort_values('mean_rating', ascending=False).head(5)
        print(f"   {name}:")
        for key, row in table.iterrows():
            print(f"     {key}: {format_rating(row['mean_rating'])} ({int(row['count'])} reviews)")

    # 5. Correlation
    aggregator = RatingAggregator(records, min_origin_length=config.cleaning.min_origin_length)
    correlation = aggregator.cocoa_rating_correlation(config.aggregation.correlation_method)
    print(f"\n🔗 Cocoa percent vs rating ({correlation['method']}): "
          f"r = {correlation['coefficient']:.3f}, p = {correlation['p_value']:.3g}")

    # 6. Models
    print("\n⚡ Fitting Rating Models...")
    modeler = RatingModeler(records, predictors=config.model.predictors,
                            random_state=config.model.random_state)
    for step in modeler.forward_selection():
        print(f"   lm {' + '.join(step.predictors)}: "
              f"R² {step.r_squared:.3f}, adj. R² {step.adjusted_r_squared:.3f}, RMSE {step.rmse:.3f}")

    tree = modeler.fit_decision_tree(max_depth=config.model.tree_max_depth,
                                     min_samples_leaf=config.model.tree_min_samples_leaf)
    print(f"   tree depth {tree.depth}, {tree.n_leaves} leaves: R² {tree.r_squared:.3f}, RMSE {tree.rmse:.3f}")
    for predictor, importance in sorted(tree.feature_importances.items(), key=lambda kv: -kv[1]):
        print(f"     {predictor}: {importance:.2f}")

    print(f"\n✅ Analysis completed successfully!")


if __name__ == "__main__":
    warnings.filterwarnings('ignore', category=RuntimeWarning)

    try:
        main()
    except Exception as e:
        print(f"\n❌ Error running analysis: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
