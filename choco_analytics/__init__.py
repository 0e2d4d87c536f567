"""
Chocolate-bar Ratings Analytics Package

Cleaning, aggregation and illustrative models for expert chocolate-bar
ratings.
"""

__version__ = "1.0.0"
__license__ = "MIT"

# Errors
from .exceptions import ChocoAnalyticsError, FormatError, SchemaError, ParseError

# Data handling
from .data.loaders import DataLoader, load_raw_reviews
from .data.processors import SchemaNormalizer, FieldDeriver, DataValidator, CleaningReport

# Core
from .core.aggregator import RatingAggregator
from .core.pipeline import ReviewPipeline, PipelineResult

# Models
from .models.predictive import RatingModeler, build_model_frame

# Utilities
from .utils.helpers import format_percentage, format_rating, validate_data, create_sample_reviews

# Configuration
from .config import AnalyticsConfig, get_config, reset_config

__all__ = [
    # Errors
    'ChocoAnalyticsError',
    'FormatError',
    'SchemaError',
    'ParseError',

    # Data
    'DataLoader',
    'load_raw_reviews',
    'SchemaNormalizer',
    'FieldDeriver',
    'DataValidator',
    'CleaningReport',

    # Core
    'RatingAggregator',
    'ReviewPipeline',
    'PipelineResult',

    # Models
    'RatingModeler',
    'build_model_frame',

    # Utilities
    'format_percentage',
    'format_rating',
    'validate_data',
    'create_sample_reviews',

    # Configuration
    'AnalyticsConfig',
    'get_config',
    'reset_config'
]

# Package-level configuration
import logging

# Set up logging
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Version info
VERSION_INFO = tuple(map(int, __version__.split('.')))
