"""
Configuration Management for Chocolate-bar Ratings Analytics

Centralized configuration for all analytics components including:
- Source file settings
- Cleaning policy
- Aggregation thresholds
- Model collaborator settings
"""

import os
import warnings
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .utils.constants import (
    DEFAULT_DELIMITER, DEFAULT_ENCODING, MIN_ORIGIN_LENGTH, MODEL_PREDICTORS,
    DEFAULT_LOW_RATING_THRESHOLD, DEFAULT_COMPANY_MIN_COUNT, DEFAULT_MAKER_MIN_COUNT,
    DEFAULT_ORIGIN_MIN_COUNT, DEFAULT_LOCATION_MIN_COUNT
)


@dataclass
class DataSourceConfig:
    """Configuration for the ratings source"""
    delimiter: str = DEFAULT_DELIMITER
    encoding: str = DEFAULT_ENCODING
    check_required_columns: bool = True


@dataclass
class CleaningConfig:
    """Configuration for cleaning and field derivation"""
    on_parse_error: str = 'exclude'  # 'exclude', 'raise'
    min_origin_length: int = MIN_ORIGIN_LENGTH
    report_sample_size: int = 5
    validate_records: bool = True


@dataclass
class AggregationConfig:
    """Configuration for grouped summaries"""
    low_rating_threshold: float = DEFAULT_LOW_RATING_THRESHOLD
    company_min_count: int = DEFAULT_COMPANY_MIN_COUNT    # strict
    maker_min_count: int = DEFAULT_MAKER_MIN_COUNT        # inclusive
    origin_min_count: int = DEFAULT_ORIGIN_MIN_COUNT      # strict
    location_min_count: int = DEFAULT_LOCATION_MIN_COUNT  # strict
    correlation_method: str = 'pearson'


@dataclass
class ModelConfig:
    """Configuration for the rating model collaborators"""
    predictors: List[str] = None
    tree_max_depth: Optional[int] = 4
    tree_min_samples_leaf: int = 20
    random_state: int = 42

    def __post_init__(self):
        if self.predictors is None:
            self.predictors = list(MODEL_PREDICTORS)


class AnalyticsConfig:
    """
    Main configuration class for ratings analytics

    Manages all configuration aspects including loading from files,
    environment variables, and providing defaults.
    """

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration

        Args:
            config_file: Path to YAML configuration file
        """
        self.config_file = config_file
        self.config_dir = Path.home() / '.choco_analytics'

        # Initialize with defaults
        self.data_source = DataSourceConfig()
        self.cleaning = CleaningConfig()
        self.aggregation = AggregationConfig()
        self.model = ModelConfig()

        # Load configuration
        self._load_configuration()
        self._load_environment_variables()

    def _load_configuration(self):
        """Load configuration from file"""
        if self.config_file and Path(self.config_file).exists():
            try:
                with open(self.config_file, 'r') as f:
                    config_data = yaml.safe_load(f) or {}

                self.update_from_dict(config_data)

            except (OSError, yaml.YAMLError) as e:
                warnings.warn(f"Failed to load configuration file {self.config_file}: {e}")

    def _load_environment_variables(self):
        """Load configuration from environment variables with validation"""
        threshold = os.getenv('CHOCO_LOW_RATING_THRESHOLD')
        if threshold:
            try:
                self.aggregation.low_rating_threshold = float(threshold)
            except ValueError:
                warnings.warn("Invalid CHOCO_LOW_RATING_THRESHOLD environment variable")

        company_min = os.getenv('CHOCO_COMPANY_MIN_COUNT')
        if company_min:
            try:
                self.aggregation.company_min_count = int(company_min)
            except ValueError:
                warnings.warn("Invalid CHOCO_COMPANY_MIN_COUNT environment variable")

        policy = os.getenv('CHOCO_ON_PARSE_ERROR')
        if policy:
            if policy in ('exclude', 'raise'):
                self.cleaning.on_parse_error = policy
            else:
                warnings.warn("Invalid CHOCO_ON_PARSE_ERROR environment variable")

    def _update_dataclass(self, dataclass_instance, config_dict):
        """Update dataclass instance with values from dictionary"""
        for key, value in config_dict.items():
            if hasattr(dataclass_instance, key):
                setattr(dataclass_instance, key, value)

    def save_configuration(self, file_path: Optional[str] = None):
        """
        Save current configuration to file

        Args:
            file_path: Path to save configuration (if None, use default)
        """
        if file_path is None:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            file_path = self.config_dir / 'config.yaml'

        try:
            with open(file_path, 'w') as f:
                yaml.dump(self.to_dict(), f, default_flow_style=False, indent=2)
        except OSError as e:
            warnings.warn(f"Failed to save configuration to {file_path}: {e}")

    def validate_configuration(self) -> Dict[str, List[str]]:
        """
        Validate configuration settings

        Returns:
            Dict with validation results and any issues found
        """
        issues = {
            'errors': [],
            'warnings': []
        }

        if len(self.data_source.delimiter) != 1:
            issues['errors'].append("Delimiter must be a single character")

        if self.cleaning.on_parse_error not in ('exclude', 'raise'):
            issues['errors'].append(f"Unknown parse error policy: {self.cleaning.on_parse_error}")

        if self.cleaning.min_origin_length < 1:
            issues['errors'].append("Minimum origin length must be positive")

        if not 1.0 <= self.aggregation.low_rating_threshold <= 5.0:
            issues['warnings'].append("Low rating threshold outside the 1-5 rating scale")

        for name in ('company_min_count', 'maker_min_count', 'origin_min_count', 'location_min_count'):
            if getattr(self.aggregation, name) < 0:
                issues['errors'].append(f"{name} must be non-negative")

        if self.aggregation.correlation_method not in ('pearson', 'spearman'):
            issues['errors'].append(f"Unknown correlation method: {self.aggregation.correlation_method}")

        if not self.model.predictors:
            issues['errors'].append("At least one model predictor is required")

        if self.model.tree_max_depth is not None and self.model.tree_max_depth <= 0:
            issues['errors'].append("Tree max depth must be positive")

        if self.model.tree_min_samples_leaf <= 0:
            issues['errors'].append("Tree min samples per leaf must be positive")

        return issues

    def update_from_dict(self, config_dict: Dict[str, Any]):
        """
        Update configuration from dictionary

        Args:
            config_dict: Dictionary with configuration updates
        """
        for section, values in config_dict.items():
            if hasattr(self, section) and isinstance(values, dict):
                self._update_dataclass(getattr(self, section), values)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to dictionary

        Returns:
            Dictionary representation of configuration
        """
        return {
            'data_source': asdict(self.data_source),
            'cleaning': asdict(self.cleaning),
            'aggregation': asdict(self.aggregation),
            'model': asdict(self.model)
        }


# Global configuration instance
_global_config = None


def get_config(config_file: Optional[str] = None) -> AnalyticsConfig:
    """
    Get global configuration instance

    Args:
        config_file: Path to configuration file (only used on first call)

    Returns:
        AnalyticsConfig instance
    """
    global _global_config

    if _global_config is None:
        _global_config = AnalyticsConfig(config_file)

    return _global_config


def reset_config():
    """Reset global configuration (useful for testing)"""
    global _global_config
    _global_config = None
