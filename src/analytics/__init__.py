"""
Growth analytics engine.
"""

from .comparison import (
    CLASSIFICATION_RULES,
    ClassificationRule,
    ComparisonEngine,
    classify,
    usable_previous,
    validate_measurement,
)
from .descriptor import DescriptorBuilder, bmi_status, calculate_bmi
from .errors import (
    GrowthAnalyticsError,
    InvalidMeasurement,
    InvalidReferenceData,
    ReferenceDataMissing,
)
from .history import HistoryAggregator, age_in_months
from .percentiles import PercentileCalculator
from .reference import ReferenceCurveStore, default_store
from .service import GrowthAnalytics

__all__ = [
    "CLASSIFICATION_RULES",
    "ClassificationRule",
    "ComparisonEngine",
    "classify",
    "usable_previous",
    "validate_measurement",
    "DescriptorBuilder",
    "bmi_status",
    "calculate_bmi",
    "GrowthAnalyticsError",
    "InvalidMeasurement",
    "InvalidReferenceData",
    "ReferenceDataMissing",
    "HistoryAggregator",
    "age_in_months",
    "PercentileCalculator",
    "ReferenceCurveStore",
    "default_store",
    "GrowthAnalytics",
]
