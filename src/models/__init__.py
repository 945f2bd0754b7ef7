"""
Growthline data models.
"""

from .growth import (
    BmiStatus,
    Descriptor,
    Gender,
    GrowthChanges,
    GrowthComparison,
    HealthStatus,
    IdealValues,
    Measurement,
    MeasurementSnapshot,
    Metric,
    PercentileResult,
    ReferenceCurvePoint,
)

__all__ = [
    "BmiStatus",
    "Descriptor",
    "Gender",
    "GrowthChanges",
    "GrowthComparison",
    "HealthStatus",
    "IdealValues",
    "Measurement",
    "MeasurementSnapshot",
    "Metric",
    "PercentileResult",
    "ReferenceCurvePoint",
]
