"""
Core data models for Growthline.

These Pydantic models define the inputs and outputs of the growth analytics
engine. All values are in metric units (kg, cm).
"""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field


# =============================================================================
# ENUMS
# =============================================================================


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class Metric(str, Enum):
    WEIGHT = "weight"
    HEIGHT = "height"
    HEAD_CIRCUMFERENCE = "head_circumference"


class HealthStatus(str, Enum):
    """Clinical risk category, ordered by severity."""
    NORMAL = "normal"
    WATCH = "watch"
    ALERT = "alert"


class BmiStatus(str, Enum):
    """Simplified pediatric BMI category."""
    UNDERWEIGHT = "underweight"
    HEALTHY = "healthy"
    OVERWEIGHT = "overweight"
    OBESE = "obese"


# =============================================================================
# MEASUREMENTS
# =============================================================================


class Measurement(BaseModel):
    """An anthropometric measurement taken at a consultation."""
    model_config = ConfigDict(frozen=True)

    patient_id: str
    taken_on: date
    age_months: int | None = Field(None, description="Whole months of age when measured")

    weight_kg: float | None = None
    height_cm: float | None = None
    head_circumference_cm: float | None = None

    def value_for(self, metric: Metric) -> float | None:
        """Get the measured value for a metric."""
        if metric == Metric.WEIGHT:
            return self.weight_kg
        if metric == Metric.HEIGHT:
            return self.height_cm
        return self.head_circumference_cm

    @property
    def metrics(self) -> list[Metric]:
        """Metrics present on this measurement."""
        return [m for m in Metric if self.value_for(m) is not None]


# =============================================================================
# REFERENCE DATA
# =============================================================================


class ReferenceCurvePoint(BaseModel):
    """Percentile band values for one (metric, gender, age) row."""
    model_config = ConfigDict(frozen=True)

    metric: Metric
    gender: Gender
    age_months: int
    p3: float
    p15: float
    p50: float
    p85: float
    p97: float

    @property
    def bands(self) -> tuple[tuple[float, float], ...]:
        """(percentile, value) pairs from p3 to p97."""
        return (
            (3.0, self.p3),
            (15.0, self.p15),
            (50.0, self.p50),
            (85.0, self.p85),
            (97.0, self.p97),
        )


# =============================================================================
# RESULTS
# =============================================================================


class PercentileResult(BaseModel):
    """Percentile rank of one measured value."""
    metric: Metric
    age_months: int
    value: float
    percentile: float = Field(ge=0.1, le=99.9)
    z_score: float = Field(description="Standard normal score of the percentile")
    extrapolated: bool = False


class Descriptor(BaseModel):
    """Bounded, dimensionless parameters for the body visualization."""
    scale_xz: float = Field(ge=0.5, le=2.0)
    scale_y: float = Field(ge=0.5, le=2.0)
    body_fat_intensity: float = Field(ge=0.0, le=1.0)
    abdominal_expansion: float = Field(ge=0.0, le=1.0)
    ratio_weight: float | None = None
    ratio_height: float | None = None
    bmi: float | None = None
    bmi_status: BmiStatus | None = None


class MeasurementSnapshot(BaseModel):
    """A measurement together with its percentile ranks."""
    measurement: Measurement
    percentile_results: dict[Metric, PercentileResult] = Field(default_factory=dict)
    transform_3d: Descriptor | None = Field(
        None, description="Body descriptor against the ideal at this measurement's age"
    )

    def percentile(self, metric: Metric) -> float | None:
        result = self.percentile_results.get(metric)
        return result.percentile if result else None


class IdealValues(BaseModel):
    """Age-matched p50 targets."""
    age_months: int
    weight_kg: float
    height_cm: float
    head_circumference_cm: float | None = Field(
        None, description="Only within the head circumference reference range"
    )

    @computed_field
    @property
    def bmi(self) -> float:
        height_m = self.height_cm / 100
        return self.weight_kg / (height_m * height_m)


class GrowthChanges(BaseModel):
    """Differences between the current and previous measurement."""
    weight_kg: float | None = None
    height_cm: float | None = None
    head_circumference_cm: float | None = None
    bmi: float | None = None
    months_elapsed: int


class GrowthComparison(BaseModel):
    """Current vs previous vs ideal for one consultation."""
    gender: Gender
    current: MeasurementSnapshot
    previous: MeasurementSnapshot | None = None
    ideal: IdealValues
    ratio_weight: float | None = None
    ratio_height: float | None = None
    changes: GrowthChanges | None = None
    bmi: float | None = None
    health_status: HealthStatus
    transform_3d: Descriptor

    @computed_field
    @property
    def extrapolated(self) -> bool:
        return any(r.extrapolated for r in self.current.percentile_results.values())
