"""
Growth comparison: current measurement vs previous measurement vs ideal.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable

from src.models import (
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
)

from .descriptor import DescriptorBuilder
from .errors import InvalidMeasurement
from .percentiles import PercentileCalculator

logger = logging.getLogger(__name__)

Percentiles = dict[Metric, float]

VALUE_FIELDS = {
    Metric.WEIGHT: "weight_kg",
    Metric.HEIGHT: "height_cm",
    Metric.HEAD_CIRCUMFERENCE: "head_circumference_cm",
}


def _below(percentiles: Percentiles, metric: Metric, threshold: float) -> bool:
    p = percentiles.get(metric)
    return p is not None and p < threshold


def _above(percentiles: Percentiles, metric: Metric, threshold: float) -> bool:
    p = percentiles.get(metric)
    return p is not None and p > threshold


@dataclass(frozen=True)
class ClassificationRule:
    """One rule of the ordered classification; the first match wins."""
    status: HealthStatus
    description: str
    matches: Callable[[Percentiles], bool]


# Thresholds are exclusive: exactly p15 or p85 stays normal
CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        HealthStatus.ALERT,
        "weight or height below p3, or weight above p97",
        lambda p: (
            _below(p, Metric.WEIGHT, 3)
            or _below(p, Metric.HEIGHT, 3)
            or _above(p, Metric.WEIGHT, 97)
        ),
    ),
    ClassificationRule(
        HealthStatus.WATCH,
        "weight or height outside p15-p85",
        lambda p: (
            _below(p, Metric.WEIGHT, 15)
            or _above(p, Metric.WEIGHT, 85)
            or _below(p, Metric.HEIGHT, 15)
            or _above(p, Metric.HEIGHT, 85)
        ),
    ),
)


def classify(percentiles: Percentiles) -> HealthStatus:
    """Classify percentile ranks into a health status."""
    for rule in CLASSIFICATION_RULES:
        if rule.matches(percentiles):
            return rule.status
    return HealthStatus.NORMAL


def _delta(current: float | None, previous: float | None) -> float | None:
    if current is None or previous is None:
        return None
    return current - previous


def _is_usable(value: float) -> bool:
    return math.isfinite(value) and value > 0


def validate_measurement(measurement: Measurement) -> None:
    """
    Check the current measurement before any interpolation.

    Raises:
        InvalidMeasurement: missing age, missing weight, or a value that is
            not a positive finite number
    """
    when = measurement.taken_on.isoformat()
    if measurement.age_months is None:
        raise InvalidMeasurement(f"Measurement on {when} has no age")
    if measurement.age_months < 0:
        raise InvalidMeasurement(f"Measurement on {when} has a negative age")
    if measurement.weight_kg is None:
        raise InvalidMeasurement(f"Measurement on {when} has no weight")
    for metric in measurement.metrics:
        value = measurement.value_for(metric)
        if not _is_usable(value):
            raise InvalidMeasurement(
                f"Measurement on {when} has invalid {metric.value}: {value}"
            )


def usable_previous(measurement: Measurement) -> Measurement | None:
    """
    Clean an earlier measurement for comparison.

    Values that are not positive finite numbers are treated as absent; a
    measurement without a usable age is dropped.
    """
    when = measurement.taken_on.isoformat()
    if measurement.age_months is None or measurement.age_months < 0:
        logger.warning("Ignoring previous measurement on %s without a valid age", when)
        return None

    unusable = {}
    for metric in measurement.metrics:
        value = measurement.value_for(metric)
        if not _is_usable(value):
            logger.warning(
                "Ignoring %s=%s on previous measurement on %s", metric.value, value, when
            )
            unusable[VALUE_FIELDS[metric]] = None
    if unusable:
        return measurement.model_copy(update=unusable)
    return measurement


class ComparisonEngine:
    """Builds growth comparisons for a single consultation."""

    def __init__(
        self,
        calculator: PercentileCalculator,
        descriptor_builder: DescriptorBuilder | None = None,
    ):
        self.calculator = calculator
        self.descriptor_builder = descriptor_builder or DescriptorBuilder()

    def snapshot(
        self,
        measurement: Measurement,
        gender: Gender,
        transform_3d: Descriptor | None = None,
    ) -> MeasurementSnapshot:
        """Calculate percentiles for every metric present on a measurement."""
        results: dict[Metric, PercentileResult] = {}
        for metric in measurement.metrics:
            results[metric] = self.calculator.percentile_for_value(
                metric, gender, measurement.age_months, measurement.value_for(metric)
            )
        return MeasurementSnapshot(
            measurement=measurement, percentile_results=results, transform_3d=transform_3d
        )

    def ideal(self, gender: Gender, age_months: int) -> IdealValues:
        """
        Get the p50 targets for an age.

        Head circumference is only given where its reference table reaches.
        """
        store = self.calculator.store
        head_circumference = None
        if (
            store.has(Metric.HEAD_CIRCUMFERENCE, gender)
            and age_months <= store.max_age(Metric.HEAD_CIRCUMFERENCE, gender)
        ):
            head_circumference = self.calculator.value_at_percentile(
                Metric.HEAD_CIRCUMFERENCE, gender, age_months, 50
            )
        return IdealValues(
            age_months=age_months,
            weight_kg=self.calculator.value_at_percentile(Metric.WEIGHT, gender, age_months, 50),
            height_cm=self.calculator.value_at_percentile(Metric.HEIGHT, gender, age_months, 50),
            head_circumference_cm=head_circumference,
        )

    def compare(
        self,
        current: Measurement,
        previous: Measurement | None,
        gender: Gender,
    ) -> GrowthComparison:
        """
        Compare the current measurement against the previous one and the ideal.

        Args:
            current: The consultation being analysed
            previous: The closest earlier measurement, if any
            gender: "male" or "female"

        Returns:
            GrowthComparison with classification and visualization descriptors
        """
        validate_measurement(current)
        if previous is not None:
            previous = usable_previous(previous)

        ideal = self.ideal(gender, current.age_months)
        transform_3d = self.descriptor_builder.build(current, ideal)
        current_snapshot = self.snapshot(current, gender)

        previous_snapshot = None
        changes = None
        if previous is not None:
            previous_ideal = self.ideal(gender, previous.age_months)
            previous_snapshot = self.snapshot(
                previous, gender, self.descriptor_builder.build(previous, previous_ideal)
            )
            changes = GrowthChanges(
                weight_kg=_delta(current.weight_kg, previous.weight_kg),
                height_cm=_delta(current.height_cm, previous.height_cm),
                head_circumference_cm=_delta(
                    current.head_circumference_cm, previous.head_circumference_cm
                ),
                bmi=_delta(transform_3d.bmi, previous_snapshot.transform_3d.bmi),
                months_elapsed=current.age_months - previous.age_months,
            )

        percentiles = {m: r.percentile for m, r in current_snapshot.percentile_results.items()}

        return GrowthComparison(
            gender=gender,
            current=current_snapshot,
            previous=previous_snapshot,
            ideal=ideal,
            ratio_weight=transform_3d.ratio_weight,
            ratio_height=transform_3d.ratio_height,
            changes=changes,
            bmi=transform_3d.bmi,
            health_status=classify(percentiles),
            transform_3d=transform_3d,
        )
