"""
Growth analytics service.

Entry point used by the API and CLI. Measurements arrive already fetched
from the measurement store; nothing here performs I/O.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable

from src.config import get_config
from src.models import (
    Gender,
    GrowthComparison,
    IdealValues,
    Measurement,
    MeasurementSnapshot,
    Metric,
    PercentileResult,
    ReferenceCurvePoint,
)

from .comparison import ComparisonEngine
from .descriptor import DescriptorBuilder
from .errors import InvalidMeasurement
from .history import HistoryAggregator
from .percentiles import PercentileCalculator
from .reference import ReferenceCurveStore, default_store

logger = logging.getLogger(__name__)


class GrowthAnalytics:
    """
    Growth analytics over one reference store.

    Stateless apart from the immutable store, so a single instance can serve
    any number of concurrent requests.
    """

    def __init__(
        self,
        store: ReferenceCurveStore | None = None,
        reference_bmi_spread: float | None = None,
    ):
        if reference_bmi_spread is None:
            reference_bmi_spread = get_config().bmi_spread
        self.store = store or default_store()
        self.calculator = PercentileCalculator(self.store)
        self.history = HistoryAggregator()
        self.engine = ComparisonEngine(
            self.calculator, DescriptorBuilder(reference_bmi_spread)
        )

    def get_comparison(
        self,
        gender: Gender,
        birth_date: date,
        measurements: Iterable[Measurement],
        as_of: date | None = None,
    ) -> GrowthComparison:
        """
        Compare the latest measurement up to a date with the one before it.

        Args:
            gender: "male" or "female"
            birth_date: Patient birth date, used to derive every age
            measurements: The patient's measurements, in any order
            as_of: Consultation date; defaults to today

        Raises:
            InvalidMeasurement: no measurement on or before as_of, or the
                current measurement is not usable
        """
        as_of = as_of or date.today()
        eligible = [m for m in measurements if m.taken_on <= as_of]
        if not eligible:
            raise InvalidMeasurement(f"No measurement on or before {as_of.isoformat()}")

        eligible = self.history.normalize(eligible, birth_date)
        current = self.history.current_as_of(eligible, as_of)
        timeline = self.history.timeline(eligible)
        previous = self.history.previous_before(timeline, current)

        comparison = self.engine.compare(current, previous, gender)
        logger.debug(
            "Compared %s at %d months: %s",
            current.patient_id, current.age_months, comparison.health_status.value,
        )
        if comparison.extrapolated:
            logger.warning(
                "Comparison for %s at %d months is outside the reference range",
                current.patient_id, current.age_months,
            )
        return comparison

    def get_history(
        self,
        gender: Gender,
        measurements: Iterable[Measurement],
        birth_date: date | None = None,
    ) -> list[MeasurementSnapshot]:
        """
        Get percentile ranks for every measurement, ordered by age.

        Values that are not positive are left out of the percentile results.
        """
        timeline = self.history.timeline(self.history.normalize(measurements, birth_date))

        entries = []
        for m in timeline:
            results: dict[Metric, PercentileResult] = {}
            for metric in m.metrics:
                value = m.value_for(metric)
                if not value > 0:
                    logger.warning(
                        "Skipping %s=%s for %s on %s",
                        metric.value, value, m.patient_id, m.taken_on.isoformat(),
                    )
                    continue
                results[metric] = self.calculator.percentile_for_value(
                    metric, gender, m.age_months, value
                )
            entries.append(MeasurementSnapshot(measurement=m, percentile_results=results))
        return entries

    def get_curve_series(
        self,
        gender: Gender,
        metric: Metric,
        max_age_months: int,
    ) -> list[ReferenceCurvePoint]:
        """Get reference rows from birth up to an age, for charting."""
        if max_age_months < 0:
            raise ValueError("max_age_months must not be negative")
        return [r for r in self.store.rows(metric, gender) if r.age_months <= max_age_months]

    def get_ideal(self, gender: Gender, age_months: int) -> IdealValues:
        """Get the ideal (p50) weight and height for an age."""
        if age_months < 0:
            raise InvalidMeasurement("Age must not be negative")
        return self.engine.ideal(gender, age_months)

    def percentile_for_value(
        self,
        gender: Gender,
        metric: Metric,
        age_months: int,
        value: float,
    ) -> PercentileResult:
        """Rank a single measured value."""
        if age_months < 0:
            raise InvalidMeasurement("Age must not be negative")
        if not value > 0:
            raise InvalidMeasurement(f"Invalid {metric.value}: {value}")
        return self.calculator.percentile_for_value(metric, gender, age_months, value)
