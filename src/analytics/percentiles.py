"""
Percentile calculations over the reference curves.

Two-stage interpolation:
1. Across age: each band value (p3..p97) is interpolated linearly between
   the two tabulated rows around the requested age.
2. Across percentile: the five (percentile, value) pairs form a monotonic
   piecewise-linear curve; the percentile of a value is interpolated within
   the segment that contains it.

Values outside the p3..p97 bands are extrapolated with the slope of the
nearest segment and clamped to [0.1, 99.9].

The z-score reported with each percentile is the standard normal score of
the clamped percentile.
"""

from __future__ import annotations

from scipy import stats

from src.models import Gender, Metric, PercentileResult

from .reference import ReferenceCurveStore

MIN_PERCENTILE = 0.1
MAX_PERCENTILE = 99.9

Curve = tuple[tuple[float, float], ...]


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class PercentileCalculator:
    """Maps measured values to percentiles and back."""

    def __init__(self, store: ReferenceCurveStore):
        self.store = store

    def curve_at(
        self,
        metric: Metric,
        gender: Gender,
        age_months: int,
    ) -> tuple[Curve, bool]:
        """
        Get the (percentile, value) band curve at an exact age.

        Returns:
            The curve and whether the age lies outside the tabulated range
        """
        lower, upper = self.store.bracket(metric, gender, age_months)
        outside = (
            age_months < self.store.min_age(metric, gender)
            or age_months > self.store.max_age(metric, gender)
        )
        if lower is upper:
            return lower.bands, outside

        t = (age_months - lower.age_months) / (upper.age_months - lower.age_months)
        curve = tuple(
            (p, lo + t * (hi - lo))
            for (p, lo), (_, hi) in zip(lower.bands, upper.bands)
        )
        return curve, outside

    def percentile_for_value(
        self,
        metric: Metric,
        gender: Gender,
        age_months: int,
        value: float,
    ) -> PercentileResult:
        """
        Calculate the percentile rank of a measured value.

        Args:
            metric: Which reference curve to use
            gender: "male" or "female"
            age_months: Age at measurement
            value: Measured value in kg or cm

        Returns:
            PercentileResult, flagged extrapolated when the age or the value
            falls outside the tabulated range
        """
        curve, extrapolated = self.curve_at(metric, gender, age_months)
        percentile, outside_bands = _percentile_on_curve(curve, value)
        percentile = _clamp(percentile, MIN_PERCENTILE, MAX_PERCENTILE)

        return PercentileResult(
            metric=metric,
            age_months=age_months,
            value=value,
            percentile=percentile,
            z_score=z_from_percentile(percentile),
            extrapolated=extrapolated or outside_bands,
        )

    def value_at_percentile(
        self,
        metric: Metric,
        gender: Gender,
        age_months: int,
        percentile: float,
    ) -> float:
        """
        Calculate the value at a given percentile.

        Args:
            metric: Which reference curve to use
            gender: "male" or "female"
            age_months: Age in months
            percentile: Target percentile, strictly between 0 and 100

        Returns:
            Value in kg or cm at that percentile
        """
        if not 0 < percentile < 100:
            raise ValueError(f"Percentile must be between 0 and 100, got {percentile}")
        curve, _ = self.curve_at(metric, gender, age_months)
        return _value_on_curve(curve, percentile)


def z_from_percentile(percentile: float) -> float:
    """Convert percentile to Z-score using inverse normal CDF."""
    return float(stats.norm.ppf(percentile / 100))


def _percentile_on_curve(curve: Curve, value: float) -> tuple[float, bool]:
    for p, v in curve:
        if value == v:
            return p, False

    (p_first, v_first), (p_second, v_second) = curve[0], curve[1]
    if value < v_first:
        slope = (p_second - p_first) / (v_second - v_first)
        return p_first + (value - v_first) * slope, True

    (p_before, v_before), (p_last, v_last) = curve[-2], curve[-1]
    if value > v_last:
        slope = (p_last - p_before) / (v_last - v_before)
        return p_last + (value - v_last) * slope, True

    for (p_lo, v_lo), (p_hi, v_hi) in zip(curve, curve[1:]):
        if v_lo <= value <= v_hi:
            return p_lo + (value - v_lo) / (v_hi - v_lo) * (p_hi - p_lo), False

    raise ValueError(f"Cannot place {value} on reference curve")


def _value_on_curve(curve: Curve, percentile: float) -> float:
    for p, v in curve:
        if percentile == p:
            return v

    (p_first, v_first), (p_second, v_second) = curve[0], curve[1]
    if percentile < p_first:
        slope = (v_second - v_first) / (p_second - p_first)
        return v_first + (percentile - p_first) * slope

    (p_before, v_before), (p_last, v_last) = curve[-2], curve[-1]
    if percentile > p_last:
        slope = (v_last - v_before) / (p_last - p_before)
        return v_last + (percentile - p_last) * slope

    for (p_lo, v_lo), (p_hi, v_hi) in zip(curve, curve[1:]):
        if p_lo <= percentile <= p_hi:
            return v_lo + (percentile - p_lo) / (p_hi - p_lo) * (v_hi - v_lo)

    raise ValueError(f"Cannot place percentile {percentile} on reference curve")
