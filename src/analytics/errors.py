"""
Errors raised by the growth analytics engine.
"""


class GrowthAnalyticsError(Exception):
    """Base class for growth analytics errors."""


class ReferenceDataMissing(GrowthAnalyticsError, LookupError):
    """No reference curve rows exist for a (metric, gender) pair."""

    def __init__(self, metric: str, gender: str):
        self.metric = metric
        self.gender = gender
        super().__init__(f"No reference data for {metric} ({gender})")


class InvalidReferenceData(GrowthAnalyticsError, ValueError):
    """A reference table breaks the percentile or growth ordering."""


class InvalidMeasurement(GrowthAnalyticsError, ValueError):
    """A measurement cannot be analysed."""
