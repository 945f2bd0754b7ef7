"""
Measurement history handling.

This is the only place that reasons about ordering across several
measurements; everything downstream works on one current measurement and at
most one previous one.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Iterable, Sequence

from src.models import Measurement

from .errors import InvalidMeasurement

# Average month length in days, as the consultation records compute age
DAYS_PER_MONTH = 30.44


def age_in_months(birth_date: date, on_date: date) -> int:
    """Whole months of age on a given date."""
    days = (on_date - birth_date).days
    if days < 0:
        raise InvalidMeasurement(
            f"Measurement on {on_date.isoformat()} predates birth on {birth_date.isoformat()}"
        )
    return math.floor(days / DAYS_PER_MONTH)


class HistoryAggregator:
    """Turns a patient's raw measurements into a normalized timeline."""

    def normalize(
        self,
        measurements: Iterable[Measurement],
        birth_date: date | None = None,
    ) -> list[Measurement]:
        """
        Assign ages to measurements.

        With a birth date, every age is derived from it and the measurement
        date. Without one, measurements must already carry an age.
        """
        normalized = []
        for m in measurements:
            if birth_date is not None:
                m = m.model_copy(update={"age_months": age_in_months(birth_date, m.taken_on)})
            elif m.age_months is None:
                raise InvalidMeasurement(
                    f"Measurement on {m.taken_on.isoformat()} has no age and no birth date was given"
                )
            if m.age_months < 0:
                raise InvalidMeasurement(f"Negative age on {m.taken_on.isoformat()}")
            normalized.append(m)
        return normalized

    def timeline(self, measurements: Iterable[Measurement]) -> list[Measurement]:
        """
        Sort measurements by age, keeping one per age.

        When two measurements share an age the most recently recorded one
        wins: the later taken_on, then the later one in input order.
        """
        measurements = list(measurements)
        patient_ids = {m.patient_id for m in measurements}
        if len(patient_ids) > 1:
            raise InvalidMeasurement(
                f"Timeline mixes measurements of {len(patient_ids)} patients"
            )
        if any(m.age_months is None for m in measurements):
            raise InvalidMeasurement("Timeline measurements must have an age; normalize them first")

        by_age: dict[int, Measurement] = {}
        for m in sorted(measurements, key=lambda m: (m.age_months, m.taken_on)):
            by_age[m.age_months] = m
        return [by_age[age] for age in sorted(by_age)]

    def previous_before(
        self,
        timeline: Sequence[Measurement],
        current: Measurement,
    ) -> Measurement | None:
        """
        Get the closest measurement taken at a younger age.

        Ties on age go to the later taken_on.
        """
        candidates = [m for m in timeline if m.age_months < current.age_months]
        if not candidates:
            return None
        return max(candidates, key=lambda m: (m.age_months, m.taken_on))

    def current_as_of(
        self,
        measurements: Iterable[Measurement],
        as_of: date,
    ) -> Measurement | None:
        """Get the latest measurement taken on or before a date."""
        candidates = [m for m in measurements if m.taken_on <= as_of]
        if not candidates:
            return None
        latest = max(m.taken_on for m in candidates)
        # Several records on the same day: the last one supplied wins
        return [m for m in candidates if m.taken_on == latest][-1]
