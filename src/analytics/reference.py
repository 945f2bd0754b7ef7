"""
Reference curve store.

Holds the percentile reference rows for every (metric, gender) pair, indexed
by integer age in months. The store is built once and never mutated, so it
can be shared freely between concurrent computations.
"""

from __future__ import annotations

import bisect
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable

import yaml

from knowledge.growth import PERCENTILE_BANDS, percentile_table
from src.config import DEFAULT_MAX_AGE_MONTHS, get_config
from src.models import Gender, Metric, ReferenceCurvePoint

from .errors import InvalidReferenceData, ReferenceDataMissing

logger = logging.getLogger(__name__)

BAND_FIELDS = tuple(f"p{p}" for p in PERCENTILE_BANDS)


class ReferenceCurveStore:
    """
    Immutable lookup of percentile reference rows.

    Rows are grouped by (metric, gender), sorted by age, and validated on
    construction: band values strictly increase from p3 to p97 at every age,
    and p50 never decreases as age increases.
    """

    def __init__(self, points: Iterable[ReferenceCurvePoint]):
        grouped: dict[tuple[Metric, Gender], dict[int, ReferenceCurvePoint]] = {}
        for point in points:
            by_age = grouped.setdefault((point.metric, point.gender), {})
            if point.age_months in by_age:
                raise InvalidReferenceData(
                    f"Duplicate {point.metric.value} ({point.gender.value}) row "
                    f"at {point.age_months} months"
                )
            by_age[point.age_months] = point

        self._rows: dict[tuple[Metric, Gender], tuple[ReferenceCurvePoint, ...]] = {}
        self._ages: dict[tuple[Metric, Gender], tuple[int, ...]] = {}
        self._index: dict[tuple[Metric, Gender], dict[int, ReferenceCurvePoint]] = {}

        for key, by_age in grouped.items():
            rows = tuple(by_age[age] for age in sorted(by_age))
            _validate_rows(rows)
            self._rows[key] = rows
            self._ages[key] = tuple(r.age_months for r in rows)
            self._index[key] = by_age

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def from_lms(cls, max_age_months: int = DEFAULT_MAX_AGE_MONTHS) -> ReferenceCurveStore:
        """Build the store from the WHO 2006 LMS tables."""
        points = []
        for metric in Metric:
            for gender in Gender:
                rows = percentile_table(metric.value, gender.value, max_age_months)
                points.extend(
                    _point(metric, gender, age, values) for age, values in rows.items()
                )
        return cls(points)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> ReferenceCurveStore:
        """
        Build the store from nested plain data.

        Format: metric -> gender -> age_months -> {p3, p15, p50, p85, p97}
        (or a list of five values in that order).
        """
        points = []
        try:
            for metric_key, by_gender in data.items():
                metric = Metric(metric_key)
                for gender_key, by_age in by_gender.items():
                    gender = Gender(gender_key)
                    for age, values in by_age.items():
                        if isinstance(values, dict):
                            values = [values[f] for f in BAND_FIELDS]
                        points.append(_point(metric, gender, int(age), values))
        except InvalidReferenceData:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidReferenceData(f"Malformed reference table: {e}") from e
        return cls(points)

    @classmethod
    def from_yaml(cls, path: Path) -> ReferenceCurveStore:
        """Load a reference table from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        if not isinstance(data, dict):
            raise InvalidReferenceData(f"Reference table {path} is not a mapping")
        return cls.from_mapping(data)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def has(self, metric: Metric, gender: Gender) -> bool:
        return (metric, gender) in self._rows

    def pairs(self) -> list[tuple[Metric, Gender]]:
        """The (metric, gender) pairs that have rows."""
        return sorted(self._rows, key=lambda k: (k[0].value, k[1].value))

    def rows(self, metric: Metric, gender: Gender) -> tuple[ReferenceCurvePoint, ...]:
        """All rows for a metric and gender, sorted by age."""
        try:
            return self._rows[(metric, gender)]
        except KeyError:
            raise ReferenceDataMissing(metric.value, gender.value) from None

    def min_age(self, metric: Metric, gender: Gender) -> int:
        return self.rows(metric, gender)[0].age_months

    def max_age(self, metric: Metric, gender: Gender) -> int:
        return self.rows(metric, gender)[-1].age_months

    def lookup(self, metric: Metric, gender: Gender, age_months: int) -> ReferenceCurvePoint:
        """
        Get the row for an age.

        Tabulated ages return their own row. Ages between tabulated rows
        return the nearest lower row; ages outside the table return the
        boundary row.
        """
        rows = self.rows(metric, gender)
        exact = self._index[(metric, gender)].get(age_months)
        if exact is not None:
            return exact
        ages = self._ages[(metric, gender)]
        i = bisect.bisect_right(ages, age_months) - 1
        return rows[max(i, 0)]

    def bracket(
        self,
        metric: Metric,
        gender: Gender,
        age_months: float,
    ) -> tuple[ReferenceCurvePoint, ReferenceCurvePoint]:
        """
        Get the rows on either side of an age.

        Returns the same row twice when the age is tabulated or lies outside
        the table.
        """
        rows = self.rows(metric, gender)
        ages = self._ages[(metric, gender)]
        if age_months <= ages[0]:
            return rows[0], rows[0]
        if age_months >= ages[-1]:
            return rows[-1], rows[-1]
        i = bisect.bisect_right(ages, age_months) - 1
        if ages[i] == age_months:
            return rows[i], rows[i]
        return rows[i], rows[i + 1]


def _point(metric: Metric, gender: Gender, age: int, values) -> ReferenceCurvePoint:
    values = list(values)
    if len(values) != len(BAND_FIELDS):
        raise InvalidReferenceData(
            f"{metric.value} ({gender.value}) at {age} months needs "
            f"{len(BAND_FIELDS)} band values, got {len(values)}"
        )
    return ReferenceCurvePoint(
        metric=metric,
        gender=gender,
        age_months=age,
        **{field: float(v) for field, v in zip(BAND_FIELDS, values)},
    )


def _validate_rows(rows: tuple[ReferenceCurvePoint, ...]) -> None:
    previous_median = None
    for row in rows:
        values = [v for _, v in row.bands]
        if any(b <= a for a, b in zip(values, values[1:])):
            raise InvalidReferenceData(
                f"{row.metric.value} ({row.gender.value}) bands are not strictly "
                f"increasing at {row.age_months} months"
            )
        if previous_median is not None and row.p50 < previous_median:
            raise InvalidReferenceData(
                f"{row.metric.value} ({row.gender.value}) median decreases at "
                f"{row.age_months} months"
            )
        previous_median = row.p50


@lru_cache()
def default_store() -> ReferenceCurveStore:
    """
    Get the process-wide reference store.

    Built on first use from GROWTH_REFERENCE_TABLE when set, otherwise from
    the WHO 2006 tables.
    """
    config = get_config()
    if config.uses_custom_table:
        store = ReferenceCurveStore.from_yaml(config.reference_table)
        source = str(config.reference_table)
    else:
        store = ReferenceCurveStore.from_lms(config.max_age_months)
        source = "WHO 2006"
    logger.info("Loaded reference curves from %s: %d metric/gender pairs", source, len(store.pairs()))
    return store
