"""
WHO Child Growth Standards (2006) reference tables using the LMS method.

Reference: https://www.who.int/tools/child-growth-standards

The LMS method expresses growth as:
- L (lambda): Box-Cox power transformation
- M (mu): Median
- S (sigma): Coefficient of variation

Value at z-score = M * (1 + L*S*z)^(1/L)  when L ≠ 0
Value at z-score = M * exp(S*z)           when L = 0

The anchors below are sampled key ages. `percentile_table` expands them to
one row per integer month with the p3/p15/p50/p85/p97 values.
"""

from __future__ import annotations

import math
from typing import Literal

from scipy import stats

# Percentile bands drawn on the charts
PERCENTILE_BANDS: tuple[int, ...] = (3, 15, 50, 85, 97)

# Weight-for-age (kg), Boys, 0-60 months
# Format: age_months -> (L, M, S)
WEIGHT_FOR_AGE_MALE: dict[int, tuple[float, float, float]] = {
    0: (0.3487, 3.3464, 0.14602),
    1: (0.2297, 4.4709, 0.13395),
    2: (0.1970, 5.5675, 0.12385),
    3: (0.1738, 6.3762, 0.11727),
    6: (0.1395, 7.9340, 0.10878),
    9: (0.1211, 9.0351, 0.10424),
    12: (0.1087, 9.8959, 0.10119),
    18: (0.0903, 11.1641, 0.09797),
    24: (0.0758, 12.2515, 0.09584),
    36: (0.0527, 14.3441, 0.09295),
    48: (0.0317, 16.3489, 0.09103),
    60: (0.0117, 18.3671, 0.08997),
}

# Weight-for-age (kg), Girls, 0-60 months
WEIGHT_FOR_AGE_FEMALE: dict[int, tuple[float, float, float]] = {
    0: (0.3809, 3.2322, 0.14171),
    1: (0.2437, 4.1873, 0.13724),
    2: (0.2017, 5.1282, 0.12926),
    3: (0.1738, 5.8458, 0.12347),
    6: (0.1395, 7.2970, 0.11494),
    9: (0.1211, 8.2981, 0.11024),
    12: (0.1087, 9.1879, 0.10698),
    18: (0.0903, 10.5687, 0.10314),
    24: (0.0758, 11.8016, 0.10054),
    36: (0.0527, 14.0917, 0.09686),
    48: (0.0317, 16.0908, 0.09494),
    60: (0.0117, 18.2026, 0.09391),
}

# Length/Height-for-age (cm), Boys, 0-60 months
HEIGHT_FOR_AGE_MALE: dict[int, tuple[float, float, float]] = {
    0: (1.0, 49.8842, 0.03795),
    1: (1.0, 54.7244, 0.03557),
    2: (1.0, 58.4249, 0.03424),
    3: (1.0, 61.4292, 0.03328),
    6: (1.0, 67.6236, 0.03169),
    9: (1.0, 72.0888, 0.03072),
    12: (1.0, 75.7488, 0.03003),
    18: (1.0, 82.2188, 0.02899),
    24: (1.0, 87.1161, 0.02838),
    36: (1.0, 96.0833, 0.02763),
    48: (1.0, 103.3032, 0.02717),
    60: (1.0, 110.0106, 0.02691),
}

# Length/Height-for-age (cm), Girls, 0-60 months
HEIGHT_FOR_AGE_FEMALE: dict[int, tuple[float, float, float]] = {
    0: (1.0, 49.1477, 0.03790),
    1: (1.0, 53.6872, 0.03640),
    2: (1.0, 57.0673, 0.03568),
    3: (1.0, 59.8029, 0.03518),
    6: (1.0, 65.7311, 0.03416),
    9: (1.0, 70.1435, 0.03353),
    12: (1.0, 74.0015, 0.03309),
    18: (1.0, 80.7991, 0.03248),
    24: (1.0, 86.4204, 0.03211),
    36: (1.0, 95.0778, 0.03168),
    48: (1.0, 102.7115, 0.03142),
    60: (1.0, 109.4341, 0.03124),
}

# Head circumference (cm), Boys, 0-24 months
HC_FOR_AGE_MALE: dict[int, tuple[float, float, float]] = {
    0: (1.0, 34.4618, 0.03686),
    1: (1.0, 37.2759, 0.03133),
    2: (1.0, 39.1285, 0.02997),
    3: (1.0, 40.5135, 0.02918),
    6: (1.0, 43.3306, 0.02789),
    9: (1.0, 45.1859, 0.02715),
    12: (1.0, 46.4985, 0.02667),
    18: (1.0, 48.1069, 0.02612),
    24: (1.0, 49.0042, 0.02582),
}

# Head circumference (cm), Girls, 0-24 months
HC_FOR_AGE_FEMALE: dict[int, tuple[float, float, float]] = {
    0: (1.0, 33.8787, 0.03496),
    1: (1.0, 36.5463, 0.03181),
    2: (1.0, 38.2521, 0.03052),
    3: (1.0, 39.5328, 0.02974),
    6: (1.0, 42.1843, 0.02846),
    9: (1.0, 43.8096, 0.02774),
    12: (1.0, 44.9959, 0.02727),
    18: (1.0, 46.4102, 0.02668),
    24: (1.0, 47.2252, 0.02637),
}

LMS_TABLES: dict[str, dict[str, dict[int, tuple[float, float, float]]]] = {
    "weight": {"male": WEIGHT_FOR_AGE_MALE, "female": WEIGHT_FOR_AGE_FEMALE},
    "height": {"male": HEIGHT_FOR_AGE_MALE, "female": HEIGHT_FOR_AGE_FEMALE},
    "head_circumference": {"male": HC_FOR_AGE_MALE, "female": HC_FOR_AGE_FEMALE},
}


def _interpolate_lms(
    age_months: int,
    lms_table: dict[int, tuple[float, float, float]],
) -> tuple[float, float, float]:
    """
    Interpolate LMS values for a given age.
    Uses linear interpolation between known points.
    """
    if age_months in lms_table:
        return lms_table[age_months]

    ages = sorted(lms_table.keys())
    if age_months < ages[0]:
        return lms_table[ages[0]]
    if age_months > ages[-1]:
        return lms_table[ages[-1]]

    lower_age = max(a for a in ages if a < age_months)
    upper_age = min(a for a in ages if a > age_months)
    t = (age_months - lower_age) / (upper_age - lower_age)

    L1, M1, S1 = lms_table[lower_age]
    L2, M2, S2 = lms_table[upper_age]

    return L1 + t * (L2 - L1), M1 + t * (M2 - M1), S1 + t * (S2 - S1)


def _value_from_lms_z(z: float, L: float, M: float, S: float) -> float:
    """
    Calculate value from Z-score and LMS parameters.
    """
    if abs(L) < 1e-10:  # L ≈ 0
        return M * math.exp(z * S)
    return M * math.pow(1 + L * S * z, 1 / L)


def _z_from_percentile(percentile: float) -> float:
    """Convert percentile to Z-score using inverse normal CDF."""
    return float(stats.norm.ppf(percentile / 100))


def percentile_table(
    metric: Literal["weight", "height", "head_circumference"],
    sex: Literal["male", "female"],
    max_age_months: int | None = None,
) -> dict[int, tuple[float, ...]]:
    """
    Expand the LMS anchors for one metric into integer-month percentile rows.

    Args:
        metric: "weight", "height" or "head_circumference"
        sex: "male" or "female"
        max_age_months: Last month to emit; capped at the last anchor age

    Returns:
        age_months -> band values in PERCENTILE_BANDS order
    """
    table = LMS_TABLES[metric][sex]
    last_anchor = max(table)
    last_age = last_anchor if max_age_months is None else min(max_age_months, last_anchor)

    z_scores = [_z_from_percentile(p) for p in PERCENTILE_BANDS]
    rows: dict[int, tuple[float, ...]] = {}
    for age in range(0, last_age + 1):
        L, M, S = _interpolate_lms(age, table)
        rows[age] = tuple(
            M if p == 50 else round(_value_from_lms_z(z, L, M, S), 4)
            for p, z in zip(PERCENTILE_BANDS, z_scores)
        )
    return rows
