"""
Visualization descriptor for the body comparison view.

Turns a measurement and its age-matched ideal into bounded, dimensionless
parameters that a renderer can apply to a body model.
"""

from __future__ import annotations

from src.config import DEFAULT_BMI_SPREAD
from src.models import BmiStatus, Descriptor, IdealValues, Measurement

MIN_SCALE = 0.5
MAX_SCALE = 2.0

# Weight ratio above which the abdomen starts to expand, and the ratio span
# over which it reaches full expansion
ABDOMINAL_THRESHOLD = 1.15
ABDOMINAL_SPAN = 0.5

# Simplified pediatric BMI cutoffs by age band:
# (age below, in months) -> (underweight below, healthy below, overweight below)
BMI_STATUS_CUTOFFS: tuple[tuple[int | None, tuple[float, float, float]], ...] = (
    (60, (14.0, 17.0, 18.0)),
    (120, (14.0, 18.0, 21.0)),
    (None, (15.0, 21.0, 25.0)),
)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def calculate_bmi(weight_kg: float | None, height_cm: float | None) -> float | None:
    """Calculate BMI from weight and height."""
    if weight_kg is None or height_cm is None:
        return None
    height_m = height_cm / 100
    return weight_kg / (height_m * height_m)


def bmi_status(bmi: float, age_months: int) -> BmiStatus:
    """Categorize a BMI with the cutoffs for the age band."""
    for below_age, cutoffs in BMI_STATUS_CUTOFFS:
        if below_age is None or age_months < below_age:
            break
    underweight, healthy, overweight = cutoffs

    if bmi < underweight:
        return BmiStatus.UNDERWEIGHT
    if bmi < healthy:
        return BmiStatus.HEALTHY
    if bmi < overweight:
        return BmiStatus.OVERWEIGHT
    return BmiStatus.OBESE


class DescriptorBuilder:
    """Derives visualization parameters from a measurement and its ideal."""

    def __init__(self, reference_bmi_spread: float = DEFAULT_BMI_SPREAD):
        if reference_bmi_spread <= 0:
            raise ValueError("reference_bmi_spread must be positive")
        self.reference_bmi_spread = reference_bmi_spread

    def build(self, measurement: Measurement, ideal: IdealValues) -> Descriptor:
        """
        Build the descriptor for one measurement.

        Args:
            measurement: Measurement with an age set
            ideal: Ideal values at the measurement's age

        Returns:
            Descriptor; scales default to 1.0 and intensities to 0.0 when
            the values they need are missing
        """
        ratio_weight = None
        if measurement.weight_kg is not None:
            ratio_weight = measurement.weight_kg / ideal.weight_kg
        ratio_height = None
        if measurement.height_cm is not None:
            ratio_height = measurement.height_cm / ideal.height_cm
        bmi = calculate_bmi(measurement.weight_kg, measurement.height_cm)

        scale_xz = 1.0
        abdominal_expansion = 0.0
        if ratio_weight is not None:
            scale_xz = _clamp(ratio_weight ** (1.0 / 3.0), MIN_SCALE, MAX_SCALE)
            abdominal_expansion = _clamp(
                (ratio_weight - ABDOMINAL_THRESHOLD) / ABDOMINAL_SPAN, 0.0, 1.0
            )

        scale_y = 1.0
        if ratio_height is not None:
            scale_y = _clamp(ratio_height, MIN_SCALE, MAX_SCALE)

        body_fat_intensity = 0.0
        status = None
        if bmi is not None:
            body_fat_intensity = _clamp(
                (bmi - ideal.bmi) / self.reference_bmi_spread, 0.0, 1.0
            )
            status = bmi_status(bmi, measurement.age_months)

        return Descriptor(
            scale_xz=scale_xz,
            scale_y=scale_y,
            body_fat_intensity=body_fat_intensity,
            abdominal_expansion=abdominal_expansion,
            ratio_weight=ratio_weight,
            ratio_height=ratio_height,
            bmi=bmi,
            bmi_status=status,
        )
