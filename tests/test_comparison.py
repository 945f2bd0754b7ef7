"""
Tests for growth comparison and classification.
"""

import logging
from datetime import date

import pytest
from pydantic import ValidationError

from src.analytics import (
    CLASSIFICATION_RULES,
    ComparisonEngine,
    InvalidMeasurement,
    PercentileCalculator,
    ReferenceDataMissing,
    classify,
)
from src.models import Gender, GrowthComparison, HealthStatus, Metric


class TestScenarios:
    """Scenarios against the small male table (p50 weight at 12 months = 10.2 kg)."""

    def test_median_weight_is_normal(self, scenario_engine, measurement):
        comparison = scenario_engine.compare(measurement(12, weight_kg=10.2), None, Gender.MALE)

        assert comparison.current.percentile(Metric.WEIGHT) == pytest.approx(50.0)
        assert comparison.health_status == HealthStatus.NORMAL

    def test_weight_below_p3_is_alert(self, scenario_engine, measurement):
        comparison = scenario_engine.compare(measurement(12, weight_kg=7.5), None, Gender.MALE)

        assert comparison.current.percentile(Metric.WEIGHT) < 3
        assert comparison.health_status == HealthStatus.ALERT

    def test_weight_change_against_previous(self, scenario_engine, measurement):
        current = measurement(12, date(2024, 1, 1), weight_kg=11.0)
        previous = measurement(6, date(2023, 7, 1), weight_kg=9.0)

        comparison = scenario_engine.compare(current, previous, Gender.MALE)

        assert comparison.changes.weight_kg == pytest.approx(2.0)
        assert comparison.changes.months_elapsed == 6
        assert comparison.changes.height_cm is None
        assert comparison.previous.measurement == previous
        assert Metric.WEIGHT in comparison.previous.percentile_results

    def test_no_previous(self, scenario_engine, measurement):
        comparison = scenario_engine.compare(measurement(12, weight_kg=10.2), None, Gender.MALE)

        assert comparison.previous is None
        assert comparison.changes is None


class TestClassificationBoundary:
    """Exactly p15 and p85 are normal."""

    @pytest.mark.parametrize("band", ["p15", "p85"])
    def test_weight_at_band_is_normal(self, scenario_store, scenario_engine, measurement, band):
        value = getattr(scenario_store.lookup(Metric.WEIGHT, Gender.MALE, 12), band)

        comparison = scenario_engine.compare(measurement(12, weight_kg=value), None, Gender.MALE)

        assert comparison.health_status == HealthStatus.NORMAL

    @pytest.mark.parametrize("band", ["p15", "p85"])
    def test_height_at_band_is_normal(self, scenario_store, scenario_engine, measurement, band):
        value = getattr(scenario_store.lookup(Metric.HEIGHT, Gender.MALE, 12), band)

        comparison = scenario_engine.compare(
            measurement(12, weight_kg=10.2, height_cm=value), None, Gender.MALE
        )

        assert comparison.health_status == HealthStatus.NORMAL

    def test_just_below_p15_is_watch(self, scenario_engine, measurement):
        comparison = scenario_engine.compare(measurement(12, weight_kg=8.89), None, Gender.MALE)

        assert comparison.health_status == HealthStatus.WATCH

    def test_just_above_p85_is_watch(self, scenario_engine, measurement):
        comparison = scenario_engine.compare(measurement(12, weight_kg=11.31), None, Gender.MALE)

        assert comparison.health_status == HealthStatus.WATCH


class TestClassify:
    """Ordered rule evaluation."""

    def test_rules_ordered_by_severity(self):
        assert [r.status for r in CLASSIFICATION_RULES] == [HealthStatus.ALERT, HealthStatus.WATCH]

    def test_alert_wins_over_watch(self):
        # Weight triggers watch, height triggers alert
        assert classify({Metric.WEIGHT: 10.0, Metric.HEIGHT: 2.0}) == HealthStatus.ALERT

    def test_heavy_weight_is_alert(self):
        assert classify({Metric.WEIGHT: 97.5}) == HealthStatus.ALERT

    def test_tall_height_is_watch(self):
        assert classify({Metric.WEIGHT: 50.0, Metric.HEIGHT: 98.0}) == HealthStatus.WATCH

    def test_exact_thresholds(self):
        assert classify({Metric.WEIGHT: 3.0}) == HealthStatus.WATCH
        assert classify({Metric.WEIGHT: 97.0}) == HealthStatus.WATCH
        assert classify({Metric.WEIGHT: 15.0, Metric.HEIGHT: 85.0}) == HealthStatus.NORMAL

    def test_head_circumference_ignored(self):
        assert classify({Metric.WEIGHT: 50.0, Metric.HEAD_CIRCUMFERENCE: 1.0}) == HealthStatus.NORMAL


class TestComparisonFields:

    def test_ideal_and_ratios(self, scenario_engine, measurement):
        comparison = scenario_engine.compare(
            measurement(12, weight_kg=11.22, height_cm=75.7), None, Gender.MALE
        )

        assert comparison.ideal.weight_kg == 10.2
        assert comparison.ideal.height_cm == 75.7
        assert comparison.ratio_weight == pytest.approx(1.1)
        assert comparison.ratio_height == pytest.approx(1.0)

    def test_bmi(self, scenario_engine, measurement):
        comparison = scenario_engine.compare(
            measurement(12, weight_kg=10.0, height_cm=80.0), None, Gender.MALE
        )

        assert comparison.bmi == pytest.approx(15.625)

    def test_bmi_needs_height(self, scenario_engine, measurement):
        comparison = scenario_engine.compare(measurement(12, weight_kg=10.0), None, Gender.MALE)

        assert comparison.bmi is None
        assert comparison.ratio_height is None

    def test_descriptor_attached(self, scenario_engine, measurement):
        comparison = scenario_engine.compare(measurement(12, weight_kg=10.2), None, Gender.MALE)

        assert comparison.transform_3d.scale_xz == pytest.approx(1.0)

    def test_descriptor_required(self, scenario_engine, measurement):
        comparison = scenario_engine.compare(measurement(12, weight_kg=10.2), None, Gender.MALE)
        data = comparison.model_dump()
        del data["transform_3d"]
        del data["extrapolated"]

        with pytest.raises(ValidationError):
            GrowthComparison.model_validate(data)

    def test_previous_descriptor_uses_its_own_ideal(self, scenario_engine, measurement):
        # Both visits sit exactly on the median for their age
        comparison = scenario_engine.compare(
            measurement(12, weight_kg=10.2, height_cm=75.7),
            measurement(6, weight_kg=7.9, height_cm=67.6),
            Gender.MALE,
        )
        previous = comparison.previous.transform_3d

        assert previous.ratio_weight == pytest.approx(1.0)
        assert previous.scale_y == pytest.approx(1.0)
        assert previous.bmi == pytest.approx(7.9 / 0.676 ** 2)
        assert comparison.current.transform_3d is None

    def test_changes_bmi(self, scenario_engine, measurement):
        comparison = scenario_engine.compare(
            measurement(12, weight_kg=10.2, height_cm=75.7),
            measurement(6, weight_kg=7.9, height_cm=67.6),
            Gender.MALE,
        )

        assert comparison.changes.bmi == pytest.approx(10.2 / 0.757 ** 2 - 7.9 / 0.676 ** 2)

    def test_ideal_head_circumference_without_table(self, scenario_engine, measurement):
        comparison = scenario_engine.compare(measurement(12, weight_kg=10.2), None, Gender.MALE)

        assert comparison.ideal.head_circumference_cm is None

    def test_ideal_head_circumference(self, who_store, measurement):
        engine = ComparisonEngine(PercentileCalculator(who_store))

        within = engine.ideal(Gender.MALE, 12)
        beyond = engine.ideal(Gender.MALE, 36)

        assert within.head_circumference_cm == pytest.approx(46.4985)
        assert beyond.head_circumference_cm is None
        assert beyond.weight_kg > within.weight_kg

    def test_z_scores(self, scenario_engine, measurement):
        comparison = scenario_engine.compare(measurement(12, weight_kg=10.2), None, Gender.MALE)

        assert comparison.current.percentile_results[Metric.WEIGHT].z_score == pytest.approx(0.0)

    def test_extrapolated_flag(self, scenario_engine, measurement):
        inside = scenario_engine.compare(measurement(12, weight_kg=10.2), None, Gender.MALE)
        beyond = scenario_engine.compare(measurement(36, weight_kg=13.0), None, Gender.MALE)

        assert not inside.extrapolated
        assert beyond.extrapolated

    def test_serializes(self, scenario_engine, measurement):
        comparison = scenario_engine.compare(measurement(12, weight_kg=10.2), None, Gender.MALE)

        data = comparison.model_dump(mode="json")

        assert data["health_status"] == "normal"
        assert data["current"]["percentile_results"]["weight"]["percentile"] == pytest.approx(50.0)
        assert data["extrapolated"] is False


class TestValidation:
    """Invalid measurements are rejected before any interpolation."""

    @pytest.mark.parametrize("weight", [0.0, -1.0, float("nan"), float("inf")])
    def test_bad_weight(self, scenario_engine, measurement, weight):
        with pytest.raises(InvalidMeasurement):
            scenario_engine.compare(measurement(12, weight_kg=weight), None, Gender.MALE)

    def test_missing_weight(self, scenario_engine, measurement):
        with pytest.raises(InvalidMeasurement):
            scenario_engine.compare(measurement(12, height_cm=75.0), None, Gender.MALE)

    def test_bad_height(self, scenario_engine, measurement):
        with pytest.raises(InvalidMeasurement):
            scenario_engine.compare(measurement(12, weight_kg=10.0, height_cm=0.0), None, Gender.MALE)

    def test_missing_age(self, scenario_engine, measurement):
        with pytest.raises(InvalidMeasurement):
            scenario_engine.compare(measurement(None, weight_kg=10.0), None, Gender.MALE)

    @pytest.mark.parametrize("weight", [0.0, -2.0, float("nan")])
    def test_bad_previous_value_is_absent(self, scenario_engine, measurement, weight):
        comparison = scenario_engine.compare(
            measurement(12, weight_kg=10.0, height_cm=75.7),
            measurement(6, weight_kg=weight, height_cm=67.6),
            Gender.MALE,
        )

        assert comparison.changes.weight_kg is None
        assert comparison.changes.bmi is None
        assert comparison.changes.height_cm == pytest.approx(8.1)
        assert Metric.WEIGHT not in comparison.previous.percentile_results
        assert Metric.HEIGHT in comparison.previous.percentile_results
        assert comparison.previous.measurement.weight_kg is None

    def test_bad_previous_is_logged(self, scenario_engine, measurement, caplog):
        with caplog.at_level(logging.WARNING, logger="src.analytics.comparison"):
            scenario_engine.compare(
                measurement(12, weight_kg=10.0), measurement(6, weight_kg=0.0), Gender.MALE
            )

        assert "Ignoring weight=0.0" in caplog.text

    def test_previous_without_age_is_dropped(self, scenario_engine, measurement):
        comparison = scenario_engine.compare(
            measurement(12, weight_kg=10.0), measurement(None, weight_kg=8.0), Gender.MALE
        )

        assert comparison.previous is None
        assert comparison.changes is None

    def test_missing_reference_is_fatal(self, scenario_engine, measurement):
        with pytest.raises(ReferenceDataMissing):
            scenario_engine.compare(measurement(12, weight_kg=9.0), None, Gender.FEMALE)
