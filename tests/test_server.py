"""
Tests for the Growthline API.
"""

import pytest
from fastapi.testclient import TestClient

from server import app, get_analytics
from src.analytics import GrowthAnalytics


@pytest.fixture
def client(scenario_store):
    app.dependency_overrides[get_analytics] = lambda: GrowthAnalytics(store=scenario_store)
    yield TestClient(app)
    app.dependency_overrides.clear()


PATIENT = {
    "gender": "male",
    "birth_date": "2023-01-01",
    "measurements": [
        {"patient_id": "p-1", "taken_on": "2023-07-03", "weight_kg": 7.9, "height_cm": 67.6},
        {"patient_id": "p-1", "taken_on": "2024-01-02", "weight_kg": 7.5, "height_cm": 75.7},
    ],
}


class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestComparison:

    def test_comparison(self, client):
        response = client.post("/api/growth/comparison", json={**PATIENT, "as_of": "2024-02-01"})

        assert response.status_code == 200
        data = response.json()
        assert data["health_status"] == "alert"
        assert data["current"]["measurement"]["age_months"] == 12
        assert data["previous"]["measurement"]["age_months"] == 6
        assert data["changes"]["weight_kg"] == pytest.approx(-0.4)
        assert data["ideal"]["weight_kg"] == 10.2
        assert 0.5 <= data["transform_3d"]["scale_xz"] <= 2.0
        assert data["transform_3d"]["bmi_status"] == "underweight"
        assert data["previous"]["transform_3d"]["ratio_weight"] == pytest.approx(1.0)
        assert data["current"]["percentile_results"]["weight"]["z_score"] < -1.88

    def test_bad_earlier_record_still_compares(self, client):
        measurements = [
            {"patient_id": "p-1", "taken_on": "2023-07-03", "weight_kg": 0.0},
            PATIENT["measurements"][1],
        ]

        response = client.post(
            "/api/growth/comparison",
            json={**PATIENT, "measurements": measurements, "as_of": "2024-02-01"},
        )

        assert response.status_code == 200
        assert response.json()["changes"]["weight_kg"] is None

    def test_no_measurement_before_as_of(self, client):
        response = client.post("/api/growth/comparison", json={**PATIENT, "as_of": "2023-01-15"})

        assert response.status_code == 422
        assert "No measurement" in response.json()["detail"]

    def test_invalid_gender(self, client):
        response = client.post("/api/growth/comparison", json={**PATIENT, "gender": "other"})

        assert response.status_code == 422

    def test_missing_reference_is_server_error(self, client):
        response = client.post(
            "/api/growth/comparison", json={**PATIENT, "gender": "female", "as_of": "2024-02-01"}
        )

        assert response.status_code == 500
        assert "Reference data" in response.json()["detail"]


class TestHistory:

    def test_history(self, client):
        response = client.post("/api/growth/history", json=PATIENT)

        assert response.status_code == 200
        entries = response.json()
        assert [e["measurement"]["age_months"] for e in entries] == [6, 12]
        assert entries[0]["percentile_results"]["weight"]["percentile"] == pytest.approx(50.0)

    def test_history_without_ages(self, client):
        response = client.post(
            "/api/growth/history", json={"gender": "male", "measurements": PATIENT["measurements"]}
        )

        assert response.status_code == 422


class TestCurvesAndIdeal:

    def test_curves(self, client):
        response = client.get("/api/growth/curves/male/height", params={"max_age_months": 6})

        assert response.status_code == 200
        rows = response.json()
        assert [r["age_months"] for r in rows] == [0, 6]
        assert rows[1]["p50"] == 67.6

    def test_curves_negative_age(self, client):
        response = client.get("/api/growth/curves/male/height", params={"max_age_months": -1})

        assert response.status_code == 422

    def test_ideal(self, client):
        response = client.get("/api/growth/ideal/male/12")

        assert response.status_code == 200
        data = response.json()
        assert data["weight_kg"] == 10.2
        assert data["bmi"] == pytest.approx(10.2 / 0.757 ** 2)

    def test_ideal_negative_age(self, client):
        response = client.get("/api/growth/ideal/male/-1")

        assert response.status_code == 422


class TestPercentile:

    def test_percentile(self, client):
        response = client.post(
            "/api/growth/percentile",
            json={"gender": "male", "metric": "weight", "age_months": 12, "value": 10.75},
        )

        assert response.status_code == 200
        assert response.json()["percentile"] == pytest.approx(67.5)

    def test_non_positive_value(self, client):
        response = client.post(
            "/api/growth/percentile",
            json={"gender": "male", "metric": "weight", "age_months": 12, "value": 0},
        )

        assert response.status_code == 422
