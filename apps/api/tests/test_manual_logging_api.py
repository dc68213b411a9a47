"""
Tests for manual check-ins and workout logging.
"""
import pytest
from pydantic import ValidationError

from api_test_helpers import auth_headers
from core.database import SessionLocal
from models import Metric, MetricType, Workout
from schemas import DayLogRequest
from services.normalizers import PLAUSIBLE_RANGES


MORNING = {
    "timestamp": "2026-03-02T07:00:00Z",
    "mood": 4,
    "stress": 2,
    "soreness": 3,
    "sleep_quality": 4,
    "sleep_hours": 7.25,
}


def _metrics(user_id="user-1"):
    db = SessionLocal()
    try:
        return {m.type: m for m in db.query(Metric).filter(Metric.user_id == user_id).all()}
    finally:
        db.close()


class TestMorningLog:
    def test_requires_auth(self, client):
        assert client.post("/v1/logs/morning", json=MORNING).status_code == 401

    def test_stores_one_metric_per_field(self, client):
        resp = client.post("/v1/logs/morning", json=MORNING, headers=auth_headers("user-1"))

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "count": 5, "duplicates": 0}
        metrics = _metrics()
        assert set(metrics) == {"MOOD", "STRESS", "SORENESS", "SLEEP_QUALITY", "SLEEP"}
        assert metrics["SLEEP"].value == 7.25
        assert metrics["SLEEP"].unit == "hours"
        assert metrics["MOOD"].unit == "score"
        assert metrics["MOOD"].meta == {"source": "manual"}

    def test_omitted_fields_are_not_stored(self, client):
        resp = client.post(
            "/v1/logs/morning",
            json={"timestamp": "2026-03-02T07:00:00Z", "mood": 5},
            headers=auth_headers("user-1"),
        )
        assert resp.json()["count"] == 1
        assert set(_metrics()) == {"MOOD"}

    def test_resubmission_counts_duplicates(self, client):
        client.post("/v1/logs/morning", json=MORNING, headers=auth_headers("user-1"))
        resp = client.post("/v1/logs/morning", json=MORNING, headers=auth_headers("user-1"))

        assert resp.json() == {"success": True, "count": 0, "duplicates": 5}
        db = SessionLocal()
        try:
            assert db.query(Metric).count() == 5
        finally:
            db.close()

    def test_out_of_range_score_rejected(self, client):
        resp = client.post(
            "/v1/logs/morning",
            json={"timestamp": "2026-03-02T07:00:00Z", "mood": 6},
            headers=auth_headers("user-1"),
        )
        assert resp.status_code == 422
        assert _metrics() == {}

    def test_missing_timestamp_rejected(self, client):
        resp = client.post("/v1/logs/morning", json={"mood": 3}, headers=auth_headers("user-1"))
        assert resp.status_code == 422


class TestDayLog:
    def test_units(self, client):
        resp = client.post(
            "/v1/logs/day",
            json={
                "timestamp": "2026-03-02T20:00:00Z",
                "hydration": 2.5,
                "steps": 11000,
                "temperature": 18.5,
                "pressure": 1013,
            },
            headers=auth_headers("user-1"),
        )

        assert resp.status_code == 200
        assert resp.json()["count"] == 4
        metrics = _metrics()
        assert metrics["HYDRATION"].unit == "liters"
        assert metrics["STEPS"].value == 11000
        assert metrics["TEMP"].unit == "°C"
        assert metrics["PRESSURE"].unit == "hPa"

    @pytest.mark.parametrize(
        "field, value",
        [("hydration", 20), ("pressure", 5), ("pressure", 1200), ("temperature", 75), ("steps", 250_000)],
    )
    def test_implausible_value_rejected(self, client, field, value):
        resp = client.post(
            "/v1/logs/day",
            json={"timestamp": "2026-03-02T20:00:00Z", "steps": 500, field: value},
            headers=auth_headers("user-1"),
        )
        assert resp.status_code == 422
        assert _metrics() == {}

    def test_request_bounds_match_plausible_ranges(self):
        for field, metric_type in (
            ("hydration", MetricType.HYDRATION),
            ("steps", MetricType.STEPS),
            ("temperature", MetricType.TEMP),
            ("pressure", MetricType.PRESSURE),
        ):
            low, high = PLAUSIBLE_RANGES[metric_type]
            DayLogRequest(timestamp="2026-03-02T20:00:00Z", **{field: low})
            DayLogRequest(timestamp="2026-03-02T20:00:00Z", **{field: high})
            with pytest.raises(ValidationError):
                DayLogRequest(timestamp="2026-03-02T20:00:00Z", **{field: high + 1})

    def test_negative_steps_rejected(self, client):
        resp = client.post(
            "/v1/logs/day",
            json={"timestamp": "2026-03-02T20:00:00Z", "steps": -1},
            headers=auth_headers("user-1"),
        )
        assert resp.status_code == 422


SQUAT_SESSION = {
    "activity_type": "strength",
    "timestamp": "2026-03-02T18:00:00Z",
    "duration_min": 55,
    "rpe": 8,
    "sets": [
        {"exercise": "squat", "reps": 5, "weight": 100},
        {"exercise": "squat", "reps": 5, "weight": 110},
    ],
}


class TestWorkouts:
    def test_requires_auth(self, client):
        assert client.post("/v1/workouts", json=SQUAT_SESSION).status_code == 401
        assert client.get("/v1/workouts").status_code == 401

    def test_create_derives_volume_load(self, client):
        resp = client.post("/v1/workouts", json=SQUAT_SESSION, headers=auth_headers("user-1"))

        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["created"] is True
        assert body["workout"]["volume_load"] == 1050
        assert body["workout"]["metadata"] == {"source": "manual"}
        assert len(body["workout"]["sets"]) == 2

    def test_client_volume_load_is_ignored(self, client):
        payload = dict(SQUAT_SESSION, volume_load=99999)
        resp = client.post("/v1/workouts", json=payload, headers=auth_headers("user-1"))
        assert resp.json()["workout"]["volume_load"] == 1050

    def test_workout_without_sets(self, client):
        resp = client.post(
            "/v1/workouts",
            json={"activity_type": "running", "timestamp": "2026-03-03T06:30:00Z", "duration_min": 40},
            headers=auth_headers("user-1"),
        )
        assert resp.status_code == 201
        assert resp.json()["workout"]["volume_load"] is None

    def test_duplicate_returns_existing(self, client):
        first = client.post("/v1/workouts", json=SQUAT_SESSION, headers=auth_headers("user-1"))
        second = client.post("/v1/workouts", json=SQUAT_SESSION, headers=auth_headers("user-1"))

        assert second.status_code == 200
        assert second.json()["created"] is False
        assert second.json()["workout"]["id"] == first.json()["workout"]["id"]
        db = SessionLocal()
        try:
            assert db.query(Workout).count() == 1
        finally:
            db.close()

    def test_rpe_out_of_range_rejected(self, client):
        payload = dict(SQUAT_SESSION, rpe=11)
        assert client.post("/v1/workouts", json=payload, headers=auth_headers("user-1")).status_code == 422

    def test_list_newest_first_with_paging(self, client):
        for day in (1, 2, 3):
            client.post(
                "/v1/workouts",
                json={"activity_type": "running", "timestamp": f"2026-03-0{day}T06:00:00Z"},
                headers=auth_headers("user-1"),
            )
        client.post(
            "/v1/workouts",
            json={"activity_type": "running", "timestamp": "2026-03-04T06:00:00Z"},
            headers=auth_headers("user-2"),
        )

        resp = client.get("/v1/workouts", headers=auth_headers("user-1"))
        days = [w["timestamp"][:10] for w in resp.json()["workouts"]]
        assert days == ["2026-03-03", "2026-03-02", "2026-03-01"]

        page = client.get("/v1/workouts?limit=1&offset=1", headers=auth_headers("user-1"))
        assert [w["timestamp"][:10] for w in page.json()["workouts"]] == ["2026-03-02"]

    def test_list_limit_bounds(self, client):
        assert client.get("/v1/workouts?limit=0", headers=auth_headers("user-1")).status_code == 422
        assert client.get("/v1/workouts?limit=101", headers=auth_headers("user-1")).status_code == 422
