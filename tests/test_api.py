"""Tests for the FastAPI slotting endpoint.

Run with: pytest tests/test_api.py -v
"""

import pytest

pytest.importorskip("httpx")

from fastapi.testclient import TestClient  # noqa: E402

from src.ui_api.server import app  # noqa: E402

DEMO_PAYLOAD = {
    "skus": [
        {"id": "SKU1", "weight": 20, "frequency": 80},
        {"id": "SKU2", "weight": 50, "frequency": 30},
        {"id": "SKU3", "weight": 70, "frequency": 100},
        {"id": "SKU4", "weight": 10, "frequency": 10},
        {"id": "SKU5", "weight": 90, "frequency": 50},
    ],
    "locations": [{"id": i, "distance_to_exit": i + 1} for i in range(5)],
}


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


class TestSolveEndpoint:
    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_solve_demo(self, client):
        response = client.post("/api/solve", json=DEMO_PAYLOAD)
        body = response.json()

        assert response.status_code == 200
        assert body["status"] == "OPTIMAL"
        assert body["total_cost"] == 380
        assert {a["sku_id"]: a["location_id"] for a in body["assignments"]}["SKU3"] == 0

    def test_solve_with_strategy(self, client):
        response = client.post("/api/solve", json={**DEMO_PAYLOAD, "strategy": "parallel"})
        assert response.status_code == 200
        assert response.json()["strategy"] == "parallel"

    def test_infeasible_is_422(self, client):
        payload = {
            "skus": [{"id": "BIG", "weight": 500, "frequency": 1}],
            "locations": [{"id": 0, "distance_to_exit": 1}],
        }
        response = client.post("/api/solve", json=payload)
        assert response.status_code == 422
        assert "capacity" in response.json()["detail"]

    def test_invalid_input_is_400(self, client):
        payload = {**DEMO_PAYLOAD, "skus": []}
        response = client.post("/api/solve", json=payload)
        assert response.status_code == 400

    def test_duplicate_ids_are_400(self, client):
        payload = {
            "skus": [
                {"id": "A", "weight": 1, "frequency": 1},
                {"id": "A", "weight": 2, "frequency": 2},
            ],
            "locations": [{"id": 0, "distance_to_exit": 1}],
        }
        assert client.post("/api/solve", json=payload).status_code == 400

    def test_budget_exhausted_is_504(self, client):
        response = client.post("/api/solve", json={**DEMO_PAYLOAD, "node_limit": 0})
        assert response.status_code == 504

    @pytest.mark.parametrize(
        "override",
        [
            {"skus": [{"id": "A", "weight": "heavy", "frequency": 1}]},
            {"time_limit_s": 0},
            {"node_limit": -1},
            {"strategy": "annealing"},
        ],
    )
    def test_malformed_body_is_400(self, client, override):
        response = client.post("/api/solve", json={**DEMO_PAYLOAD, **override})
        assert response.status_code == 400
        assert isinstance(response.json()["detail"], list)

    def test_int64_overflow_is_400(self, client):
        payload = {
            "skus": [{"id": "A", "weight": 1, "frequency": 2**62}],
            "locations": [{"id": 0, "distance_to_exit": 1}, {"id": 1, "distance_to_exit": 4}],
        }
        assert client.post("/api/solve", json=payload).status_code == 400
