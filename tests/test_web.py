"""API tests for the simulation and system routers."""

import pytest
from fastapi.testclient import TestClient

from poissonlab.web.app import create_app

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


@pytest.fixture
def client(app_settings):
    app = create_app(app_settings)
    with TestClient(app) as c:
        yield c


class TestSystem:
    def test_health_after_startup(self, client):
        r = client.get("/api/v1/health")
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "ok"
        assert body["generation"] == 1
        assert body["has_result"] is True


class TestParameters:
    def test_bounds(self, client):
        r = client.get("/api/v1/simulation/parameters")
        assert r.status_code == 200
        data = r.json()["data"]
        assert data["lam"] == {"min": 0.1, "max": 5.0, "step": 0.1, "default": 2.0}
        assert data["mu"]["step"] == 0.05
        assert data["t_max"]["min"] == 10.0
        assert data["num_simulations_min"] == 1000
        assert data["histogram_bins"] == 50
        assert data["max_expected_arrivals"] == 1_000_000


class TestTheory:
    def test_closed_form(self, client):
        r = client.get("/api/v1/simulation/theory", params={"lam": 2, "mu": 0.5, "t_max": 20})
        assert r.status_code == 200
        data = r.json()["data"]
        assert data["mean"] == 80.0
        assert data["variance"] == 320.0
        assert data["mean_display"] == "80"
        assert data["variance_display"] == "320"

    def test_overflowing_result_rejected(self, client):
        r = client.get(
            "/api/v1/simulation/theory", params={"lam": 1e200, "mu": 1e-200, "t_max": 1e200}
        )
        assert r.status_code == 422
        assert "overflows" in r.json()["detail"]

    @pytest.mark.parametrize("params", [
        {"lam": 0, "mu": 0.5, "t_max": 20},
        {"lam": 2, "mu": -1, "t_max": 20},
        {"lam": 2, "mu": 0.5},
    ])
    def test_invalid_input(self, client, params):
        r = client.get("/api/v1/simulation/theory", params=params)
        assert r.status_code == 422


class TestResimulate:
    def test_initial_result_uses_defaults(self, client):
        r = client.get("/api/v1/simulation/latest")
        assert r.status_code == 200
        data = r.json()["data"]
        assert data["lam"] == 2.0
        assert data["num_simulations"] == 2000
        assert data["terminal_values"] is None
        assert len(data["path"]["times"]) == 2 * data["path"]["num_arrivals"] + 2

    def test_trigger_replaces_latest(self, client):
        before = client.get("/api/v1/simulation/latest").json()["data"]["run_id"]
        r = client.post("/api/v1/simulation/resimulate", json={
            "lam": 1.5, "mu": 1.0, "t_max": 30, "num_simulations": 3000,
        })
        assert r.status_code == 200
        body = r.json()
        assert body["meta"]["generation"] == 2
        assert body["data"]["run_id"] != before
        assert body["data"]["theory"]["mean"] == 45.0

        latest = client.get("/api/v1/simulation/latest").json()
        assert latest["data"]["run_id"] == body["data"]["run_id"]
        assert latest["data"]["t_max"] == 30.0
        assert latest["meta"]["generation"] == 2

    def test_method_and_sampler_override(self, client):
        r = client.post("/api/v1/simulation/resimulate", json={
            "lam": 2, "mu": 0.5, "t_max": 20, "num_simulations": 1000,
            "arrival_method": "order_statistics", "terminal_sampler": "sum",
        })
        assert r.status_code == 200
        data = r.json()["data"]
        assert data["arrival_method"] == "order_statistics"
        assert data["terminal_sampler"] == "sum"
        assert data["path"]["method"] == "order_statistics"

    def test_seeded_requests_match(self, client):
        payload = {"lam": 2, "mu": 0.5, "t_max": 20, "num_simulations": 1000, "seed": 9}
        r1 = client.post("/api/v1/simulation/resimulate", json=payload).json()["data"]
        r2 = client.post("/api/v1/simulation/resimulate", json=payload).json()["data"]
        assert r1["path"] == r2["path"]
        assert r1["terminal_stats"] == r2["terminal_stats"]

    @pytest.mark.parametrize("payload", [
        {"lam": -1, "mu": 0.5, "t_max": 20, "num_simulations": 1000},
        {"lam": 2, "mu": 0, "t_max": 20, "num_simulations": 1000},
        {"lam": 2, "mu": 0.5, "t_max": 20, "num_simulations": 0},
        {"lam": 2, "mu": 0.5, "t_max": 20, "num_simulations": 1000, "arrival_method": "nope"},
    ])
    def test_invalid_body(self, client, payload):
        r = client.post("/api/v1/simulation/resimulate", json=payload)
        assert r.status_code == 422

    def test_cap_rejected_and_slot_kept(self, client):
        before = client.get("/api/v1/simulation/latest").json()["data"]["run_id"]
        r = client.post("/api/v1/simulation/resimulate", json={
            "lam": 2, "mu": 0.5, "t_max": 20, "num_simulations": 60_000,
        })
        assert r.status_code == 422
        assert "num_simulations" in r.json()["detail"]
        after = client.get("/api/v1/simulation/latest").json()["data"]["run_id"]
        assert after == before

    def test_expected_arrivals_cap_rejected_and_slot_kept(self, client):
        before = client.get("/api/v1/simulation/latest").json()["data"]["run_id"]
        r = client.post("/api/v1/simulation/resimulate", json={
            "lam": 1e15, "mu": 0.5, "t_max": 1e6, "num_simulations": 10,
        })
        assert r.status_code == 422
        assert "lam * t_max" in r.json()["detail"]
        after = client.get("/api/v1/simulation/latest").json()["data"]["run_id"]
        assert after == before

    def test_include_samples(self, client):
        r = client.get("/api/v1/simulation/latest", params={"include_samples": True})
        data = r.json()["data"]
        assert len(data["terminal_values"]) == data["num_simulations"]
        assert min(data["terminal_values"]) >= 0

    def test_latest_404_when_empty(self, client):
        client.app.state.store.clear()
        r = client.get("/api/v1/simulation/latest")
        assert r.status_code == 404


class TestCharts:
    def test_path_png(self, client):
        r = client.get("/api/v1/simulation/latest/path.png")
        assert r.status_code == 200
        assert r.headers["content-type"] == "image/png"
        assert r.content.startswith(PNG_MAGIC)

    def test_histogram_png(self, client):
        r = client.get("/api/v1/simulation/latest/histogram.png", params={"show_density": True})
        assert r.status_code == 200
        assert r.content.startswith(PNG_MAGIC)

    def test_rendered_chart_is_cached(self, client):
        cache = client.app.state.chart_cache
        first = client.get("/api/v1/simulation/latest/path.png").content
        second = client.get("/api/v1/simulation/latest/path.png").content
        assert first == second
        assert cache.misses == 1
        assert cache.hits == 1

    def test_new_run_renders_new_chart(self, client):
        cache = client.app.state.chart_cache
        client.get("/api/v1/simulation/latest/histogram.png")
        client.post("/api/v1/simulation/resimulate", json={
            "lam": 1, "mu": 1, "t_max": 10, "num_simulations": 1000,
        })
        client.get("/api/v1/simulation/latest/histogram.png")
        assert cache.misses == 2
        assert len(cache) == 2
