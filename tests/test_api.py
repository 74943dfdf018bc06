# tests/test_api.py
from fastapi.testclient import TestClient

from raffle_health.main import app

client = TestClient(app)

CALC = {"targetGMV": 100000, "expectedAOVNew": 40, "marketingBudget": 15000,
        "durationDays": 20, "targetCAC": 18}


def test_calculate():
    r = client.post("/api/calculate", json=CALC)
    assert r.status_code == 200
    body = r.json()
    assert body["budgetForNew"] == 11250
    assert body["budgetForRetention"] == 3750
    assert body["targetCACNew"] == 18
    assert len(body["quarterlyData"]) == 4


def test_calculate_missing_fields():
    r = client.post("/api/calculate", json={"targetGMV": 100000})
    assert r.status_code == 400
    assert r.json() == {"error": "Missing required fields"}


def test_calculate_rejects_negative_duration():
    r = client.post("/api/calculate", json={**CALC, "durationDays": -5})
    assert r.status_code == 422
    assert "durationDays" in r.json()["error"]


def test_calculate_engine_failure(monkeypatch):
    def boom(inp):
        raise RuntimeError("boom")

    monkeypatch.setattr("raffle_health.routers.calculate.calculate_raffle_needs", boom)
    r = client.post("/api/calculate", json=CALC)
    assert r.status_code == 500
    assert r.json() == {"error": "Calculation failed"}


def test_list_raffles():
    r = client.get("/api/raffles")
    assert r.status_code == 200
    assert "XMAS25" in [x["id"] for x in r.json()]


def test_raffle_health():
    snap = {"day_number": 10, "gmv_to_date": 19500, "spend_to_date": 5000,
            "new_customers_to_date": 300, "retained_customers_to_date": 200, "orders_to_date": 400}
    r = client.post("/api/raffles/XMAS25/health", json=snap)
    assert r.status_code == 200
    assert r.json()["health"]["overall_status"] == "AMBER"

    assert client.post("/api/raffles/XMAS25/health", json={**snap, "day_number": 0}).status_code == 422
    assert client.post("/api/raffles/NOPE/health", json=snap).status_code == 404


def test_phase_plan_defaults():
    r = client.post("/api/phases/plan", json={"duration_days": 20, "target_gmv": 100000, "total_budget": 15000})
    assert r.status_code == 200
    assert [p["phase_id"] for p in r.json()] == ["launch", "mid", "push", "final"]


def test_phase_health():
    body = {
        "campaign": {"duration_days": 20, "target_gmv": 100000, "total_budget": 15000},
        "snapshot": {"phase_id": "launch", "day_in_phase": 5, "gmv_to_date": 20000,
                     "spend_to_date": 3000, "new_users_to_date": 200, "orders_to_date": 500},
    }
    r = client.post("/api/phases/health", json=body)
    assert r.status_code == 200
    out = r.json()
    assert out["phase_status"] == "GREEN"
    assert out["campaign_status"] == "RED"

    body["snapshot"]["phase_id"] = "nope"
    assert client.post("/api/phases/health", json=body).status_code == 422


def test_allocate():
    body = {
        "campaign": {"gmv_total": 100000, "aov_total": 40, "budget_total": 15000},
        "phases": [
            {"id": "1", "label": "Launch", "tickets_target": 8000, "gmv_target": 20000, "level": "low"},
            {"id": "2", "label": "Final", "tickets_target": 12000, "gmv_target": 80000, "level": "high"},
        ],
        "table": "ticket",
    }
    r = client.post("/api/phases/allocate", json=body)
    assert r.status_code == 200
    assert abs(r.json()["budget_final_sum"] - 15000) < 1e-6

    body["campaign"]["budget_total"] = 0
    assert client.post("/api/phases/allocate", json=body).status_code == 422


def test_ticket_pricing():
    body = {"total_tickets": 20000, "base_ticket_price": 5, "expected_aov": 40,
            "phases": [{"id": "1", "label": "Launch", "days": 5, "tickets_target": 4000,
                        "expected_gmv": 8000, "spend_intensity": "low"}]}
    r = client.post("/api/phases/tickets", json=body)
    assert r.status_code == 200
    assert r.json()["total_budget"] == 40000
