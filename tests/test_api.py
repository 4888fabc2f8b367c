"""
Tests for calculation and stored appraisal API endpoints.
"""

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from loan_appraisal.main import app
from loan_appraisal.api.calculations import get_engine_config
from loan_appraisal.calculations.appraisal import AppraisalCalculator
from loan_appraisal.calculations.config import EngineConfig
from loan_appraisal.db.models import Appraisal, Experiment

# Database setup is handled by conftest.py


LOAN_PAYLOAD = {
    "purchase_price": "250000",
    "total_costs": "10000",
    "loan_term_months": 360,
    "annual_interest_rate": "0.06",
    "predicted_start_date": "2025-01-01",
    "down_payment": "60000",
    "projected_annual_rental_income": "18000",
}


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def small_cap_client(client):
    """Client whose engine allows at most two variants."""
    app.dependency_overrides[get_engine_config] = lambda: EngineConfig(
        max_experiment_variants=2
    )
    yield client
    app.dependency_overrides.pop(get_engine_config, None)


@pytest.fixture
def test_appraisal(client):
    """Create a stored appraisal through the API."""
    response = client.post(
        "/api/appraisals/",
        json={"name": "Duplex", "description": "Test", **LOAN_PAYLOAD},
    )
    assert response.status_code == 201
    return response.json()


# ============================================================================
# CALCULATION API TESTS
# ============================================================================

class TestCalculationAPI:
    """Test stateless calculation endpoints."""

    def test_calculate_appraisal(self, client):
        response = client.post("/api/calculate/appraisal", json=LOAN_PAYLOAD)
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["principal"]) == Decimal("200000")
        assert Decimal(data["periodic_payment"]) == Decimal("1199.10")
        assert Decimal(data["loan_to_value_ratio"]) == Decimal("0.8")
        assert Decimal(data["loan_to_cost_ratio"]) == Decimal("20")
        assert Decimal(data["debt_service_coverage_ratio"]) > Decimal("1.25")
        assert len(data["schedule"]) == 360
        assert Decimal(data["schedule"][-1]["closing_balance"]) == 0
        assert data["schedule"][0]["payment_date"] == "2025-01-01"
        assert Decimal(data["total_repayment"]) == Decimal(
            data["total_interest_paid"]
        ) + Decimal(data["principal"])

    def test_calculate_appraisal_without_schedule(self, client):
        response = client.post(
            "/api/calculate/appraisal?include_schedule=false", json=LOAN_PAYLOAD
        )
        assert response.status_code == 200
        assert response.json()["schedule"] is None

    def test_negative_principal_names_field(self, client):
        response = client.post(
            "/api/calculate/appraisal",
            json={**LOAN_PAYLOAD, "down_payment": "300000"},
        )
        assert response.status_code == 422
        data = response.json()
        assert data["field"] == "down_payment"
        assert data["error"] == "InvalidInputError"

    def test_invalid_rate(self, client):
        response = client.post(
            "/api/calculate/appraisal",
            json={**LOAN_PAYLOAD, "annual_interest_rate": "1.5"},
        )
        assert response.status_code == 422
        assert response.json()["field"] == "annual_interest_rate"
        assert response.json()["error"] == "InvalidRateError"

    def test_invalid_term(self, client):
        response = client.post(
            "/api/calculate/appraisal",
            json={**LOAN_PAYLOAD, "loan_term_months": 0},
        )
        assert response.status_code == 422
        assert response.json()["error"] == "InvalidTermError"

    def test_schema_validation(self, client):
        """Field-level schema errors are rejected before the engine runs."""
        response = client.post(
            "/api/calculate/appraisal",
            json={**LOAN_PAYLOAD, "purchase_price": "-1"},
        )
        assert response.status_code == 422
        assert "field" not in response.json()

    def test_amortization(self, client):
        response = client.post(
            "/api/calculate/amortization",
            json={"principal": "200000", "annual_rate": "0.06", "term_months": 360},
        )
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["periodic_payment"]) == Decimal("1199.10")
        assert Decimal(data["total_principal"]) == Decimal("200000")
        assert len(data["schedule"]) == 360
        assert data["schedule"][0]["payment_date"] is None

    def test_amortization_negative_principal(self, client):
        response = client.post(
            "/api/calculate/amortization",
            json={"principal": "-5", "annual_rate": "0.06", "term_months": 12},
        )
        assert response.status_code == 422
        assert response.json()["error"] == "InvalidPrincipalError"

    def test_experiment_order(self, client):
        response = client.post(
            "/api/calculate/experiment",
            json={
                "base": LOAN_PAYLOAD,
                "axes": [
                    {"field": "annual_interest_rate", "values": ["0.03", "0.05"]},
                    {"field": "loan_term_months", "values": [120, 360]},
                ],
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["variant_count"] == 4
        assert data["succeeded_count"] == 4
        combos = [
            (
                Decimal(o["model"]["loan_input"]["annual_interest_rate"]),
                o["model"]["loan_input"]["loan_term_months"],
            )
            for o in data["outcomes"]
        ]
        assert combos == [
            (Decimal("0.03"), 120),
            (Decimal("0.03"), 360),
            (Decimal("0.05"), 120),
            (Decimal("0.05"), 360),
        ]
        assert data["outcomes"][0]["model"]["schedule"] is None

    def test_experiment_partial_failure(self, client):
        response = client.post(
            "/api/calculate/experiment",
            json={
                "base": LOAN_PAYLOAD,
                "axes": [
                    {"field": "down_payment", "values": ["0", "60000", "300000", "100000"]},
                ],
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["succeeded_count"] == 3
        assert data["failed_count"] == 1
        failed = data["outcomes"][2]
        assert failed["succeeded"] is False
        assert failed["error_field"] == "down_payment"

    def test_experiment_too_large(self, small_cap_client):
        response = small_cap_client.post(
            "/api/calculate/experiment",
            json={
                "base": LOAN_PAYLOAD,
                "axes": [{"field": "loan_term_months", "values": [120, 240, 360]}],
            },
        )
        assert response.status_code == 413
        data = response.json()
        assert data["variant_count"] == 3
        assert data["limit"] == 2

    def test_unknown_axis_field(self, client):
        response = client.post(
            "/api/calculate/experiment",
            json={
                "base": LOAN_PAYLOAD,
                "axes": [{"field": "total_costs", "values": ["1"]}],
            },
        )
        assert response.status_code == 422

    def test_rank(self, client):
        response = client.post(
            "/api/calculate/rank",
            json={
                "base": LOAN_PAYLOAD,
                "axes": [{"field": "loan_term_months", "values": [120, 360, 240]}],
                "objective": "max_dscr",
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["objective"] == "max_dscr"
        terms = [o["model"]["loan_input"]["loan_term_months"] for o in data["outcomes"]]
        assert terms == [360, 240, 120]

    def test_rank_requires_objective(self, client):
        response = client.post(
            "/api/calculate/rank",
            json={"base": LOAN_PAYLOAD, "axes": []},
        )
        assert response.status_code == 422


# ============================================================================
# STORED APPRAISAL API TESTS
# ============================================================================

class TestAppraisalAPI:
    """Test stored appraisal endpoints."""

    def test_create_appraisal(self, client, db_session):
        response = client.post(
            "/api/appraisals/",
            json={"name": "New Appraisal", **LOAN_PAYLOAD},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "New Appraisal"
        assert data["loan_term_months"] == 360
        assert data["calculated_at"] is None

        stored = db_session.query(Appraisal).filter(Appraisal.id == data["id"]).first()
        assert stored is not None
        assert stored.purchase_price == Decimal("250000")

    def test_create_rejects_invalid_input(self, client, db_session):
        response = client.post(
            "/api/appraisals/",
            json={"name": "Bad", **LOAN_PAYLOAD, "down_payment": "999999"},
        )
        assert response.status_code == 422
        assert response.json()["field"] == "down_payment"
        assert db_session.query(Appraisal).count() == 0

    def test_list_appraisals(self, client, test_appraisal):
        response = client.get("/api/appraisals/")
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["appraisals"][0]["id"] == test_appraisal["id"]

    def test_get_appraisal(self, client, test_appraisal):
        response = client.get(f"/api/appraisals/{test_appraisal['id']}")
        assert response.status_code == 200
        assert response.json()["name"] == "Duplex"

    def test_get_missing_appraisal(self, client):
        response = client.get("/api/appraisals/does-not-exist")
        assert response.status_code == 404

    def test_delete_appraisal(self, client, test_appraisal):
        response = client.delete(f"/api/appraisals/{test_appraisal['id']}")
        assert response.status_code == 200
        assert response.json() == {"deleted": True}

        response = client.get(f"/api/appraisals/{test_appraisal['id']}")
        assert response.status_code == 404

    def test_calculate_and_cache(self, client, test_appraisal):
        appraisal_id = test_appraisal["id"]

        response = client.get(f"/api/appraisals/{appraisal_id}/model")
        assert response.status_code == 404

        response = client.post(
            f"/api/appraisals/{appraisal_id}/calculate?include_schedule=false"
        )
        assert response.status_code == 200
        calculated = response.json()
        assert Decimal(calculated["periodic_payment"]) == Decimal("1199.10")
        assert calculated["schedule"] is None

        response = client.get(f"/api/appraisals/{appraisal_id}/model")
        assert response.status_code == 200
        cached = response.json()
        assert cached["total_repayment"] == calculated["total_repayment"]
        assert len(cached["schedule"]) == 360

        response = client.get(f"/api/appraisals/{appraisal_id}")
        assert response.json()["calculated_at"] is not None
        assert response.json()["engine_version"] == calculated["engine_version"]

    def test_run_and_list_experiments(self, client, test_appraisal, db_session):
        appraisal_id = test_appraisal["id"]
        response = client.post(
            f"/api/appraisals/{appraisal_id}/experiments",
            json={
                "name": "Rate sweep",
                "axes": [
                    {"field": "annual_interest_rate", "values": ["0.05", "0.04"]},
                    {"field": "down_payment", "values": ["60000", "500000"]},
                ],
                "objective": "min_total_interest",
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["variant_count"] == 4
        assert data["failed_count"] == 2
        assert data["objective"] == "min_total_interest"
        first = data["result"]["outcomes"][0]
        assert Decimal(first["overrides"]["annual_interest_rate"]) == Decimal("0.04")

        assert db_session.query(Experiment).count() == 1

        response = client.get(f"/api/appraisals/{appraisal_id}/experiments")
        assert response.status_code == 200
        experiments = response.json()
        assert len(experiments) == 1
        assert experiments[0]["name"] == "Rate sweep"

    def test_rerank_stored_experiment(self, client, test_appraisal):
        appraisal_id = test_appraisal["id"]
        response = client.post(
            f"/api/appraisals/{appraisal_id}/experiments",
            json={"axes": [{"field": "loan_term_months", "values": [120, 360]}]},
        )
        experiment_id = response.json()["id"]

        response = client.get(
            f"/api/appraisals/{appraisal_id}/experiments/{experiment_id}/ranked",
            params={"objective": "max_dscr"},
        )
        assert response.status_code == 200
        terms = [
            o["model"]["loan_input"]["loan_term_months"]
            for o in response.json()["outcomes"]
        ]
        assert terms == [360, 120]

    def test_rerank_uses_stored_outcomes(self, client, test_appraisal, monkeypatch):
        appraisal_id = test_appraisal["id"]
        response = client.post(
            f"/api/appraisals/{appraisal_id}/experiments",
            json={
                "axes": [
                    {"field": "loan_term_months", "values": [120, 360]},
                    {"field": "down_payment", "values": ["999999", "60000"]},
                ]
            },
        )
        stored = response.json()
        experiment_id = stored["id"]

        calls = []
        original = AppraisalCalculator.calculate

        def counting_calculate(self, loan_input):
            calls.append(loan_input)
            return original(self, loan_input)

        monkeypatch.setattr(AppraisalCalculator, "calculate", counting_calculate)

        response = client.get(
            f"/api/appraisals/{appraisal_id}/experiments/{experiment_id}/ranked",
            params={"objective": "min_total_interest"},
        )
        assert response.status_code == 200
        assert calls == []

        data = response.json()
        assert data["objective"] == "min_total_interest"
        assert [o["index"] for o in data["outcomes"]] == [1, 3, 0, 2]
        assert [o["succeeded"] for o in data["outcomes"]] == [True, True, False, False]
        stored_first = stored["result"]["outcomes"][1]
        assert data["outcomes"][0]["model"] == stored_first["model"]

    def test_rerank_deleted_experiment(self, client, test_appraisal, db_session):
        appraisal_id = test_appraisal["id"]
        response = client.post(
            f"/api/appraisals/{appraisal_id}/experiments",
            json={"axes": [{"field": "loan_term_months", "values": [120]}]},
        )
        experiment_id = response.json()["id"]

        experiment = db_session.query(Experiment).filter(Experiment.id == experiment_id).first()
        experiment.is_deleted = True
        db_session.commit()

        response = client.get(
            f"/api/appraisals/{appraisal_id}/experiments/{experiment_id}/ranked",
            params={"objective": "max_dscr"},
        )
        assert response.status_code == 404

    def test_experiment_on_missing_appraisal(self, client):
        response = client.post(
            "/api/appraisals/missing/experiments",
            json={"axes": []},
        )
        assert response.status_code == 404


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
