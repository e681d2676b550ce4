from __future__ import annotations

from fastapi.testclient import TestClient

from careerplan.db.session import dispose_engine
from careerplan.main import app


def teardown_module() -> None:  # pragma: no cover - test cleanup
    dispose_engine()


def test_healthz_reports_policies() -> None:
    response = TestClient(app).get("/healthz")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["plan_reuse_policy"] in {"window", "latest"}


def test_database_health_endpoint_success(sqlite_store) -> None:
    response = TestClient(app).get("/healthz/database")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert "checkouts" in payload["pool"]


def test_database_health_endpoint_failure(monkeypatch) -> None:
    def raise_runtime_error():
        raise RuntimeError("missing database url")

    monkeypatch.setattr("careerplan.main.get_engine", raise_runtime_error)
    response = TestClient(app).get("/healthz/database")
    assert response.status_code == 503
    assert response.json()["detail"] == "missing database url"
