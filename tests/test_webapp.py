from fastapi.testclient import TestClient

from pitchpulse.cache import FinancialsCache
from pitchpulse.sec_client import SecClient
from pitchpulse.web_app import create_app
from tests.helpers.fake_sec import FakeResponse
from tests.helpers.sec_fixtures import RUN_ID, example_routes


def _app(tmp_path, get=None):
    get = get or example_routes()

    def factory():
        return SecClient(user_agent="Test Agent", get_fn=get, sleep_fn=lambda _: None)

    return create_app(
        sec_client_factory=factory,
        cache=FinancialsCache(tmp_path / "cache"),
        output_root=tmp_path / "outputs",
    )


def _body(**overrides):
    body = {
        "run_id": RUN_ID,
        "ticker": "AAPL",
        "fiscal_year_start": 2022,
        "fiscal_year_end": 2023,
    }
    body.update(overrides)
    return body


def test_health(tmp_path):
    client = TestClient(_app(tmp_path))
    assert client.get("/api/health").json() == {"status": "ok"}


def test_sec_data_returns_live_then_cache(tmp_path):
    client = TestClient(_app(tmp_path))
    first = client.post("/api/sec-data", json=_body())
    assert first.status_code == 200
    assert first.json()["source"] == "live"
    assert first.json()["data"]["entity_name"] == "Apple Inc."

    second = client.post("/api/sec-data", json=_body())
    assert second.json()["source"] == "cache"


def test_sec_data_rejects_invalid_request(tmp_path):
    client = TestClient(_app(tmp_path))
    resp = client.post("/api/sec-data", json=_body(fiscal_year_start=2023, fiscal_year_end=2020))
    assert resp.status_code == 422


def test_sec_data_unknown_ticker_is_404(tmp_path):
    client = TestClient(_app(tmp_path))
    resp = client.post("/api/sec-data", json=_body(ticker="ZZZZ"))
    assert resp.status_code == 404
    assert "ZZZZ" in resp.json()["detail"]


def test_sec_data_upstream_failure_is_generic_502(tmp_path):
    client = TestClient(_app(tmp_path, example_routes(FakeResponse(500, {"error": "boom"}))))
    resp = client.post("/api/sec-data", json=_body())
    assert resp.status_code == 502
    assert resp.json()["detail"] == "Failed to fetch SEC data. Please try again later."


def test_sec_data_non_json_upstream_body_is_generic_502(tmp_path):
    client = TestClient(_app(tmp_path, example_routes(FakeResponse(200, None))))
    for path in ("/api/sec-data", "/api/run"):
        resp = client.post(path, json=_body())
        assert resp.status_code == 502
        assert resp.json()["detail"] == "Failed to fetch SEC data. Please try again later."


def test_debug_setting_reaches_app(tmp_path, monkeypatch):
    monkeypatch.setenv("DEBUG", "true")
    assert _app(tmp_path).debug is True
    monkeypatch.setenv("DEBUG", "false")
    assert _app(tmp_path).debug is False


def test_run_endpoint_returns_analysis_and_output_dir(tmp_path):
    client = TestClient(_app(tmp_path))
    resp = client.post("/api/run", json=_body())
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["credit_analysis"]["fiscal_year"] == 2023
    assert payload["meta"]["output_dir"].startswith(str(tmp_path / "outputs"))


def test_credit_analysis_endpoint(tmp_path):
    client = TestClient(_app(tmp_path))
    financials = client.post("/api/sec-data", json=_body()).json()["data"]

    resp = client.post("/api/credit-analysis", json={"financials": financials})
    assert resp.status_code == 200
    analysis = resp.json()["analysis"]
    assert len(analysis["ratios"]) == 6
    assert len(analysis["peer_comparisons"]) == 4


def test_credit_analysis_without_years_is_null(tmp_path):
    client = TestClient(_app(tmp_path))
    resp = client.post(
        "/api/credit-analysis",
        json={"financials": {"cik": "1", "entity_name": "Empty", "ticker": "E", "fiscal_years": []}},
    )
    assert resp.status_code == 200
    assert resp.json() == {"analysis": None}


def test_credit_analysis_rejects_malformed_financials(tmp_path):
    client = TestClient(_app(tmp_path))
    resp = client.post("/api/credit-analysis", json={"financials": {"fiscal_years": [{"revenue": 1}]}})
    assert resp.status_code == 400


def test_validation_endpoint_with_override(tmp_path):
    client = TestClient(_app(tmp_path))
    financials = client.post("/api/sec-data", json=_body()).json()["data"]
    resp = client.post(
        "/api/validation",
        json={
            "financials": financials,
            "overrides": [{"check_id": "revenue_trend", "reason": "Reviewed", "overridden_by": "analyst"}],
        },
    )
    assert resp.status_code == 200
    checks = {check["id"]: check for check in resp.json()["checks"]}
    assert checks["revenue_trend"]["status"] == "pass"
    assert checks["revenue_trend"]["overridden"] is True
    assert checks["revenue_trend"]["overridden_at"]


def test_validation_endpoint_without_data_is_pending(tmp_path):
    client = TestClient(_app(tmp_path))
    resp = client.post("/api/validation", json={})
    assert resp.json()["overall_status"] == "pending"
