"""HTTP endpoint tests"""

import pytest
from fastapi.testclient import TestClient

from rate_reference.main import app

from conftest import OFFICE_VISIT_ROWS, StubCMSApi


@pytest.fixture
def api_stub() -> StubCMSApi:
    return StubCMSApi({("99213", None): OFFICE_VISIT_ROWS})


@pytest.fixture
def client(make_service, api_stub):
    app.state.lookup_service = make_service(api_stub)
    with TestClient(app) as test_client:
        yield test_client
    app.state.lookup_service = None


def test_health_check(client: TestClient):
    """Test basic health check endpoint."""
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "rate-reference"}


def test_readiness_reports_cache_and_fetcher(client: TestClient):
    response = client.get("/readyz")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ready"
    assert "items" in body["dependencies"]["cache"]
    assert "outbound_calls" in body["dependencies"]["fetcher"]


def test_metrics_endpoint(client: TestClient):
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]


class TestLookupEndpoint:
    """Test POST /rates/lookup"""

    def test_lookup_returns_rates_and_reference(self, client: TestClient, api_stub):
        response = client.post("/rates/lookup", json={"codes": ["99213", " 99213", "00000"], "state": "ZZ"})

        assert response.status_code == 200
        body = response.json()
        assert body["requested"] == 2
        assert body["found"] == 1
        rate = body["rates"]["99213"]
        assert rate["medicare_allowed_amt"] == 110.0
        assert rate["region"] == "National"
        assert "- CPT 99213" in body["reference"]
        assert "X-Run-ID" in response.headers

    def test_nothing_found_returns_null_reference(self, client: TestClient):
        response = client.post("/rates/lookup", json={"codes": ["00000"]})

        assert response.status_code == 200
        body = response.json()
        assert body["rates"] == {}
        assert body["found"] == 0
        assert body["reference"] is None

    def test_empty_code_list(self, client: TestClient, api_stub):
        response = client.post("/rates/lookup", json={"codes": []})

        assert response.status_code == 200
        assert response.json()["requested"] == 0
        assert api_stub.requests == []

    def test_invalid_state_is_rejected(self, client: TestClient):
        response = client.post("/rates/lookup", json={"codes": ["99213"], "state": "California"})
        assert response.status_code == 422

    def test_missing_codes_is_rejected(self, client: TestClient):
        response = client.post("/rates/lookup", json={"state": "CA"})
        assert response.status_code == 422
