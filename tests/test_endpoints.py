"""
HTTP API tests.

The application is built with in-memory repository and cache and a fake
provider client, and driven through TestClient so the lifespan runs.
"""

import asyncio
import uuid

import pytest
from fastapi.testclient import TestClient

from conftest import FakeWeatherAPIClient
from weather_api.errors import UpstreamError
from weather_api.main import create_app


@pytest.fixture
def app(settings, repository, cache, api_client):
    return create_app(settings, repository=repository, cache=cache, api_client=api_client)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def auth_headers(client) -> dict:
    response = client.post("/login", json={"username": "admin", "password": "s3cret"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


def create_record(client, auth_headers, city="tehran", country="IR") -> dict:
    response = client.post("/weather", json={"city": city, "country": country}, headers=auth_headers)
    assert response.status_code == 200
    return response.json()


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

class TestLogin:

    def test_login_returns_token(self, client):
        response = client.post("/login", json={"username": "admin", "password": "s3cret"})

        assert response.status_code == 200
        body = response.json()
        assert body["tokenType"] == "Bearer"
        assert body["expiresAt"].endswith("Z")
        assert body["token"]

    def test_bad_credentials(self, client):
        response = client.post("/login", json={"username": "admin", "password": "wrong"})

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json() == {"code": 401, "message": "invalid credentials"}

    def test_missing_password(self, client):
        response = client.post("/login", json={"username": "admin"})

        assert response.status_code == 400
        assert "password" in response.json()["details"]


# ---------------------------------------------------------------------------
# POST /weather
# ---------------------------------------------------------------------------

class TestFetchAndStore:

    def test_requires_token(self, client, api_client):
        response = client.post("/weather", json={"city": "tehran", "country": "IR"})

        assert response.status_code == 401
        assert api_client.calls == []

    def test_rejects_invalid_token(self, client):
        response = client.post(
            "/weather",
            json={"city": "tehran", "country": "IR"},
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 401
        assert response.json()["message"] == "invalid or expired token"

    def test_rejects_non_bearer_scheme(self, client):
        response = client.post(
            "/weather",
            json={"city": "tehran", "country": "IR"},
            headers={"Authorization": "Basic YWRtaW46czNjcmV0"},
        )

        assert response.status_code == 401

    def test_fetch_and_store(self, client, auth_headers, api_client):
        body = create_record(client, auth_headers)

        assert body["city"] == "tehran"
        assert body["country"] == "IR"
        assert body["temperature"] == 30.5
        assert body["windSpeed"] == 3.1
        assert {"fetchedAt", "createdAt", "updatedAt"} <= body.keys()
        uuid.UUID(body["id"])
        assert api_client.calls == [("tehran", "IR")]

    def test_repeat_fetch_served_from_cache(self, client, auth_headers, api_client):
        first = create_record(client, auth_headers)
        second = create_record(client, auth_headers)

        assert second["id"] == first["id"]
        assert len(api_client.calls) == 1

    def test_invalid_body(self, client, auth_headers):
        response = client.post("/weather", json={"city": "", "country": "I"}, headers=auth_headers)

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Invalid request data"
        assert {"city", "country"} <= body["details"].keys()

    def test_upstream_failure(self, settings, repository, cache):
        failing = FakeWeatherAPIClient(error=UpstreamError("weather provider returned 404"))
        app = create_app(settings, repository=repository, cache=cache, api_client=failing)

        with TestClient(app) as client:
            token = client.post("/login", json={"username": "admin", "password": "s3cret"}).json()["token"]
            response = client.post(
                "/weather",
                json={"city": "atlantis", "country": "XX"},
                headers={"Authorization": f"Bearer {token}"},
            )

        assert response.status_code == 502
        assert response.json() == {"code": 502, "message": "Failed to fetch weather data"}


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

class TestReads:

    def test_get_by_id(self, client, auth_headers):
        created = create_record(client, auth_headers)

        response = client.get(f"/weather/{created['id']}")

        assert response.status_code == 200
        assert response.json() == created

    def test_get_by_id_not_found(self, client):
        missing = uuid.uuid4()

        response = client.get(f"/weather/{missing}")

        assert response.status_code == 404
        assert response.json() == {"code": 404, "message": f"weather record {missing} not found"}

    def test_get_all_with_pagination(self, client, auth_headers):
        for city in ("tehran", "mashhad", "shiraz"):
            create_record(client, auth_headers, city=city)

        assert len(client.get("/weather").json()) == 3
        assert len(client.get("/weather", params={"limit": 2}).json()) == 2
        assert len(client.get("/weather", params={"offset": 2}).json()) == 1

    def test_get_all_rejects_bad_limit(self, client):
        response = client.get("/weather", params={"limit": 0})

        assert response.status_code == 400
        assert "limit" in response.json()["details"]

    def test_latest_by_city(self, client, auth_headers):
        created = create_record(client, auth_headers)

        response = client.get("/weather/latest/tehran")

        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    def test_latest_by_city_not_found(self, client):
        response = client.get("/weather/latest/atlantis")

        assert response.status_code == 404


# ---------------------------------------------------------------------------
# PUT / DELETE
# ---------------------------------------------------------------------------

class TestWrites:

    def test_update(self, client, auth_headers):
        created = create_record(client, auth_headers)

        response = client.put(
            f"/weather/{created['id']}",
            json={"city": "mashhad", "windSpeed": 5.5},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["city"] == "mashhad"
        assert body["windSpeed"] == 5.5
        assert body["temperature"] == created["temperature"]
        assert client.get(f"/weather/{created['id']}").json()["city"] == "mashhad"

    def test_update_requires_token(self, client):
        response = client.put(f"/weather/{uuid.uuid4()}", json={"city": "mashhad"})

        assert response.status_code == 401

    def test_update_not_found(self, client, auth_headers):
        response = client.put(f"/weather/{uuid.uuid4()}", json={"city": "mashhad"}, headers=auth_headers)

        assert response.status_code == 404

    def test_update_rejects_out_of_range_humidity(self, client, auth_headers):
        response = client.put(f"/weather/{uuid.uuid4()}", json={"humidity": 150}, headers=auth_headers)

        assert response.status_code == 400

    def test_delete(self, client, auth_headers):
        created = create_record(client, auth_headers)

        response = client.delete(f"/weather/{created['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"message": "Weather record deleted"}
        assert client.get(f"/weather/{created['id']}").status_code == 404

    def test_delete_not_found(self, client, auth_headers):
        response = client.delete(f"/weather/{uuid.uuid4()}", headers=auth_headers)

        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Health and rate limiting
# ---------------------------------------------------------------------------

class TestHealth:

    @pytest.mark.parametrize("path", ["/health", "/health/live", "/health/ready"])
    def test_up(self, client, path):
        response = client.get(path)

        assert response.status_code == 200
        assert response.json()["status"] == "UP"

    def test_ready_reports_cache_down(self, client, cache):
        asyncio.run(cache.close())

        response = client.get("/health/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "DOWN"
        assert body["components"]["cache"] == "DOWN"
        assert body["components"]["database"] == "UP"


class TestRateLimit:

    @pytest.fixture
    def limited_client(self, settings, repository, cache, api_client):
        limited = settings.model_copy(update={
            "rate_limit_enabled": True,
            "rate_limit_requests_per_second": 2,
        })
        app = create_app(limited, repository=repository, cache=cache, api_client=api_client)
        with TestClient(app) as client:
            yield client

    def test_exceeding_limit_returns_429(self, limited_client):
        limited_client.app.state.rate_limiter.clock = lambda: 1700000000.0

        statuses = [limited_client.get("/weather").status_code for _ in range(3)]

        assert statuses == [200, 200, 429]
        response = limited_client.get("/weather")
        assert response.headers["Retry-After"] == "1"
        assert response.headers["X-RateLimit-Limit"] == "2"
        assert response.headers["X-RateLimit-Window"] == "1"
        assert response.json()["code"] == 429

    def test_health_bypasses_limit(self, limited_client):
        limited_client.app.state.rate_limiter.clock = lambda: 1700000000.0

        statuses = [limited_client.get("/health").status_code for _ in range(5)]

        assert statuses == [200] * 5

    def test_limit_headers(self, limited_client):
        response = limited_client.get("/weather")

        assert response.headers["X-RateLimit-Limit"] == "2"
        assert response.headers["X-RateLimit-Window"] == "1"


def test_api_info(client):
    response = client.get("/api")

    assert response.status_code == 200
    assert response.json()["health"] == "/health"
