"""Application composition tests using the real lifespan wiring."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from conftest import FakeWeatherAPIClient
from weather_api.errors import StorageError
from weather_api.main import create_app
from weather_api.storage.repository import SqlWeatherRepository


@pytest.fixture
def sqlite_settings(settings, tmp_path):
    return settings.model_copy(update={
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'app.db'}",
        "run_migrations_on_startup": True,
    })


def test_lifespan_builds_sql_repository(sqlite_settings):
    api_client = FakeWeatherAPIClient()
    app = create_app(sqlite_settings, api_client=api_client)

    with TestClient(app) as client:
        assert isinstance(app.state.repository, SqlWeatherRepository)
        assert client.get("/health/ready").status_code == 200

        token = client.post("/login", json={"username": "admin", "password": "s3cret"}).json()["token"]
        created = client.post(
            "/weather",
            json={"city": "tehran", "country": "IR"},
            headers={"Authorization": f"Bearer {token}"},
        ).json()

        listed = client.get("/weather").json()
        assert [record["id"] for record in listed] == [created["id"]]


def test_unreachable_redis_does_not_block_startup(sqlite_settings):
    settings = sqlite_settings.model_copy(update={
        "cache_backend": "redis",
        "redis_url": "redis://127.0.0.1:1/0",
    })
    app = create_app(settings, api_client=FakeWeatherAPIClient())

    with TestClient(app) as client:
        response = client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["components"] == {"api": "UP", "database": "UP", "cache": "DOWN"}

        token = client.post("/login", json={"username": "admin", "password": "s3cret"}).json()["token"]
        created = client.post(
            "/weather",
            json={"city": "tehran", "country": "IR"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert created.status_code == 200
        assert client.get(f"/weather/{created.json()['id']}").status_code == 200


def test_storage_failure_is_reported_generically(settings, cache):
    repository = AsyncMock()
    repository.find_all.side_effect = StorageError("failed to list weather records")
    app = create_app(settings, repository=repository, cache=cache, api_client=FakeWeatherAPIClient())

    with TestClient(app) as client:
        response = client.get("/weather")

    assert response.status_code == 500
    assert response.json() == {"code": 500, "message": "Failed to access weather data"}
