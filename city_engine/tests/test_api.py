"""Tests for the FastAPI endpoints, with the engine backed by an in-memory source."""

import pytest
from fastapi.testclient import TestClient

import api
from city_engine.config import Config
from city_engine.engine import CityEngine
from city_engine.store import InMemoryRecordSource

from conftest import SAMPLE_ROWS, TABLE


@pytest.fixture
def client():
    api.engine = CityEngine(Config(), source=InMemoryRecordSource({TABLE: SAMPLE_ROWS}))
    yield TestClient(api.app)
    api.engine.close()
    api.engine = None


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["engine_loaded"] is True


def test_list_cities(client):
    resp = client.get("/cities")
    assert resp.status_code == 200
    cities = resp.json()
    assert len(cities) == 10
    assert cities[0] == {"id": "nyc-001", "name": "New York", "country": "USA"}


def test_get_city(client):
    resp = client.get("/cities/los_angeles")
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Los Angeles"
    assert body["waterUsage"] == {
        "perCapita": 105, "totalDaily": 450, "unit": "gallons", "trend": "increasing",
    }
    assert len(body["waterConsumption"]) == 5
    assert body["waterRecycling"][-1] == {"year": 2022, "percentage": 30}


def test_unknown_city_still_resolves(client):
    resp = client.get("/cities/lake_city")
    assert resp.status_code == 200
    assert resp.json()["name"] == "Lake City"
    assert resp.json()["id"] == "lake_city"


def test_compare(client):
    resp = client.get("/compare", params={"ids": "london, tokyo"})
    assert resp.status_code == 200
    assert [c["name"] for c in resp.json()] == ["London", "Tokyo"]


def test_compare_requires_ids(client):
    assert client.get("/compare", params={"ids": " , "}).status_code == 400


def test_engine_not_loaded():
    api.engine = None
    client = TestClient(api.app)
    assert client.get("/cities").status_code == 503
    assert client.get("/health").json()["status"] == "loading"
