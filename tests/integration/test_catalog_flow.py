"""
End-to-end integration tests for the catalog flows.
"""

import json
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from service_catalog.app.main import CatalogService
from service_catalog.app.resilience.query_executor import ResilientQueryExecutor
from service_catalog.tests.factories import RecordingSleep
from shared.config import get_catalog_config


class TestCatalogFlow:
    """End-to-end tests across the direct, cached, search and reactive paths."""

    @pytest.fixture
    def client(self):
        service = CatalogService(
            config=get_catalog_config(stream_delay_seconds=0),
            executor=ResilientQueryExecutor(sleep=RecordingSleep())
        )
        with TestClient(service.app) as client:
            yield client

    def test_create_read_update_through_the_cache(self, client):
        created = client.post("/api/products", json={"name": "Laptop", "price": 999.99, "stock": 10})
        assert created.status_code == 201
        product_id = created.json()["id"]

        fetched = client.get(f"/api/products/{product_id}").json()
        assert fetched["name"] == "Laptop"
        assert Decimal(fetched["price"]) == Decimal("999.99")

        cached = client.get("/api/cache/products").json()
        assert [(p["id"], p["stock"]) for p in cached] == [(product_id, 10)]

        updated = client.put(
            f"/api/products/{product_id}",
            json={"name": "Laptop", "price": 999.99, "stock": 5}
        )
        assert updated.status_code == 200

        cached = client.get("/api/cache/products").json()
        assert [(p["id"], p["stock"]) for p in cached] == [(product_id, 5)]

    def test_duplicate_email_conflicts_without_mutating_the_store(self, client):
        first = client.post("/api/users", json={"name": "A", "email": "a@x.com", "password": "pw"})
        assert first.status_code == 201

        second = client.post("/api/users", json={"name": "B", "email": "a@x.com", "password": "pw"})
        assert second.status_code == 409
        assert second.json()["code"] == "CONFLICT"

        users = client.get("/api/users").json()
        assert [u["name"] for u in users] == ["A"]

    def test_composed_search_returns_only_matching_item(self, client):
        for name, price in [("Cheap", 50), ("Mid", 500), ("Premium", 1500)]:
            response = client.post("/api/products", json={"name": name, "price": price, "stock": 10})
            assert response.status_code == 201

        response = client.get(
            "/api/search/products/search",
            params={"min_price": 100, "max_price": 1000, "min_stock": 5}
        )

        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == ["Mid"]

    def test_reactive_writes_are_visible_everywhere(self, client):
        created = client.post("/api/reactive/products", json={"name": "Desk", "price": "120.00", "stock": 2})
        assert created.status_code == 201

        assert client.get("/api/cache/products/stats/count").json() == {"count": 1}
        assert Decimal(client.get("/api/cache/products/stats/total-value").json()["total_value"]) == Decimal("240.00")

        client.put(
            f"/api/reactive/products/{created.json()['id']}",
            json={"name": "Desk", "price": "100.00", "stock": 2}
        )
        assert Decimal(client.get("/api/cache/products/stats/total-value").json()["total_value"]) == Decimal("200.00")

        streamed = [json.loads(line) for line in client.get("/api/reactive/products").text.splitlines()]
        assert [p["name"] for p in streamed] == ["Desk"]

    def test_clear_all_caches_always_succeeds(self, client):
        for _ in range(2):
            response = client.post("/api/cache/users/cache/clear")
            assert response.status_code == 200
            assert response.json()["message"] == "All caches cleared successfully"
