"""
Unit tests for reactive product and user operations.
"""

from decimal import Decimal
from unittest.mock import patch

import pytest

from service_catalog.app.caching.region_cache import CacheRegionManager
from service_catalog.app.domain.models import Product, User
from service_catalog.app.reactive.stream_adapter import AsyncStreamAdapter
from service_catalog.app.services.cache_service import ProductCacheService
from service_catalog.app.services.product_service import ProductService
from service_catalog.app.services.reactive_service import ReactiveProductService, ReactiveUserService
from service_catalog.app.services.user_service import UserService
from service_catalog.app.store.record_store import InMemoryRecordStore
from service_catalog.tests.factories import seed_store
from shared.errors import ConflictError, TransientStoreError


async def _collect(stream):
    return [item async for item in stream]


@pytest.fixture
def store():
    store = InMemoryRecordStore()
    seed_store(store)
    return store


@pytest.fixture
def cache():
    return CacheRegionManager()


@pytest.fixture
def adapter():
    adapter = AsyncStreamAdapter(max_workers=4)
    yield adapter
    adapter.shutdown(wait=True)


class TestReactiveProductService:
    """Test cases for ReactiveProductService."""

    @pytest.fixture
    def products(self, store, cache):
        return ProductService(store, cache)

    @pytest.fixture
    def service(self, store, adapter, products):
        return ReactiveProductService(store, adapter, products)

    @pytest.mark.asyncio
    async def test_find_by_id(self, service):
        assert (await service.find_by_id(1)).name == "Laptop"
        assert await service.find_by_id(99) is None

    @pytest.mark.asyncio
    async def test_find_all_streams_in_key_order(self, service):
        products = await _collect(service.find_all())
        assert [p.id for p in products] == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_find_by_name(self, service):
        products = await _collect(service.find_by_name("LAPTOP"))
        assert [p.name for p in products] == ["Laptop", "Laptop Sleeve"]

    @pytest.mark.asyncio
    async def test_count(self, service):
        assert await service.count() == 4

    @pytest.mark.asyncio
    async def test_stream_all_with_delay(self, service):
        products = await _collect(service.stream_all_with_delay(0))
        assert len(products) == 4

    @pytest.mark.asyncio
    async def test_save_update_delete(self, service):
        created = await service.save(Product(name="Desk", price=Decimal("100"), stock=1))
        assert created.id == 5

        updated = await service.update(created.id, Product(name="Desk", price=Decimal("90"), stock=1))
        assert updated.price == Decimal("90")
        assert await service.update(99, Product(name="Desk", price=Decimal("90"), stock=1)) is None

        assert await service.delete_by_id(created.id) is True
        assert await service.delete_by_id(created.id) is False

    @pytest.mark.asyncio
    async def test_reactive_write_invalidates_cached_reads(self, service, store, cache, products):
        cached = ProductCacheService(store, cache, products)
        assert cached.count() == 4

        await service.save(Product(name="Desk", price=Decimal("100"), stock=1))

        assert cached.count() == 5

    @pytest.mark.asyncio
    async def test_source_failure_terminates_stream(self, service, store):
        with patch.object(store, "get_all", side_effect=TransientStoreError("down")):
            with pytest.raises(TransientStoreError):
                await _collect(service.find_all())


class TestReactiveUserService:
    """Test cases for ReactiveUserService."""

    @pytest.fixture
    def service(self, store, adapter, cache):
        return ReactiveUserService(store, adapter, UserService(store, cache))

    @pytest.mark.asyncio
    async def test_duplicate_email_surfaces_conflict(self, service):
        with pytest.raises(ConflictError):
            await service.save(User(name="Dup", email="john.doe@example.com", password="pw"))

    @pytest.mark.asyncio
    async def test_update_keeps_password(self, service, store):
        await service.update(2, User(name="Jane", email="jane.smith@example.com", password=None))

        stored = await service.find_by_id(2)
        assert stored.name == "Jane"
        assert stored.password == "password123"

    @pytest.mark.asyncio
    async def test_find_by_name_without_filter_streams_all(self, service):
        users = await _collect(service.find_by_name(None))
        assert len(users) == 3
