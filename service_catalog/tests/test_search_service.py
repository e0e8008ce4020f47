"""
Unit tests for composed product and user searches.
"""

from decimal import Decimal

import pytest

from service_catalog.app.resilience.query_executor import ResilientQueryExecutor
from service_catalog.app.services.search_service import ProductSearchService, UserSearchService
from service_catalog.app.store.record_store import InMemoryRecordStore
from service_catalog.tests.factories import FlakyRecordStore, RecordingSleep, seed_store
from shared.errors import PermanentStoreError, TransientStoreError


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def executor(sleep):
    return ResilientQueryExecutor(max_attempts=3, delay_seconds=1.0, sleep=sleep)


class TestProductSearchService:
    """Test cases for ProductSearchService."""

    @pytest.fixture
    def service(self, executor):
        store = InMemoryRecordStore()
        seed_store(store, users=[])
        return ProductSearchService(store, executor)

    def test_search_without_criteria_returns_all(self, service):
        assert len(service.search()) == 4

    def test_search_with_all_criteria(self, service):
        results = service.search(
            name="lap",
            min_price=Decimal("100"),
            max_price=Decimal("1000"),
            min_stock=1,
            description="ultra"
        )
        assert [p.name for p in results] == ["Laptop"]

    def test_empty_strings_are_unconstrained(self, service):
        assert len(service.search(name="", description="")) == 4

    def test_stock_status(self, service):
        assert [p.name for p in service.find_in_stock()] == ["Laptop", "Mouse", "Monitor"]
        assert [p.name for p in service.find_out_of_stock()] == ["Laptop Sleeve"]

    def test_price_range(self, service):
        results = service.find_by_price_range(Decimal("19.99"), Decimal("249.00"))
        assert [p.name for p in results] == ["Laptop Sleeve", "Mouse", "Monitor"]
        assert len(service.find_by_price_range(None, None)) == 4

    def test_description_skips_products_without_one(self, service):
        assert [p.name for p in service.find_by_description("e")] == ["Laptop Sleeve", "Mouse"]


class TestSearchResilience:
    """Test cases for retry behavior on search reads."""

    def test_recovers_after_two_transient_failures(self, executor, sleep):
        store = FlakyRecordStore(transient_failures=2)
        seed_store(store)

        results = ProductSearchService(store, executor).find_in_stock()

        assert len(results) == 3
        assert store.predicate_calls == 3
        assert sleep.delays == [1.0, 1.0]

    def test_gives_up_after_three_attempts(self, executor):
        store = FlakyRecordStore(transient_failures=5)

        with pytest.raises(TransientStoreError):
            UserSearchService(store, executor).find_with_address()
        assert store.predicate_calls == 3

    def test_permanent_failure_surfaces_immediately(self, executor, sleep):
        store = FlakyRecordStore(permanent=True)

        with pytest.raises(PermanentStoreError):
            ProductSearchService(store, executor).search(name="x")
        assert store.predicate_calls == 1
        assert sleep.delays == []


class TestUserSearchService:
    """Test cases for UserSearchService."""

    @pytest.fixture
    def service(self, executor):
        store = InMemoryRecordStore()
        seed_store(store, products=[])
        return UserSearchService(store, executor)

    def test_search_by_name_and_email_fragment(self, service):
        results = service.search(name="john", email="example.com")
        assert [u.name for u in results] == ["John Doe", "Johnny Appleseed"]

    def test_search_by_exact_email(self, service):
        results = service.search(email="JANE.SMITH@example.com", exact_email=True)
        assert [u.name for u in results] == ["Jane Smith"]
        assert service.search(email="jane", exact_email=True) == []

    def test_search_by_address(self, service):
        assert [u.name for u in service.search(address="orchard")] == ["Johnny Appleseed"]

    def test_address_presence(self, service):
        assert [u.name for u in service.find_with_address()] == ["John Doe", "Johnny Appleseed"]
        assert [u.name for u in service.find_without_address()] == ["Jane Smith"]
