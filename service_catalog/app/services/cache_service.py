"""
Cached product and user operations.

Reads go through the cache region manager; a miss loads from the record
store on the caller's thread. Name searches load through the resilient query
executor. Writes are delegated to the direct services, which invalidate every
region of the kind before returning.
"""

from decimal import Decimal
from typing import Any, Callable, List, Optional

from shared.logging import get_logger

from ..caching.region_cache import (
    ALL_KEY,
    COUNT_KEY,
    PRODUCT_STATS,
    PRODUCTS,
    TOTAL_VALUE_KEY,
    USER_STATS,
    USERS,
    CacheRegionManager,
    key_for_id,
    key_for_name,
)
from ..domain.models import Product, RecordKind, User
from ..filters.predicates import compose, name_contains
from ..resilience.query_executor import ResilientQueryExecutor
from ..store.record_store import RecordStore
from .product_service import ProductService
from .user_service import UserService


class CachedRecordService:
    """Cached reads shared by every record kind."""

    kind: RecordKind
    region: str
    stats_region: str

    def __init__(self,
                 store: RecordStore,
                 cache: CacheRegionManager,
                 executor: Optional[ResilientQueryExecutor] = None):
        self.store = store
        self.cache = cache
        self.executor = executor
        self.logger = get_logger(f"catalog.cache.{self.kind.value}")

    def find_by_id(self, record_id: int) -> Optional[Any]:
        def load():
            self.logger.info("Fetching record from store", record_id=record_id)
            return self.store.get_by_key(self.kind, record_id)

        return self.cache.read_through(self.region, key_for_id(record_id), load)

    def find_all(self) -> List[Any]:
        def load():
            self.logger.info("Fetching all records from store")
            return self.store.get_all(self.kind)

        return self.cache.read_through(self.region, ALL_KEY, load)

    def find_by_name(self, name: str) -> List[Any]:
        def load():
            self.logger.info("Searching records by name in store", name=name)
            return self._query(self.store.get_by_predicate, self.kind, compose(name_contains(name)))

        return self.cache.read_through(self.region, key_for_name(name), load)

    def count(self) -> int:
        def load():
            self.logger.info("Counting records in store")
            return self.store.count(self.kind)

        return self.cache.read_through(self.stats_region, COUNT_KEY, load)

    def clear_all_caches(self) -> bool:
        self.logger.info("Clearing all caches")
        return self.cache.clear_all()

    def _query(self, operation: Callable[..., Any], *args) -> Any:
        if self.executor is None:
            return operation(*args)
        return self.executor.execute(operation, *args, name=f"cached_{self.kind.value}_search")


class ProductCacheService(CachedRecordService):
    """Cached product reads plus invalidating writes."""

    kind = RecordKind.PRODUCT
    region = PRODUCTS
    stats_region = PRODUCT_STATS

    def __init__(self,
                 store: RecordStore,
                 cache: CacheRegionManager,
                 products: ProductService,
                 executor: Optional[ResilientQueryExecutor] = None):
        super().__init__(store, cache, executor)
        if products.cache is not cache:
            raise ValueError("ProductService must invalidate the same cache this service reads from")
        self.products = products

    def total_inventory_value(self) -> Decimal:
        def load():
            self.logger.info("Calculating total inventory value from store")
            return self.products.total_inventory_value()

        return self.cache.read_through(self.stats_region, TOTAL_VALUE_KEY, load)

    def save(self, product: Product) -> Product:
        return self.products.create(product)

    def update(self, product_id: int, product: Product) -> Optional[Product]:
        return self.products.update(product_id, product)

    def delete_by_id(self, product_id: int) -> bool:
        return self.products.delete(product_id)


class UserCacheService(CachedRecordService):
    """Cached user reads plus invalidating writes."""

    kind = RecordKind.USER
    region = USERS
    stats_region = USER_STATS

    def __init__(self,
                 store: RecordStore,
                 cache: CacheRegionManager,
                 users: UserService,
                 executor: Optional[ResilientQueryExecutor] = None):
        super().__init__(store, cache, executor)
        if users.cache is not cache:
            raise ValueError("UserService must invalidate the same cache this service reads from")
        self.users = users

    def save(self, user: User) -> User:
        return self.users.create(user)

    def update(self, user_id: int, user: User) -> Optional[User]:
        return self.users.update(user_id, user)

    def delete_by_id(self, user_id: int) -> bool:
        return self.users.delete(user_id)
