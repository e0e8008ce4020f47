"""
Filtered product and user searches.

Each search composes one predicate from its optional criteria and runs it
against the store through the resilient query executor, so transient store
failures are retried before they reach the caller.
"""

from decimal import Decimal
from typing import List, Optional

from shared.logging import get_logger

from ..domain.models import Product, RecordKind, User
from ..filters import predicates
from ..filters.predicates import Predicate
from ..resilience.query_executor import ResilientQueryExecutor
from ..store.record_store import RecordStore


class ProductSearchService:
    """Composed product searches."""

    kind = RecordKind.PRODUCT

    def __init__(self, store: RecordStore, executor: ResilientQueryExecutor):
        self.store = store
        self.executor = executor
        self.logger = get_logger("catalog.search.products")

    def search(self,
               name: Optional[str] = None,
               min_price: Optional[Decimal] = None,
               max_price: Optional[Decimal] = None,
               min_stock: Optional[int] = None,
               description: Optional[str] = None) -> List[Product]:
        self.logger.info(
            "Searching products",
            name=name,
            min_price=str(min_price) if min_price is not None else None,
            max_price=str(max_price) if max_price is not None else None,
            min_stock=min_stock,
            description=description
        )
        predicate = predicates.product_search_predicate(
            name=name,
            min_price=min_price,
            max_price=max_price,
            min_stock=min_stock,
            description=description
        )
        return self._find(predicate, "search_products")

    def find_in_stock(self) -> List[Product]:
        self.logger.info("Finding products in stock")
        return self._find(predicates.in_stock(), "find_in_stock_products")

    def find_out_of_stock(self) -> List[Product]:
        self.logger.info("Finding products out of stock")
        return self._find(predicates.out_of_stock(), "find_out_of_stock_products")

    def find_by_price_range(self, min_price: Optional[Decimal], max_price: Optional[Decimal]) -> List[Product]:
        self.logger.info(
            "Finding products by price range",
            min_price=str(min_price) if min_price is not None else None,
            max_price=str(max_price) if max_price is not None else None
        )
        predicate = predicates.compose(predicates.price_between(min_price, max_price))
        return self._find(predicate, "find_products_by_price_range")

    def find_by_description(self, description: Optional[str]) -> List[Product]:
        self.logger.info("Finding products by description", description=description)
        predicate = predicates.compose(predicates.description_contains(description))
        return self._find(predicate, "find_products_by_description")

    def _find(self, predicate: Predicate, operation: str) -> List[Product]:
        return self.executor.execute(self.store.get_by_predicate, self.kind, predicate, name=operation)


class UserSearchService:
    """Composed user searches."""

    kind = RecordKind.USER

    def __init__(self, store: RecordStore, executor: ResilientQueryExecutor):
        self.store = store
        self.executor = executor
        self.logger = get_logger("catalog.search.users")

    def search(self,
               name: Optional[str] = None,
               email: Optional[str] = None,
               address: Optional[str] = None,
               exact_email: bool = False) -> List[User]:
        self.logger.info(
            "Searching users",
            name=name,
            email=email,
            address=address,
            exact_email=exact_email
        )
        predicate = predicates.user_search_predicate(
            name=name,
            email=email,
            address=address,
            exact_email=exact_email
        )
        return self._find(predicate, "search_users")

    def find_with_address(self) -> List[User]:
        self.logger.info("Finding users with address")
        return self._find(predicates.has_address(), "find_users_with_address")

    def find_without_address(self) -> List[User]:
        self.logger.info("Finding users without address")
        return self._find(predicates.has_no_address(), "find_users_without_address")

    def _find(self, predicate: Predicate, operation: str) -> List[User]:
        return self.executor.execute(self.store.get_by_predicate, self.kind, predicate, name=operation)
