"""
Direct product operations.

Reads and writes go straight to the record store on the caller's thread.
Every write also invalidates all product cache regions before returning, so
cached reads issued after a write never see the pre-write state.
"""

import threading
from dataclasses import replace
from decimal import Decimal
from typing import List, Optional

from shared.logging import get_logger

from ..caching.region_cache import CacheRegionManager
from ..domain.models import Product, RecordKind, validate_product
from ..filters.predicates import compose, name_contains
from ..store.record_store import RecordStore


class ProductService:
    """Product CRUD against the record store."""

    kind = RecordKind.PRODUCT

    def __init__(self, store: RecordStore, cache: Optional[CacheRegionManager] = None):
        self.store = store
        self.cache = cache
        self.logger = get_logger("catalog.products")
        # Keeps the existence check and the write it guards together
        self._write_lock = threading.Lock()

    def get(self, product_id: int) -> Optional[Product]:
        return self.store.get_by_key(self.kind, product_id)

    def list(self, name: Optional[str] = None) -> List[Product]:
        if name:
            return self.store.get_by_predicate(self.kind, compose(name_contains(name)))
        return self.store.get_all(self.kind)

    def count(self) -> int:
        return self.store.count(self.kind)

    def total_inventory_value(self) -> Decimal:
        """Sum of price times stock over every product."""
        return sum(
            (product.price * product.stock for product in self.store.get_all(self.kind)),
            Decimal("0")
        )

    def create(self, product: Product) -> Product:
        validate_product(product)
        try:
            saved = self.store.upsert(self.kind, replace(product, id=None))
        finally:
            self._invalidate()
        self.logger.info("Product created", product_id=saved.id, name=saved.name)
        return saved

    def update(self, product_id: int, product: Product) -> Optional[Product]:
        """Replace every mutable field of an existing product; ``None`` if it does not exist."""
        validate_product(product)
        with self._write_lock:
            existing = self.store.get_by_key(self.kind, product_id)
            if existing is None:
                return None
            try:
                updated = self.store.upsert(self.kind, replace(
                    existing,
                    name=product.name,
                    description=product.description,
                    price=product.price,
                    stock=product.stock
                ))
            finally:
                self._invalidate()
        self.logger.info("Product updated", product_id=product_id)
        return updated

    def delete(self, product_id: int) -> bool:
        """Delete a product; ``False`` if it does not exist."""
        with self._write_lock:
            if not self.store.exists_by_key(self.kind, product_id):
                return False
            try:
                self.store.delete_by_key(self.kind, product_id)
            finally:
                self._invalidate()
        self.logger.info("Product deleted", product_id=product_id)
        return True

    def _invalidate(self) -> None:
        if self.cache is not None:
            self.cache.invalidate_kind(self.kind)
