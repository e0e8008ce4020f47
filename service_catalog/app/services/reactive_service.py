"""
Reactive product and user operations.

Each operation dispatches one blocking call to the async stream adapter's
worker pool. Single results come back as awaitables; collections come back as
async element streams in store order.
"""

import asyncio
from typing import Any, AsyncIterator, Optional

from shared.logging import get_logger

from ..domain.models import RecordKind
from ..reactive.stream_adapter import AsyncStreamAdapter
from ..store.record_store import RecordStore
from .product_service import ProductService
from .user_service import UserService


class ReactiveRecordService:
    """Async operations shared by every record kind."""

    kind: RecordKind

    def __init__(self, store: RecordStore, adapter: AsyncStreamAdapter, writer: Any):
        self.store = store
        self.adapter = adapter
        self.writer = writer
        self.logger = get_logger(f"catalog.reactive.{self.kind.value}")

    def find_by_id(self, record_id: int) -> "asyncio.Future[Optional[Any]]":
        self.logger.info("Reactive: finding record by id", record_id=record_id)
        return self.adapter.single_or_absent(self.store.get_by_key, self.kind, record_id)

    def find_all(self) -> AsyncIterator[Any]:
        self.logger.info("Reactive: finding all records")
        return self.adapter.stream_async(self.store.get_all, self.kind, name=f"{self.kind.value}_all")

    def find_by_name(self, name: Optional[str]) -> AsyncIterator[Any]:
        self.logger.info("Reactive: finding records by name", name=name)
        return self.adapter.stream_async(self.writer.list, name, name=f"{self.kind.value}_by_name")

    def count(self) -> "asyncio.Future[int]":
        self.logger.info("Reactive: counting records")
        return self.adapter.call_async(self.store.count, self.kind)

    def stream_all_with_delay(self, delay_seconds: float) -> AsyncIterator[Any]:
        self.logger.info("Reactive: streaming all records with delay", delay_seconds=delay_seconds)
        return self.adapter.delayed_stream(self.find_all(), delay_seconds)

    def save(self, record: Any) -> "asyncio.Future[Any]":
        self.logger.info("Reactive: saving record")
        return self.adapter.call_async(self.writer.create, record)

    def update(self, record_id: int, record: Any) -> "asyncio.Future[Optional[Any]]":
        self.logger.info("Reactive: updating record", record_id=record_id)
        return self.adapter.single_or_absent(self.writer.update, record_id, record)

    def delete_by_id(self, record_id: int) -> "asyncio.Future[bool]":
        self.logger.info("Reactive: deleting record", record_id=record_id)
        return self.adapter.call_async(self.writer.delete, record_id)


class ReactiveProductService(ReactiveRecordService):
    """Async product operations."""

    kind = RecordKind.PRODUCT

    def __init__(self, store: RecordStore, adapter: AsyncStreamAdapter, products: ProductService):
        super().__init__(store, adapter, products)


class ReactiveUserService(ReactiveRecordService):
    """Async user operations. Email conflicts surface as ``ConflictError`` from the awaited write."""

    kind = RecordKind.USER

    def __init__(self, store: RecordStore, adapter: AsyncStreamAdapter, users: UserService):
        super().__init__(store, adapter, users)

