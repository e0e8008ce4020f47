"""
Catalog service for the Catalog Access Layer.

Serves products and users through four access patterns layered on one record
store: direct CRUD, cached reads with invalidating writes, composed searches
and async/streaming endpoints.
"""

import json
from decimal import Decimal, InvalidOperation
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import Query, Response
from fastapi.responses import StreamingResponse

from shared.base_service import BaseService
from shared.config import CatalogConfig, get_catalog_config
from shared.errors import AccessLayerException, NotFoundError, ValidationError

from .caching.region_cache import CacheRegionManager
from .domain.models import (
    ProductRequest,
    ProductResponse,
    UserRequest,
    UserResponse,
    to_response,
)
from .reactive.stream_adapter import AsyncStreamAdapter
from .resilience.query_executor import ResilientQueryExecutor
from .services.cache_service import ProductCacheService, UserCacheService
from .services.product_service import ProductService
from .services.reactive_service import ReactiveProductService, ReactiveUserService
from .services.search_service import ProductSearchService, UserSearchService
from .services.user_service import UserService
from .store.record_store import InMemoryRecordStore, RecordStore


NDJSON_MEDIA_TYPE = "application/x-ndjson"

_EXHAUSTED = object()


def _ndjson_line(record: Any) -> str:
    return to_response(record).model_dump_json() + "\n"


def _sse_event(payload: str, event: Optional[str] = None) -> str:
    prefix = f"event: {event}\n" if event else ""
    return f"{prefix}data: {payload}\n\n"


def _stream_error(error: Exception) -> Dict[str, Any]:
    """Error payload written into a stream whose headers were already sent."""
    if isinstance(error, AccessLayerException):
        return error.to_response().model_dump()
    return {"code": "INTERNAL_ERROR", "message": "Stream failed"}


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _optional_decimal(field: str, value: Optional[str]) -> Optional[Decimal]:
    """Parse a non-negative decimal query parameter; blank means no constraint."""
    if _blank(value):
        return None
    try:
        parsed = Decimal(value.strip())
    except InvalidOperation:
        parsed = None
    if parsed is None or not parsed.is_finite() or parsed < 0:
        raise ValidationError(details={"fields": {field: "Input should be a non-negative decimal"}})
    return parsed


def _optional_count(field: str, value: Optional[str]) -> Optional[int]:
    """Parse a non-negative integer query parameter; blank means no constraint."""
    if _blank(value):
        return None
    try:
        parsed = int(value.strip())
    except ValueError:
        parsed = -1
    if parsed < 0:
        raise ValidationError(details={"fields": {field: "Input should be a non-negative integer"}})
    return parsed


class CatalogService(BaseService):
    """Catalog service implementation."""

    def __init__(self,
                 config: Optional[CatalogConfig] = None,
                 store: Optional[RecordStore] = None,
                 executor: Optional[ResilientQueryExecutor] = None,
                 adapter: Optional[AsyncStreamAdapter] = None):
        config = config or get_catalog_config()
        super().__init__("catalog", config.port, config)

        self.store = store if store is not None else InMemoryRecordStore()
        self.cache = CacheRegionManager(metrics=self.metrics)
        self.executor = executor or ResilientQueryExecutor(
            max_attempts=config.query_retry_attempts,
            delay_seconds=config.query_retry_delay_seconds,
            metrics=self.metrics
        )
        self.adapter = adapter or AsyncStreamAdapter(
            max_workers=config.worker_pool_size,
            metrics=self.metrics
        )

        # Direct services own invalidation for every write path
        self.products = ProductService(self.store, self.cache)
        self.users = UserService(self.store, self.cache)

        self.product_cache = ProductCacheService(self.store, self.cache, self.products, self.executor)
        self.user_cache = UserCacheService(self.store, self.cache, self.users, self.executor)

        self.product_search = ProductSearchService(self.store, self.executor)
        self.user_search = UserSearchService(self.store, self.executor)

        self.reactive_products = ReactiveProductService(self.store, self.adapter, self.products)
        self.reactive_users = ReactiveUserService(self.store, self.adapter, self.users)

        self._setup_catalog_routes()
        self._setup_direct_routes()
        self._setup_cache_routes()
        self._setup_search_routes()
        self._setup_reactive_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.catalog_service = self

    async def start(self):
        if self.config.metrics_port:
            self.metrics.start_metrics_server(self.config.metrics_port)
            self.logger.info("Metrics server started", port=self.config.metrics_port)

    async def stop(self):
        self.adapter.shutdown(wait=False)

    async def _check_dependencies(self) -> Dict[str, str]:
        """Report the record store as healthy when it answers a count."""
        try:
            self.store.count(self.products.kind)
            return {"record_store": "ok"}
        except AccessLayerException as e:
            self.logger.warning("Record store health check failed", error=e.message)
            return {"record_store": "error"}

    def _setup_catalog_routes(self):
        """Set up the service root."""

        @self.app.get("/")
        async def root():
            return {
                "service": self.service_name,
                "message": "Catalog Access Layer",
                "version": "1.0.0",
                "endpoints": [
                    "/api/products",
                    "/api/users",
                    "/api/cache/products",
                    "/api/cache/users",
                    "/api/search/products",
                    "/api/search/users",
                    "/api/reactive/products",
                    "/api/reactive/users",
                ]
            }

    def _setup_direct_routes(self):
        """Set up direct CRUD routes."""

        @self.app.get("/api/products", response_model=List[ProductResponse])
        def list_products(name: Optional[str] = Query(None, description="Case-insensitive name fragment")):
            return [ProductResponse.from_record(p) for p in self.products.list(name)]

        @self.app.get("/api/products/count")
        def count_products():
            return {"count": self.products.count()}

        @self.app.get("/api/products/{product_id}", response_model=ProductResponse)
        def get_product(product_id: int):
            product = self.products.get(product_id)
            if product is None:
                raise NotFoundError("Product", product_id)
            return ProductResponse.from_record(product)

        @self.app.post("/api/products", response_model=ProductResponse, status_code=201)
        def create_product(request: ProductRequest):
            return ProductResponse.from_record(self.products.create(request.to_record()))

        @self.app.put("/api/products/{product_id}", response_model=ProductResponse)
        def update_product(product_id: int, request: ProductRequest):
            product = self.products.update(product_id, request.to_record())
            if product is None:
                raise NotFoundError("Product", product_id)
            return ProductResponse.from_record(product)

        @self.app.delete("/api/products/{product_id}", status_code=204)
        def delete_product(product_id: int):
            if not self.products.delete(product_id):
                raise NotFoundError("Product", product_id)
            return Response(status_code=204)

        @self.app.get("/api/users", response_model=List[UserResponse])
        def list_users():
            return [UserResponse.from_record(u) for u in self.users.list()]

        @self.app.get("/api/users/count")
        def count_users():
            return {"count": self.users.count()}

        @self.app.get("/api/users/email/{email}", response_model=UserResponse)
        def get_user_by_email(email: str):
            user = self.users.find_by_email(email)
            if user is None:
                raise NotFoundError("User", email)
            return UserResponse.from_record(user)

        @self.app.get("/api/users/{user_id}", response_model=UserResponse)
        def get_user(user_id: int):
            user = self.users.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return UserResponse.from_record(user)

        @self.app.post("/api/users", response_model=UserResponse, status_code=201)
        def create_user(request: UserRequest):
            return UserResponse.from_record(self.users.create(request.to_record()))

        @self.app.put("/api/users/{user_id}", response_model=UserResponse)
        def update_user(user_id: int, request: UserRequest):
            user = self.users.update(user_id, request.to_record())
            if user is None:
                raise NotFoundError("User", user_id)
            return UserResponse.from_record(user)

        @self.app.delete("/api/users/{user_id}", status_code=204)
        def delete_user(user_id: int):
            if not self.users.delete(user_id):
                raise NotFoundError("User", user_id)
            return Response(status_code=204)

    def _setup_cache_routes(self):
        """Set up cached read routes and their invalidating writes."""

        @self.app.get("/api/cache/products", response_model=List[ProductResponse])
        def cached_list_products():
            return [ProductResponse.from_record(p) for p in self.product_cache.find_all()]

        @self.app.get("/api/cache/products/search", response_model=List[ProductResponse])
        def cached_search_products(name: str = Query(..., description="Case-insensitive name fragment")):
            return [ProductResponse.from_record(p) for p in self.product_cache.find_by_name(name)]

        @self.app.get("/api/cache/products/stats/total-value")
        def cached_total_value():
            total: Decimal = self.product_cache.total_inventory_value()
            return {"total_value": str(total)}

        @self.app.get("/api/cache/products/stats/count")
        def cached_count_products():
            return {"count": self.product_cache.count()}

        @self.app.post("/api/cache/products/cache/clear")
        def clear_product_caches():
            self.product_cache.clear_all_caches()
            return {"message": "All caches cleared successfully"}

        @self.app.get("/api/cache/products/{product_id}", response_model=ProductResponse)
        def cached_get_product(product_id: int):
            product = self.product_cache.find_by_id(product_id)
            if product is None:
                raise NotFoundError("Product", product_id)
            return ProductResponse.from_record(product)

        @self.app.post("/api/cache/products", response_model=ProductResponse, status_code=201)
        def cached_create_product(request: ProductRequest):
            return ProductResponse.from_record(self.product_cache.save(request.to_record()))

        @self.app.put("/api/cache/products/{product_id}", response_model=ProductResponse)
        def cached_update_product(product_id: int, request: ProductRequest):
            product = self.product_cache.update(product_id, request.to_record())
            if product is None:
                raise NotFoundError("Product", product_id)
            return ProductResponse.from_record(product)

        @self.app.delete("/api/cache/products/{product_id}", status_code=204)
        def cached_delete_product(product_id: int):
            if not self.product_cache.delete_by_id(product_id):
                raise NotFoundError("Product", product_id)
            return Response(status_code=204)

        @self.app.get("/api/cache/users", response_model=List[UserResponse])
        def cached_list_users():
            return [UserResponse.from_record(u) for u in self.user_cache.find_all()]

        @self.app.get("/api/cache/users/search", response_model=List[UserResponse])
        def cached_search_users(name: str = Query(..., description="Case-insensitive name fragment")):
            return [UserResponse.from_record(u) for u in self.user_cache.find_by_name(name)]

        @self.app.get("/api/cache/users/stats/count")
        def cached_count_users():
            return {"count": self.user_cache.count()}

        @self.app.post("/api/cache/users/cache/clear")
        def clear_user_caches():
            self.user_cache.clear_all_caches()
            return {"message": "All caches cleared successfully"}

        @self.app.get("/api/cache/users/{user_id}", response_model=UserResponse)
        def cached_get_user(user_id: int):
            user = self.user_cache.find_by_id(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return UserResponse.from_record(user)

        @self.app.post("/api/cache/users", response_model=UserResponse, status_code=201)
        def cached_create_user(request: UserRequest):
            return UserResponse.from_record(self.user_cache.save(request.to_record()))

        @self.app.put("/api/cache/users/{user_id}", response_model=UserResponse)
        def cached_update_user(user_id: int, request: UserRequest):
            user = self.user_cache.update(user_id, request.to_record())
            if user is None:
                raise NotFoundError("User", user_id)
            return UserResponse.from_record(user)

        @self.app.delete("/api/cache/users/{user_id}", status_code=204)
        def cached_delete_user(user_id: int):
            if not self.user_cache.delete_by_id(user_id):
                raise NotFoundError("User", user_id)
            return Response(status_code=204)

    def _setup_search_routes(self):
        """Set up composed search routes."""

        @self.app.get("/api/search/products/search", response_model=List[ProductResponse])
        def search_products(
            name: Optional[str] = Query(None),
            min_price: Optional[str] = Query(None),
            max_price: Optional[str] = Query(None),
            min_stock: Optional[str] = Query(None),
            description: Optional[str] = Query(None)
        ):
            products = self.product_search.search(
                name=name,
                min_price=_optional_decimal("min_price", min_price),
                max_price=_optional_decimal("max_price", max_price),
                min_stock=_optional_count("min_stock", min_stock),
                description=description
            )
            return [ProductResponse.from_record(p) for p in products]

        @self.app.get("/api/search/products/in-stock", response_model=List[ProductResponse])
        def products_in_stock():
            return [ProductResponse.from_record(p) for p in self.product_search.find_in_stock()]

        @self.app.get("/api/search/products/out-of-stock", response_model=List[ProductResponse])
        def products_out_of_stock():
            return [ProductResponse.from_record(p) for p in self.product_search.find_out_of_stock()]

        @self.app.get("/api/search/products/price-range", response_model=List[ProductResponse])
        def products_by_price_range(
            min_price: Optional[str] = Query(None),
            max_price: Optional[str] = Query(None)
        ):
            products = self.product_search.find_by_price_range(
                _optional_decimal("min_price", min_price),
                _optional_decimal("max_price", max_price)
            )
            return [ProductResponse.from_record(p) for p in products]

        @self.app.get("/api/search/products/description", response_model=List[ProductResponse])
        def products_by_description(description: str = Query(...)):
            products = self.product_search.find_by_description(description)
            return [ProductResponse.from_record(p) for p in products]

        @self.app.get("/api/search/users/search", response_model=List[UserResponse])
        def search_users(
            name: Optional[str] = Query(None),
            email: Optional[str] = Query(None),
            address: Optional[str] = Query(None),
            exact_email: bool = Query(False)
        ):
            users = self.user_search.search(name=name, email=email, address=address, exact_email=exact_email)
            return [UserResponse.from_record(u) for u in users]

        @self.app.get("/api/search/users/with-address", response_model=List[UserResponse])
        def users_with_address():
            return [UserResponse.from_record(u) for u in self.user_search.find_with_address()]

        @self.app.get("/api/search/users/without-address", response_model=List[UserResponse])
        def users_without_address():
            return [UserResponse.from_record(u) for u in self.user_search.find_without_address()]

    def _setup_reactive_routes(self):
        """Set up async and streaming routes."""

        @self.app.get("/api/reactive/products")
        async def reactive_list_products():
            return await self._ndjson_response(self.reactive_products.find_all(), "products")

        @self.app.get("/api/reactive/products/search")
        async def reactive_search_products(name: Optional[str] = Query(None)):
            return await self._ndjson_response(self.reactive_products.find_by_name(name), "products_by_name")

        @self.app.get("/api/reactive/products/stream")
        async def reactive_stream_products(delay_seconds: Optional[float] = Query(None, ge=0)):
            delay = self.config.stream_delay_seconds if delay_seconds is None else delay_seconds
            return self._sse_response(self.reactive_products.stream_all_with_delay(delay), "products")

        @self.app.get("/api/reactive/products/count")
        async def reactive_count_products():
            return {"count": await self.reactive_products.count()}

        @self.app.get("/api/reactive/products/{product_id}", response_model=ProductResponse)
        async def reactive_get_product(product_id: int):
            product = await self.reactive_products.find_by_id(product_id)
            if product is None:
                raise NotFoundError("Product", product_id)
            return ProductResponse.from_record(product)

        @self.app.post("/api/reactive/products", response_model=ProductResponse, status_code=201)
        async def reactive_create_product(request: ProductRequest):
            return ProductResponse.from_record(await self.reactive_products.save(request.to_record()))

        @self.app.put("/api/reactive/products/{product_id}", response_model=ProductResponse)
        async def reactive_update_product(product_id: int, request: ProductRequest):
            product = await self.reactive_products.update(product_id, request.to_record())
            if product is None:
                raise NotFoundError("Product", product_id)
            return ProductResponse.from_record(product)

        @self.app.delete("/api/reactive/products/{product_id}", status_code=204)
        async def reactive_delete_product(product_id: int):
            if not await self.reactive_products.delete_by_id(product_id):
                raise NotFoundError("Product", product_id)
            return Response(status_code=204)

        @self.app.get("/api/reactive/users")
        async def reactive_list_users():
            return await self._ndjson_response(self.reactive_users.find_all(), "users")

        @self.app.get("/api/reactive/users/search")
        async def reactive_search_users(name: Optional[str] = Query(None)):
            return await self._ndjson_response(self.reactive_users.find_by_name(name), "users_by_name")

        @self.app.get("/api/reactive/users/stream")
        async def reactive_stream_users(delay_seconds: Optional[float] = Query(None, ge=0)):
            delay = self.config.stream_delay_seconds if delay_seconds is None else delay_seconds
            return self._sse_response(self.reactive_users.stream_all_with_delay(delay), "users")

        @self.app.get("/api/reactive/users/count")
        async def reactive_count_users():
            return {"count": await self.reactive_users.count()}

        @self.app.get("/api/reactive/users/{user_id}", response_model=UserResponse)
        async def reactive_get_user(user_id: int):
            user = await self.reactive_users.find_by_id(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return UserResponse.from_record(user)

        @self.app.post("/api/reactive/users", response_model=UserResponse, status_code=201)
        async def reactive_create_user(request: UserRequest):
            return UserResponse.from_record(await self.reactive_users.save(request.to_record()))

        @self.app.put("/api/reactive/users/{user_id}", response_model=UserResponse)
        async def reactive_update_user(user_id: int, request: UserRequest):
            user = await self.reactive_users.update(user_id, request.to_record())
            if user is None:
                raise NotFoundError("User", user_id)
            return UserResponse.from_record(user)

        @self.app.delete("/api/reactive/users/{user_id}", status_code=204)
        async def reactive_delete_user(user_id: int):
            if not await self.reactive_users.delete_by_id(user_id):
                raise NotFoundError("User", user_id)
            return Response(status_code=204)

    async def _ndjson_response(self, stream: AsyncIterator[Any], stream_name: str) -> StreamingResponse:
        """Stream records as newline-delimited JSON.

        The first element is awaited before the response starts, so a failing
        source is reported with a proper status code instead of a truncated body.
        A failure after that ends the body with an ``{"error": ...}`` line.
        """
        try:
            first = await stream.__anext__()
        except StopAsyncIteration:
            first = _EXHAUSTED

        async def body():
            try:
                if first is _EXHAUSTED:
                    return
                yield _ndjson_line(first)
                async for record in stream:
                    yield _ndjson_line(record)
            except Exception as e:
                self.logger.error("NDJSON stream error", stream=stream_name, error=str(e))
                yield json.dumps({"error": _stream_error(e)}) + "\n"
            finally:
                await stream.aclose()

        return StreamingResponse(body(), media_type=NDJSON_MEDIA_TYPE)

    def _sse_response(self, stream: AsyncIterator[Any], stream_name: str) -> StreamingResponse:
        return StreamingResponse(
            self._sse_stream_generator(stream, stream_name),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive"
            }
        )

    async def _sse_stream_generator(self, stream: AsyncIterator[Any], stream_name: str):
        """SSE stream generator. A source failure ends the stream with an ``error`` event."""
        try:
            async for record in stream:
                yield _sse_event(to_response(record).model_dump_json())
        except Exception as e:
            self.logger.error("SSE stream error", stream=stream_name, error=str(e))
            yield _sse_event(json.dumps(_stream_error(e)), event="error")
        finally:
            await stream.aclose()


def create_app(config: Optional[CatalogConfig] = None, **components):
    """Create the catalog FastAPI application."""
    service = CatalogService(config=config, **components)
    return service.app


if __name__ == "__main__":
    service = CatalogService()
    service.run()
