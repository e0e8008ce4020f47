"""
Catalog Service package for the Catalog Access Layer.

The catalog exposes CRUD access to products and users through three access
patterns layered on one record store:
- Direct: store calls on the request path.
- Cached: read-through cache regions with coarse invalidation on writes.
- Reactive: store calls moved onto a worker pool, results delivered as
  awaitables or async element streams.

Structure:
- app.main: FastAPI app, routes, and wiring.
- app.domain: Record dataclasses, request/response models, validation.
- app.store: Record store interface and the in-memory implementation.
- app.filters: Predicate composition for ad-hoc searches.
- app.caching: Cache region manager.
- app.resilience: Retrying executor for read queries.
- app.reactive: Worker-pool adapter producing futures and streams.
- app.services: Direct, cached, search and reactive operations per kind.
"""
