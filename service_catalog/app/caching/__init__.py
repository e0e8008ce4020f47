"""
Catalog caching package.

In-process cache regions with read-through population and explicit,
coarse invalidation at every write site. Not shared between processes.
"""
