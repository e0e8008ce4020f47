"""
Async adapter package.

Moves blocking record store calls onto a bounded worker pool and exposes
their results as awaitables or async element streams. This is blocking I/O
moved off the event loop, not non-blocking storage access.
"""
