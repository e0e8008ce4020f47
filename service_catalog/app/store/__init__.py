"""
Record store package.

Defines the synchronous record store interface consumed by every access
path and ships an in-memory, thread-safe implementation. Store failures are
classified as transient (retryable) or permanent.
"""
