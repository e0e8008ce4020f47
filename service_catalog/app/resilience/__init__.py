"""
Resilience helpers for read queries against the record store.
"""
