"""
Catalog operations per record kind, grouped by access pattern:
direct, cached, search and reactive.
"""
