"""
Domain package.

Record dataclasses for the two kinds held by the catalog (products and
users), the pydantic models used on the HTTP surface, and the validation
applied before any write reaches the store.
"""
