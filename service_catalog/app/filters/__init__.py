"""
Predicate composition for ad-hoc record searches.

Each criterion factory returns a predicate or ``None`` when its value is
absent; ``compose`` ANDs whatever is present.
"""
