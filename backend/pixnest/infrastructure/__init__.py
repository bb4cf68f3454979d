"""Infrastructure Layer: database pool, object storage client, logging setup.

Invariants:
    - Every external dependency is wrapped here and mapped to core/errors.py types
"""
