"""API Layer: FastAPI routes, dependencies, and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - Routes resolve the caller's identity explicitly via get_current_user_id

Design Decisions:
    - Thin routes delegate to services; page rendering is left to the client,
      routes return JSON or redirects
"""
