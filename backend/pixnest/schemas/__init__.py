"""Pydantic Schemas: response contracts and form-field constraints for API endpoints.

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
    - password_hash never appears in any response schema
"""
