"""Services Layer: the identity and media-publishing pipeline.

Invariants:
    - Services receive their AsyncSession and collaborators via constructor
    - Each public method is one unit of work and commits its own changes

Design Decisions:
    - Plain classes over module functions: routes build them per request
      through FastAPI dependencies (see api/dependencies.py)
"""
