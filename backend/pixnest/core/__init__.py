"""Core Layer: pure domain logic, no DB, no network.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - IO happens only behind the Protocols in repository_protocols.py

Design Decisions:
    - Functional core separated from imperative shell: services orchestrate the
      async IO around these helpers
"""
