"""Infrastructure Layer - adapters for the palette's boundary ports and cross-cutting concerns.

Invariants:
    - Infrastructure never imports from services/
    - External calls wrapped with retry/timeout/error mapping
"""
