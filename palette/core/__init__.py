"""Core Layer - pure search-palette logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - State changes are expressed as (state, event) -> state functions
"""
