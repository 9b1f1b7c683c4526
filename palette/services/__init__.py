"""Services Layer - the imperative shell around the pure palette core.

Invariants:
    - SearchStore is the only writer of SearchState
    - Timers, fetch tasks and storage IO live here, never in core/
    - Services depend on core/ ports, never on api/ or concrete infrastructure
"""
