"""Command Palette Search Engine.

Invariants:
    - Package root has no import side-effects (version string only)
"""

__version__ = "1.0.0"
