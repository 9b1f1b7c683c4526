"""ORM Models - persisted palette data.

Invariants:
    - Only client-local history lives here; business entities belong to other services
"""

from palette.models.kv_entry import KeyValueEntry

__all__ = ["KeyValueEntry"]
