"""Persistence layer for GroupBuy.

This package holds the MongoDB store wrapper, document builders and the
group membership state machine.
"""

from groupbuy.store.database import Store, connect

__all__ = ["Store", "connect"]
