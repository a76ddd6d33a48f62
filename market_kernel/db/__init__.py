"""Database layer - engine, base classes, types, and immutability listeners."""

from market_kernel.db.base import UUID, Base, TrackedBase, UTCDateTime, UUIDString
from market_kernel.db.engine import create_tables, get_engine, get_session
from market_kernel.db.types import Money, round_money

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "Base",
    "TrackedBase",
    "UTCDateTime",
    "UUIDString",
    "UUID",
    "Money",
    "round_money",
]
