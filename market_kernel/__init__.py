"""
Market Kernel - event execution and point-of-sale transaction engine

Runs live pop-up/market events for a bakery:
- Per-day open/close lifecycle with immutable day summaries
- Oversell-proof inventory counters (atomic conditional updates)
- All-or-nothing cart checkout into an append-only sales ledger
- Read-side metrics derived from the ledger and day summaries
"""

__version__ = "0.1.0"
