"""
ORM-Level Immutability Enforcement for the sales ledger.

===============================================================================
WHY THIS EXISTS
===============================================================================

Every metric the stall sees is derived from two append-only tables:

  - event_sales            one row per cart line, written by checkout
  - event_day_summaries    one row per closed day, written by end_day

If a Sale row could be edited after the fact, the day summaries would drift
from the ledger and "revenue today" would stop meaning anything.  This module
intercepts ORM flushes and rejects changes to those records before any SQL
is sent.

===============================================================================
HOW IT WORKS
===============================================================================

    session.flush()
         |
         v
    [before_flush]  --> deleted EventItem with sales? --> ItemReferencedError
         |
         v
    [before_update] --> Sale / DaySummary           --> ImmutabilityViolationError
         |
         v
    [before_delete] --> Sale outside correction scope, DaySummary
         |                                          --> ImmutabilityViolationError
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity       | When Immutable                  | Exception
-------------|---------------------------------|-------------------------------
Sale         | ALWAYS for updates; deletes     | Explicit void through
             | only inside allow_sale_correction | CorrectionService
DaySummary   | ALWAYS (from creation)          | None
EventItem    | Delete when sales reference it  | Retire instead (is_active)

===============================================================================
USAGE
===============================================================================

Registered by create_tables() and by the test fixtures:

    from market_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

Voiding a sale (CorrectionService only):

    with allow_sale_correction(session):
        session.delete(sale)
        session.flush()
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import event, func, inspect, select
from sqlalchemy.orm import Session, object_session

from market_kernel.exceptions import ImmutabilityViolationError, ItemReferencedError
from market_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_CORRECTION_FLAG = "market_kernel.sale_correction"

# Audit metadata, not ledger content
_AUDIT_FIELDS = frozenset({"created_at", "updated_at"})


@contextmanager
def allow_sale_correction(session: Session) -> Generator[Session, None, None]:
    """Permit Sale deletes on this session for the duration of the block."""
    previous = session.info.get(_CORRECTION_FLAG, False)
    session.info[_CORRECTION_FLAG] = True
    try:
        yield session
    finally:
        session.info[_CORRECTION_FLAG] = previous


def _correction_allowed(target) -> bool:
    session = object_session(target)
    return session is not None and session.info.get(_CORRECTION_FLAG, False)


def _changed_fields(target) -> list[str]:
    insp = inspect(target)
    return [
        attr.key
        for attr in insp.attrs
        if attr.key not in _AUDIT_FIELDS and attr.history.has_changes()
    ]


def _block(entity_type: str, target, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "reason": reason,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_item_deletion_before_flush(session, flush_context, instances):
    """
    Refuse to delete event items that are referenced by sales.

    Runs in SessionEvents.before_flush because mapper-level events fire after
    the flush plan is already fixed.
    """
    from market_kernel.models.item import EventItem
    from market_kernel.models.sale import Sale

    for obj in list(session.deleted):
        if not isinstance(obj, EventItem):
            continue

        with session.no_autoflush:
            sale_count = session.execute(
                select(func.count(Sale.id)).where(Sale.event_item_id == obj.id)
            ).scalar_one()

        if sale_count:
            logger.error(
                "immutability_violation_blocked",
                extra={
                    "entity_type": "EventItem",
                    "entity_id": str(obj.id),
                    "operation": "DELETE",
                    "reason": "item_has_sales",
                    "sale_count": sale_count,
                },
            )
            raise ItemReferencedError(obj.id, sale_count=sale_count)


def _check_sale_immutability(mapper, connection, target):
    """Sales are never edited; a wrong sale is voided and re-rung."""
    changed = _changed_fields(target)
    if changed:
        _block("Sale", target, "UPDATE", f"Cannot modify field '{changed[0]}' on a recorded sale")


def _check_sale_delete(mapper, connection, target):
    if not _correction_allowed(target):
        _block("Sale", target, "DELETE", "Sales can only be removed by an explicit void")


def _check_day_summary_immutability(mapper, connection, target):
    changed = _changed_fields(target)
    if changed:
        _block(
            "DaySummary",
            target,
            "UPDATE",
            f"Cannot modify field '{changed[0]}' on a closed day summary",
        )


def _check_day_summary_delete(mapper, connection, target):
    _block("DaySummary", target, "DELETE", "Day summaries are append-only")


def _listeners():
    from market_kernel.models.day_summary import DaySummary
    from market_kernel.models.sale import Sale

    return [
        (Session, "before_flush", _check_item_deletion_before_flush),
        (Sale, "before_update", _check_sale_immutability),
        (Sale, "before_delete", _check_sale_delete),
        (DaySummary, "before_update", _check_day_summary_immutability),
        (DaySummary, "before_delete", _check_day_summary_delete),
    ]


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Safe to call more than once; already-registered listeners are skipped.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that need to set up forbidden states.
    """
    for target, event_name, listener_fn in _listeners():
        _safe_remove_listener(target, event_name, listener_fn)
