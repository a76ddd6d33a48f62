"""
CorrectionService -- explicit admin voids of recorded sales.

Responsibility:
    Removes Sale rows rung up by mistake and gives their units back to
    stock.  This is the only code path allowed to delete from the sales
    ledger (see db/immutability.py allow_sale_correction).

Invariants enforced:
    - Only sales of the currently open day can be voided.  A closed day is
      summarized, and its summary must keep matching the ledger.
    - quantity_sold is decremented with a guarded conditional update, never
      below zero.
    - Every void is logged at WARNING with the operator's reason.

Failure modes:
    - SaleNotFoundError: unknown sale or order id.
    - CorrectionWindowClosedError: the sale's day is already closed.
    - ValueError: blank reason.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from market_kernel.db.immutability import allow_sale_correction
from market_kernel.db.types import round_money
from market_kernel.domain.dtos import VoidResult
from market_kernel.exceptions import CorrectionWindowClosedError, SaleNotFoundError
from market_kernel.logging_config import get_logger
from market_kernel.models.sale import Sale
from market_kernel.services.base import BaseService
from market_kernel.services.inventory_service import InventoryService

logger = get_logger("services.correction")


class CorrectionService(BaseService[Sale]):
    """Voids sales of the open day."""

    def __init__(self, session, clock=None):
        super().__init__(session, clock)
        self._inventory = InventoryService(session, self._clock)

    def void_sale(self, sale_id: UUID, reason: str) -> VoidResult:
        """Void a single sale line."""
        sale = self.session.get(Sale, sale_id)
        if sale is None:
            raise SaleNotFoundError(sale_id)
        return self._void([sale], sale_id, reason)

    def void_order(self, order_id: UUID, reason: str) -> VoidResult:
        """Void every line of an order."""
        sales = list(
            self.session.execute(
                select(Sale).where(Sale.order_id == order_id)
            ).scalars()
        )
        if not sales:
            raise SaleNotFoundError(order_id)
        return self._void(sales, order_id, reason)

    def void_last_order(
        self,
        event_id: UUID,
        reason: str,
        terminal_id: str | None = None,
    ) -> VoidResult:
        """Void the most recent order of the open day (optionally for one terminal)."""
        event = self._get_event(event_id)
        stmt = select(Sale.order_id).where(
            Sale.event_id == event_id,
            Sale.day_number == event.current_day,
        )
        if terminal_id is not None:
            stmt = stmt.where(Sale.terminal_id == terminal_id)
        order_id = self.session.execute(
            stmt.order_by(Sale.sold_at.desc(), Sale.created_at.desc()).limit(1)
        ).scalar_one_or_none()
        if order_id is None:
            raise SaleNotFoundError(f"last order of event {event_id}")
        return self.void_order(order_id, reason)

    def _void(self, sales: list[Sale], ref: UUID, reason: str) -> VoidResult:
        if not reason or not reason.strip():
            raise ValueError("A reason is required to void a sale")

        event_id = sales[0].event_id
        day_number = sales[0].day_number
        event = self._get_event(event_id, for_update=True)
        if not event.is_day_open or event.current_day != day_number:
            raise CorrectionWindowClosedError(ref, day_number)

        quantity = 0
        amount = Decimal("0")
        with allow_sale_correction(self.session):
            for sale in sorted(sales, key=lambda s: str(s.event_item_id)):
                self._inventory.release(sale.event_item_id, sale.quantity)
                quantity += sale.quantity
                amount += sale.total_price
                self.session.delete(sale)
            self.session.flush()

        result = VoidResult(
            sale_ids=tuple(s.id for s in sales),
            order_id=sales[0].order_id,
            quantity_restored=quantity,
            amount=round_money(amount),
            reason=reason.strip(),
        )
        logger.warning(
            "sale_voided",
            extra={
                "event_id": str(event_id),
                "day_number": day_number,
                "order_id": str(result.order_id),
                "sale_ids": [str(s) for s in result.sale_ids],
                "quantity_restored": quantity,
                "amount": result.amount,
                "reason": result.reason,
            },
        )
        return result
