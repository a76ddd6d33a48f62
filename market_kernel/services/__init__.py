"""Write-side services. All are flush-only except EventRunner, which commits."""

from market_kernel.services.catalog_service import CatalogService, ScheduleDayInput
from market_kernel.services.checkout_service import CheckoutService
from market_kernel.services.correction_service import CorrectionService
from market_kernel.services.day_summary_service import DaySummaryService
from market_kernel.services.event_runner import EventRunner
from market_kernel.services.inventory_service import InventoryService
from market_kernel.services.lifecycle_service import LifecycleService

__all__ = [
    "CatalogService",
    "ScheduleDayInput",
    "CheckoutService",
    "CorrectionService",
    "DaySummaryService",
    "EventRunner",
    "InventoryService",
    "LifecycleService",
]
