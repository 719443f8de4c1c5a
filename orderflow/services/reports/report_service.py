from typing import Optional

from orderflow.core.config import RECENT_PAYMENTS_DAYS
from orderflow.core.exceptions import NotAllowed
from orderflow.schemas.orders.order_schemas import User
from orderflow.schemas.reports.report_schemas import RecentPayment, ReportSummary
from orderflow.services.orders.order_service import load_all_orders
from orderflow.services.reports import view_models
from orderflow.services.store.document_store import DocumentStore
from orderflow.utils.logger import get_logger
from orderflow.utils.permissions import Capability, can, can_view_reports

logger = get_logger(__name__)


# =====================================================
# SUMMARY
# =====================================================
async def get_report_summary(store: DocumentStore, user: User) -> ReportSummary:
    if not can_view_reports(user):
        raise NotAllowed("Only admins can view reports")

    orders = await load_all_orders(store)
    logger.info("Building report summary", extra={"orders": len(orders)})

    return ReportSummary(
        financials=view_models.financial_summary(orders),
        status_counts=view_models.count_by_status(orders),
        payment_status_counts=view_models.count_by_payment_status(orders),
        department_counts=view_models.count_by_department(orders),
        monthly_revenue=view_models.revenue_by_month(orders),
    )


# =====================================================
# RECENT PAYMENTS
# =====================================================
async def get_recent_payments(
    store: DocumentStore,
    user: User,
    *,
    days: Optional[int] = None,
    limit: Optional[int] = None,
) -> list[RecentPayment]:
    if not can(user, Capability.VERIFY_PAYMENT):
        raise NotAllowed("You do not have permission to view payments")

    orders = await load_all_orders(store)
    return view_models.recent_payments(
        orders,
        days=days if days is not None else RECENT_PAYMENTS_DAYS,
        limit=limit,
    )
