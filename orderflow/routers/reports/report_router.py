from fastapi import APIRouter, Depends, Query

from orderflow.schemas.orders.order_schemas import User
from orderflow.schemas.reports.report_schemas import RecentPayment, ReportSummary
from orderflow.services.reports.report_service import get_recent_payments, get_report_summary
from orderflow.services.store.document_store import DocumentStore, get_store
from orderflow.utils.get_user import get_current_user
from orderflow.utils.response import success_response, APIResponse

router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
)


@router.get(
    "/summary",
    response_model=APIResponse[ReportSummary],
)
async def report_summary_api(
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    data = await get_report_summary(store, user)
    return success_response("Report generated successfully", data)


@router.get(
    "/recent-payments",
    response_model=APIResponse[list[RecentPayment]],
)
async def recent_payments_api(
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
    days: int | None = Query(None, ge=1, le=366),
    limit: int | None = Query(None, ge=1, le=500),
):
    data = await get_recent_payments(store, user, days=days, limit=limit)
    return success_response("Recent payments retrieved successfully", data)
