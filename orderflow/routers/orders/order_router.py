from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse, Response

from orderflow.constants.department import Department
from orderflow.constants.order_status import OrderStatus
from orderflow.constants.payment import PaymentStatus
from orderflow.schemas.orders.order_schemas import (
    ApprovalRequestCreate,
    ApprovalResponseCreate,
    BulkDeleteData,
    DispatchCreate,
    ForwardCreate,
    LifecycleCreate,
    Order,
    OrderAction,
    OrderCreate,
    OrderFilters,
    OrderListData,
    PaymentCreate,
    PaymentListData,
    PaymentVerifyCreate,
    ProductionProgressData,
    ProductionStageCreate,
    ProductStatusCreate,
    StatusChangeCreate,
    User,
)
from orderflow.services.orders.order_service import (
    add_payment,
    change_status,
    create_order,
    delete_all_orders,
    delete_order,
    dispatch_order,
    duplicate_order,
    forward_order,
    get_allowed_statuses,
    get_order,
    get_production_progress,
    list_order_payments,
    list_orders,
    request_order_approval,
    respond_order_approval,
    run_action,
    update_product,
    update_stage,
    verify_order_payment,
)
from orderflow.services.orders.timeline import format_timeline_text, timeline_filename
from orderflow.services.store.document_store import DocumentStore, get_store
from orderflow.utils.get_user import get_current_user
from orderflow.utils.pdf_generators.timeline_pdf import generate_timeline_pdf
from orderflow.utils.response import success_response, APIResponse

router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
)


# =====================================================
# CREATE ORDER
# =====================================================
@router.post(
    "",
    response_model=APIResponse[Order],
    status_code=201,
)
async def create_order_api(
    payload: OrderCreate,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    order = await create_order(store, payload, user)
    return success_response("Order created successfully", order)


# =====================================================
# LIST ORDERS
# =====================================================
@router.get(
    "",
    response_model=APIResponse[OrderListData],
)
async def list_orders_api(
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
    department: Department | None = Query(None),
    status: OrderStatus | None = Query(None),
    payment_status: PaymentStatus | None = Query(None),
    search: str | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    filters = OrderFilters(
        department=department,
        status=status,
        payment_status=payment_status,
        search=search,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
    )
    data = await list_orders(store, user, filters)
    return success_response("Orders retrieved successfully", data)


# =====================================================
# BULK DELETE (ADMIN)
# =====================================================
@router.delete(
    "",
    response_model=APIResponse[BulkDeleteData],
)
async def delete_all_orders_api(
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    data = await delete_all_orders(store, user)
    return success_response(f"{data.deleted} orders deleted", data)


# =====================================================
# GET ORDER
# =====================================================
@router.get(
    "/{order_id}",
    response_model=APIResponse[Order],
)
async def get_order_api(
    order_id: str,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    order = await get_order(store, order_id, user)
    return success_response("Order retrieved successfully", order)


@router.get(
    "/{order_id}/allowed-statuses",
    response_model=APIResponse[list[OrderStatus]],
)
async def allowed_statuses_api(
    order_id: str,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    statuses = await get_allowed_statuses(store, order_id, user)
    return success_response("Allowed statuses retrieved successfully", statuses)


# =====================================================
# DELETE ORDER (ADMIN)
# =====================================================
@router.delete(
    "/{order_id}",
    response_model=APIResponse[Order],
)
async def delete_order_api(
    order_id: str,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    order = await delete_order(store, order_id, user)
    return success_response(f"Order #{order.order_number} deleted", order)


# =====================================================
# STATUS
# =====================================================
@router.post(
    "/{order_id}/status",
    response_model=APIResponse[Order],
)
async def change_status_api(
    order_id: str,
    payload: StatusChangeCreate,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    order = await change_status(store, order_id, payload, user)
    return success_response(f"Order status updated to {order.status.value}", order)


# =====================================================
# FORWARD
# =====================================================
@router.post(
    "/{order_id}/forward",
    response_model=APIResponse[Order],
)
async def forward_order_api(
    order_id: str,
    payload: ForwardCreate | None = None,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    order = await forward_order(store, order_id, payload or ForwardCreate(), user)
    return success_response(
        f"Order forwarded to {order.current_department.value}", order
    )


# =====================================================
# PAYMENTS
# =====================================================
@router.post(
    "/{order_id}/payments",
    response_model=APIResponse[Order],
)
async def add_payment_api(
    order_id: str,
    payload: PaymentCreate,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    order = await add_payment(store, order_id, payload, user)
    return success_response("Payment recorded successfully", order)


@router.get(
    "/{order_id}/payments",
    response_model=APIResponse[PaymentListData],
)
async def list_payments_api(
    order_id: str,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    data = await list_order_payments(store, order_id, user)
    return success_response("Payments retrieved successfully", data)


@router.post(
    "/{order_id}/payments/verify",
    response_model=APIResponse[Order],
)
async def verify_payment_api(
    order_id: str,
    payload: PaymentVerifyCreate,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    order = await verify_order_payment(store, order_id, payload, user)
    return success_response(order.status_history[-1].status, order)


# =====================================================
# PRODUCTS / PRODUCTION STAGES
# =====================================================
@router.post(
    "/{order_id}/products/{product_id}/status",
    response_model=APIResponse[Order],
)
async def update_product_api(
    order_id: str,
    product_id: str,
    payload: ProductStatusCreate,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    order = await update_product(store, order_id, product_id, payload, user)
    return success_response("Product status updated", order)


@router.post(
    "/{order_id}/production-stages",
    response_model=APIResponse[Order],
)
async def update_stage_api(
    order_id: str,
    payload: ProductionStageCreate,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    order = await update_stage(store, order_id, payload, user)
    return success_response(f"Production stage {payload.stage.value} updated", order)


@router.get(
    "/{order_id}/production",
    response_model=APIResponse[ProductionProgressData],
)
async def production_progress_api(
    order_id: str,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    data = await get_production_progress(store, order_id, user)
    return success_response("Production progress retrieved successfully", data)


# =====================================================
# DISPATCH
# =====================================================
@router.post(
    "/{order_id}/dispatch",
    response_model=APIResponse[Order],
)
async def dispatch_order_api(
    order_id: str,
    payload: DispatchCreate,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    order = await dispatch_order(store, order_id, payload, user)
    return success_response("Order dispatched successfully", order)


# =====================================================
# APPROVALS
# =====================================================
@router.post(
    "/{order_id}/approval/request",
    response_model=APIResponse[Order],
)
async def request_approval_api(
    order_id: str,
    payload: ApprovalRequestCreate,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    order = await request_order_approval(store, order_id, payload, user)
    return success_response("Approval requested from Sales", order)


@router.post(
    "/{order_id}/approval/respond",
    response_model=APIResponse[Order],
)
async def respond_approval_api(
    order_id: str,
    payload: ApprovalResponseCreate,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    order = await respond_order_approval(store, order_id, payload, user)
    verdict = "approved" if payload.approve else "rejected"
    return success_response(f"Request {verdict}", order)


# =====================================================
# DUPLICATE
# =====================================================
@router.post(
    "/{order_id}/duplicate",
    response_model=APIResponse[Order],
    status_code=201,
)
async def duplicate_order_api(
    order_id: str,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    order = await duplicate_order(store, order_id, user)
    return success_response(
        f"Order duplicated as #{order.order_number}", order
    )


# =====================================================
# TIMELINE EXPORT
# =====================================================
@router.get("/{order_id}/timeline")
async def export_timeline_api(
    order_id: str,
    format: str = Query("txt", pattern="^(txt|pdf)$"),
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    order = await get_order(store, order_id, user)
    filename = timeline_filename(order, format)
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}

    if format == "pdf":
        return Response(
            content=generate_timeline_pdf(order),
            media_type="application/pdf",
            headers=headers,
        )
    return PlainTextResponse(format_timeline_text(order), headers=headers)


# =====================================================
# LIFECYCLE ACTIONS (archive, cancel, ...)
# =====================================================
@router.post(
    "/{order_id}/{action}",
    response_model=APIResponse[Order],
)
async def order_action_api(
    order_id: str,
    action: OrderAction,
    payload: LifecycleCreate | None = None,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    order = await run_action(store, order_id, action, payload or LifecycleCreate(), user)
    return success_response(f"Order {order.status.value.lower()}", order)
