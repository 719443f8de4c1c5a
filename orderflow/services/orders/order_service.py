from decimal import Decimal
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from orderflow.constants.department import Department
from orderflow.constants.error_codes import ErrorCode
from orderflow.constants.notification_templates import NotificationType
from orderflow.constants.order_status import OrderStatus
from orderflow.core.config import STATUS_EDIT_WINDOW_MINUTES
from orderflow.core.exceptions import AppException, NotAllowed, StaleWrite
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
from orderflow.services.notifications.notification_service import notify
from orderflow.services.orders import order_mutators
from orderflow.services.orders.workflow import allowed_statuses
from orderflow.services.reports.view_models import filter_orders
from orderflow.services.store.document_store import ORDERS, DocumentStore
from orderflow.utils.decimal_utils import format_inr
from orderflow.utils.logger import get_logger
from orderflow.utils.permissions import Capability, can, can_view_address_details

logger = get_logger(__name__)

WINDOW = {"edit_window_minutes": STATUS_EDIT_WINDOW_MINUTES}


# =====================================================
# HELPERS
# =====================================================
def present(order: Order, user: Optional[User]) -> Order:
    """Hide delivery details from departments that may not see them."""
    if can_view_address_details(user, order):
        return order

    dispatch = order.dispatch_details
    if dispatch is not None:
        dispatch = dispatch.model_copy(update={"address": "", "contact_number": ""})

    return order.model_copy(
        update={
            "delivery_address": None,
            "contact_number": None,
            "dispatch_details": dispatch,
        }
    )


def _require(user: User, capability: Capability, order: Optional[Order] = None):
    if not can(user, capability, order):
        logger.warning(
            "Permission denied",
            extra={
                "user_id": user.id,
                "capability": capability.value,
                "order_id": order.id if order else None,
            },
        )
        raise NotAllowed(
            "You do not have permission to perform this action",
            {"capability": capability.value},
        )


def _check_version(order: Order, version: Optional[int]):
    if version is not None and version != order.version:
        raise AppException(
            409,
            "Order was modified by someone else. Please reload and try again.",
            ErrorCode.ORDER_VERSION_CONFLICT,
            {"expected": version, "current": order.version},
        )


async def load_order(store: DocumentStore, order_id: str) -> Order:
    doc = await store.get_one(ORDERS, order_id)
    if doc is None:
        raise AppException(404, "Order not found", ErrorCode.ORDER_NOT_FOUND)
    return Order.model_validate(doc)


async def load_all_orders(store: DocumentStore) -> list[Order]:
    orders = []
    for doc in await store.get(ORDERS):
        try:
            orders.append(Order.model_validate(doc))
        except PydanticValidationError:
            logger.warning("Skipping unreadable order document", extra={"order_id": doc.get("id")})
    return orders


async def save_order(
    store: DocumentStore,
    order: Order,
    previous: Optional[Order] = None,
) -> Order:
    """
    Persist ``order``. The stored revision always equals ``order.version``.

    When ``previous`` is the snapshot the change was computed from, the write
    only lands if nobody else saved the order in the meantime.
    """
    try:
        await store.set(
            ORDERS,
            order.id,
            order.model_dump(mode="json"),
            expected_revision=previous.version if previous is not None else None,
            revision=order.version,
        )
    except StaleWrite:
        raise AppException(
            409,
            "Order was modified by someone else. Please reload and try again.",
            ErrorCode.ORDER_VERSION_CONFLICT,
            {"expected": previous.version},
        )
    return order


# =====================================================
# CREATE ORDER
# =====================================================
async def create_order(store: DocumentStore, payload: OrderCreate, user: User) -> Order:
    _require(user, Capability.CREATE_ORDER)

    order = order_mutators.create_order(
        client_name=payload.client_name,
        items=payload.items,
        amount=payload.amount,
        acting_user=user,
        paid_amount=payload.paid_amount,
        payment_method=payload.payment_method,
        delivery_address=payload.delivery_address,
        contact_number=payload.contact_number,
        **WINDOW,
    )
    await save_order(store, order)

    logger.info(
        "Order created",
        extra={"order_id": order.id, "order_number": order.order_number, "user_id": user.id},
    )
    return order


# =====================================================
# LIST / GET
# =====================================================
async def list_orders(store: DocumentStore, user: User, filters: OrderFilters) -> OrderListData:
    orders = filter_orders(
        await load_all_orders(store),
        department=filters.department,
        status=filters.status,
        payment_status=filters.payment_status,
        search=filters.search,
        date_from=filters.date_from,
        date_to=filters.date_to,
    )
    orders.sort(
        key=lambda o: o.created_at.timestamp() if o.created_at else 0.0,
        reverse=True,
    )

    page = max(filters.page, 1)
    offset = (page - 1) * filters.page_size
    page_items = orders[offset: offset + filters.page_size]

    return OrderListData(
        total=len(orders),
        items=[present(o, user) for o in page_items],
    )


async def get_order(store: DocumentStore, order_id: str, user: User) -> Order:
    return present(await load_order(store, order_id), user)


async def get_allowed_statuses(store: DocumentStore, order_id: str, user: User) -> list[OrderStatus]:
    order = await load_order(store, order_id)
    if not can(user, Capability.UPDATE_STATUS, order):
        return []
    return list(allowed_statuses(user.department))


# =====================================================
# STATUS
# =====================================================
async def change_status(
    store: DocumentStore,
    order_id: str,
    payload: StatusChangeCreate,
    user: User,
) -> Order:
    current = await load_order(store, order_id)
    _require(user, Capability.UPDATE_STATUS, current)
    _check_version(current, payload.version)

    order, entry = order_mutators.advance_status(
        current,
        payload.status,
        payload.remarks,
        user,
        payload.estimated_time,
        **WINDOW,
    )
    await save_order(store, order, current)
    await notify(store, order.id, order.order_number, entry.status, order.current_department)

    logger.info("Order status updated", extra={"order_id": order.id, "status": entry.status})
    return present(order, user)


async def run_action(
    store: DocumentStore,
    order_id: str,
    action: OrderAction,
    payload: LifecycleCreate,
    user: User,
) -> Order:
    current = await load_order(store, order_id)
    _require(user, Capability.EDIT_ORDER, current)
    _check_version(current, payload.version)

    order, entry = order_mutators.apply_lifecycle_action(
        current, action.value, user, payload.remarks, **WINDOW
    )
    await save_order(store, order, current)
    await notify(store, order.id, order.order_number, entry.status, order.current_department)

    logger.info("Order action applied", extra={"order_id": order.id, "action": action.value})
    return present(order, user)


# =====================================================
# FORWARD
# =====================================================
async def forward_order(
    store: DocumentStore,
    order_id: str,
    payload: ForwardCreate,
    user: User,
) -> Order:
    current = await load_order(store, order_id)
    _require(user, Capability.FORWARD, current)
    _check_version(current, payload.version)

    order, entry = order_mutators.forward(current, user, payload.remarks, **WINDOW)
    await save_order(store, order, current)
    await notify(store, order.id, order.order_number, entry.status, order.current_department)

    logger.info(
        "Order forwarded",
        extra={"order_id": order.id, "department": order.current_department.value},
    )
    return present(order, user)


# =====================================================
# PAYMENTS
# =====================================================
async def add_payment(
    store: DocumentStore,
    order_id: str,
    payload: PaymentCreate,
    user: User,
) -> Order:
    current = await load_order(store, order_id)
    _require(user, Capability.RECORD_PAYMENT, current)
    _check_version(current, payload.version)

    order, payment = order_mutators.record_payment(
        current,
        payload.amount,
        payload.method,
        payload.remarks,
        payload.paid_on,
    )
    await save_order(store, order, current)
    await notify(
        store,
        order.id,
        order.order_number,
        f"Payment of {format_inr(payment.amount)} received",
        Department.SALES,
        NotificationType.PAYMENT,
    )

    logger.info(
        "Payment recorded",
        extra={"order_id": order.id, "amount": str(payment.amount), "method": payment.method.value},
    )
    return present(order, user)


async def list_order_payments(store: DocumentStore, order_id: str, user: User) -> PaymentListData:
    order = await load_order(store, order_id)
    items = sorted(
        order.payment_history,
        key=lambda p: p.date.timestamp() if p.date else 0.0,
        reverse=True,
    )
    return PaymentListData(
        total=len(items),
        total_paid=sum((p.amount for p in items), Decimal("0.00")),
        items=items,
    )


async def verify_order_payment(
    store: DocumentStore,
    order_id: str,
    payload: PaymentVerifyCreate,
    user: User,
) -> Order:
    current = await load_order(store, order_id)
    _require(user, Capability.VERIFY_PAYMENT, current)
    _check_version(current, payload.version)

    order, entry = order_mutators.verify_payment(
        current,
        payload.amount,
        payload.method,
        payload.remarks,
        user,
        full=payload.full,
        **WINDOW,
    )
    await save_order(store, order, current)
    await notify(
        store,
        order.id,
        order.order_number,
        entry.status,
        Department.SALES,
        NotificationType.PAYMENT,
    )

    logger.info(
        "Payment verified",
        extra={"order_id": order.id, "label": entry.status, "user_id": user.id},
    )
    return present(order, user)


# =====================================================
# PRODUCTS / PRODUCTION
# =====================================================
async def update_product(
    store: DocumentStore,
    order_id: str,
    product_id: str,
    payload: ProductStatusCreate,
    user: User,
) -> Order:
    current = await load_order(store, order_id)
    _require(user, Capability.UPDATE_STATUS, current)
    _check_version(current, payload.version)

    order, _ = order_mutators.update_product_status(
        current,
        product_id,
        payload.status,
        user,
        payload.remarks,
        payload.estimated_completion,
        **WINDOW,
    )
    await save_order(store, order, current)

    logger.info(
        "Product status updated",
        extra={"order_id": order.id, "product_id": product_id, "status": payload.status.value},
    )
    return present(order, user)


async def update_stage(
    store: DocumentStore,
    order_id: str,
    payload: ProductionStageCreate,
    user: User,
) -> Order:
    current = await load_order(store, order_id)
    _require(user, Capability.UPDATE_PRODUCTION, current)
    _check_version(current, payload.version)

    order, _ = order_mutators.update_production_stage(
        current,
        payload.stage,
        payload.status,
        user,
        payload.remarks,
        payload.timeline,
        **WINDOW,
    )
    await save_order(store, order, current)
    if order.status != current.status:
        await notify(store, order.id, order.order_number, order.status.value, Department.SALES)

    logger.info(
        "Production stage updated",
        extra={"order_id": order.id, "stage": payload.stage.value, "status": payload.status.value},
    )
    return present(order, user)


async def get_production_progress(
    store: DocumentStore,
    order_id: str,
    user: User,
) -> ProductionProgressData:
    order = await load_order(store, order_id)
    return ProductionProgressData(
        completion=order_mutators.production_completion(order),
        stages=order.production_stages,
        products=order.product_status,
    )


# =====================================================
# DISPATCH
# =====================================================
async def dispatch_order(
    store: DocumentStore,
    order_id: str,
    payload: DispatchCreate,
    user: User,
) -> Order:
    current = await load_order(store, order_id)
    _require(user, Capability.DISPATCH, current)
    _check_version(current, payload.version)

    order, entry = order_mutators.dispatch(
        current,
        payload.address,
        payload.contact_number,
        user,
        courier_partner=payload.courier_partner,
        delivery_type=payload.delivery_type,
        tracking_number=payload.tracking_number,
        dispatch_date=payload.dispatch_date,
        remarks=payload.remarks,
        **WINDOW,
    )
    await save_order(store, order, current)
    await notify(store, order.id, order.order_number, entry.status, order.current_department)

    logger.info("Order dispatched", extra={"order_id": order.id})
    return present(order, user)


# =====================================================
# APPROVALS
# =====================================================
async def request_order_approval(
    store: DocumentStore,
    order_id: str,
    payload: ApprovalRequestCreate,
    user: User,
) -> Order:
    current = await load_order(store, order_id)
    _require(user, Capability.REQUEST_APPROVAL, current)
    _check_version(current, payload.version)

    order, entry = order_mutators.request_approval(current, payload.reason, user, **WINDOW)
    await save_order(store, order, current)
    await notify(store, order.id, order.order_number, entry.status, Department.SALES)

    logger.info("Approval requested", extra={"order_id": order.id, "user_id": user.id})
    return present(order, user)


async def respond_order_approval(
    store: DocumentStore,
    order_id: str,
    payload: ApprovalResponseCreate,
    user: User,
) -> Order:
    current = await load_order(store, order_id)
    _require(user, Capability.RESPOND_APPROVAL, current)
    _check_version(current, payload.version)

    order, entry = order_mutators.respond_to_approval(
        current, payload.approve, payload.remarks, user, **WINDOW
    )
    await save_order(store, order, current)
    await notify(store, order.id, order.order_number, entry.status, order.current_department)

    logger.info(
        "Approval answered",
        extra={"order_id": order.id, "approved": payload.approve},
    )
    return present(order, user)


# =====================================================
# DUPLICATE
# =====================================================
async def duplicate_order(store: DocumentStore, order_id: str, user: User) -> Order:
    source = await load_order(store, order_id)
    _require(user, Capability.DUPLICATE_ORDER, source)

    copy = order_mutators.duplicate(source, user, **WINDOW)
    await save_order(store, copy)

    logger.info(
        "Order duplicated",
        extra={"order_id": copy.id, "source_order_id": source.id},
    )
    return present(copy, user)


# =====================================================
# DELETE
# =====================================================
async def delete_order(store: DocumentStore, order_id: str, user: User) -> Order:
    order = await load_order(store, order_id)
    _require(user, Capability.DELETE_ORDER, order)

    await store.delete(ORDERS, order.id)
    await notify(store, order.id, order.order_number, "Deleted", order.current_department)

    logger.info("Order deleted", extra={"order_id": order.id, "user_id": user.id})
    return order


async def delete_all_orders(store: DocumentStore, user: User) -> BulkDeleteData:
    _require(user, Capability.DELETE_ORDER)

    orders = await load_all_orders(store)
    deleted = await store.delete_all(ORDERS)
    for order in orders:
        await notify(store, order.id, order.order_number, "Deleted", order.current_department)

    logger.warning("All orders deleted", extra={"deleted": deleted, "user_id": user.id})
    return BulkDeleteData(deleted=deleted)
