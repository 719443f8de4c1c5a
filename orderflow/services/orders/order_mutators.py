"""
Pure order commands.

Every command takes an Order snapshot and returns a new snapshot plus the
single history (or payment) entry it appended. Inputs are never modified.
Persistence and notifications are the caller's job, see order_service.
"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Optional
from uuid import uuid4

from orderflow.constants.department import Department
from orderflow.constants.dispatch import CourierPartner, DeliveryType
from orderflow.constants.order_status import OrderStatus
from orderflow.constants.payment import PaymentMethod, PaymentStatus
from orderflow.constants.production import ProductionStage, ProgressStatus
from orderflow.core.exceptions import InvalidArgument, TerminalStage, ValidationError
from orderflow.schemas.orders.order_schemas import (
    DispatchDetails,
    Order,
    PaymentRecord,
    ProductionStageStatus,
    ProductStatus,
    StatusUpdate,
    User,
)
from orderflow.services.orders.workflow import (
    as_department,
    as_status,
    is_final_stage,
    next_department,
)
from orderflow.utils.dates import parse_datetime, utcnow
from orderflow.utils.decimal_utils import format_inr, to_decimal

DEFAULT_EDIT_WINDOW_MINUTES = 30
SYSTEM_AUTHOR = "System"

# action -> (target status, timeline label)
LIFECYCLE_ACTIONS: dict[str, tuple[OrderStatus, str]] = {
    "archive": (OrderStatus.ARCHIVED, "Archived"),
    "cancel": (OrderStatus.CANCELLED, "Cancelled"),
    "complete": (OrderStatus.COMPLETED, "Completed"),
    "hold": (OrderStatus.ON_HOLD, "On Hold"),
    "reject": (OrderStatus.REJECTED, "Rejected"),
    "reopen": (OrderStatus.IN_PROGRESS, "Reopened"),
    "restore": (OrderStatus.IN_PROGRESS, "Restored"),
    "resume": (OrderStatus.IN_PROGRESS, "Resumed"),
    "return": (OrderStatus.IN_PROGRESS, "Returned"),
}


# =====================================================
# HELPERS
# =====================================================
def new_id() -> str:
    return uuid4().hex


def generate_order_number(now: Optional[datetime] = None) -> str:
    now = now or utcnow()
    return f"ORD-{now.strftime('%y%m%d')}-{uuid4().hex[:6].upper()}"


def derive_payment_status(amount: Decimal, paid: Decimal) -> PaymentStatus:
    pending = amount - paid
    if pending <= 0:
        return PaymentStatus.PAID
    if 0 < paid < amount:
        return PaymentStatus.PARTIALLY_PAID
    return PaymentStatus.NOT_PAID


def _money(value, field: str) -> Decimal:
    try:
        return to_decimal(value)
    except ValueError:
        raise ValidationError(f"{field} must be a number", {"field": field})


def _author(user: Optional[User], fallback: Department) -> tuple[str, Department]:
    if user is None:
        return SYSTEM_AUTHOR, fallback
    return user.name, user.department


def _history_entry(
    order: Order,
    label: str,
    remarks: str,
    user: Optional[User],
    now: datetime,
    edit_window_minutes: int,
    department: Optional[Department] = None,
    estimated_time: Optional[str] = None,
) -> StatusUpdate:
    author, author_department = _author(user, order.current_department)
    return StatusUpdate(
        id=new_id(),
        order_id=order.id,
        timestamp=now,
        department=department or author_department,
        status=label,
        remarks=remarks or "",
        updated_by=author,
        estimated_time=estimated_time or None,
        editable_until=now + timedelta(minutes=edit_window_minutes),
    )


def _append(order: Order, entry: StatusUpdate, now: datetime, **changes: Any) -> Order:
    return order.model_copy(
        update={
            **changes,
            "status_history": [*order.status_history, entry],
            "updated_at": now,
            "version": order.version + 1,
        }
    )


def product_lines(items: list[str]) -> list[ProductStatus]:
    return [ProductStatus(id=new_id(), name=name) for name in items]


def _require_text(value: Optional[str], field: str, message: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(message, {"field": field})
    return text


# =====================================================
# INTAKE
# =====================================================
def create_order(
    client_name: str,
    items: list[str],
    amount,
    acting_user: Optional[User] = None,
    *,
    paid_amount=Decimal("0.00"),
    payment_method: PaymentMethod = PaymentMethod.CASH,
    delivery_address: Optional[str] = None,
    contact_number: Optional[str] = None,
    sheet_sync_id: Optional[str] = None,
    order_number: Optional[str] = None,
    remarks: str = "Order created",
    now: Optional[datetime] = None,
    edit_window_minutes: int = DEFAULT_EDIT_WINDOW_MINUTES,
) -> Order:
    now = now or utcnow()
    client_name = _require_text(client_name, "client_name", "Client name is required")
    amount = _money(amount, "amount")
    paid_amount = _money(paid_amount, "paid_amount")

    if amount < 0:
        raise ValidationError("Order amount cannot be negative", {"field": "amount"})
    if paid_amount < 0:
        raise ValidationError("Paid amount cannot be negative", {"field": "paid_amount"})

    order_id = new_id()
    items = [i.strip() for i in items if i and i.strip()]

    # an upfront payment becomes the first payment record so paid == sum(payments)
    payments = []
    if paid_amount > 0:
        payments.append(
            PaymentRecord(
                id=new_id(),
                amount=paid_amount,
                date=now,
                method=payment_method,
                remarks="Advance received at intake",
            )
        )

    author, _ = _author(acting_user, Department.SALES)
    first_entry = StatusUpdate(
        id=new_id(),
        order_id=order_id,
        timestamp=now,
        department=Department.SALES,
        status=OrderStatus.NEW.value,
        remarks=remarks,
        updated_by=author,
        editable_until=now + timedelta(minutes=edit_window_minutes),
    )

    return Order(
        id=order_id,
        order_number=order_number or generate_order_number(now),
        client_name=client_name,
        items=items,
        amount=amount,
        paid_amount=paid_amount,
        pending_amount=amount - paid_amount,
        payment_status=derive_payment_status(amount, paid_amount),
        last_payment_date=now if payments else None,
        current_department=Department.SALES,
        status=OrderStatus.NEW,
        created_at=now,
        updated_at=now,
        delivery_address=delivery_address,
        contact_number=contact_number,
        sheet_sync_id=sheet_sync_id,
        product_status=product_lines(items),
        status_history=[first_entry],
        payment_history=payments,
    )


def import_order(
    partial: dict,
    acting_user: Optional[User] = None,
    *,
    now: Optional[datetime] = None,
    edit_window_minutes: int = DEFAULT_EDIT_WINDOW_MINUTES,
) -> Order:
    """
    Build a full order from a spreadsheet row (see sheet_codec).

    Payment status and pending amount are recomputed from amount and paid;
    the sheet's own values for those columns are ignored.
    """
    now = now or utcnow()
    order = create_order(
        client_name=partial.get("client_name") or "",
        items=partial.get("items") or [],
        amount=partial.get("amount") or 0,
        acting_user=acting_user,
        paid_amount=partial.get("paid_amount") or 0,
        sheet_sync_id=partial.get("sheet_sync_id"),
        order_number=partial.get("order_number") or None,
        remarks="Imported from spreadsheet",
        now=now,
        edit_window_minutes=edit_window_minutes,
    )

    changes: dict[str, Any] = {}
    if partial.get("status"):
        changes["status"] = as_status(partial["status"])
    if partial.get("current_department"):
        changes["current_department"] = as_department(partial["current_department"])
    created_at = parse_datetime(partial.get("created_at"))
    if created_at is not None:
        changes["created_at"] = created_at

    return order.model_copy(update=changes) if changes else order


# =====================================================
# STATUS
# =====================================================
def advance_status(
    order: Order,
    new_status,
    remarks: str = "",
    acting_user: Optional[User] = None,
    estimated_time: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
    edit_window_minutes: int = DEFAULT_EDIT_WINDOW_MINUTES,
) -> tuple[Order, StatusUpdate]:
    now = now or utcnow()
    status = as_status(new_status)

    entry = _history_entry(
        order,
        status.value,
        remarks,
        acting_user,
        now,
        edit_window_minutes,
        estimated_time=estimated_time,
    )
    return _append(order, entry, now, status=status), entry


def apply_lifecycle_action(
    order: Order,
    action: str,
    acting_user: Optional[User] = None,
    remarks: str = "",
    *,
    now: Optional[datetime] = None,
    edit_window_minutes: int = DEFAULT_EDIT_WINDOW_MINUTES,
) -> tuple[Order, StatusUpdate]:
    if action not in LIFECYCLE_ACTIONS:
        raise InvalidArgument(f"Unknown order action: {action!r}")

    now = now or utcnow()
    status, label = LIFECYCLE_ACTIONS[action]
    entry = _history_entry(order, label, remarks, acting_user, now, edit_window_minutes)
    return _append(order, entry, now, status=status), entry


def archive(order, acting_user=None, remarks="", **kw):
    return apply_lifecycle_action(order, "archive", acting_user, remarks, **kw)


def cancel(order, acting_user=None, remarks="", **kw):
    return apply_lifecycle_action(order, "cancel", acting_user, remarks, **kw)


def complete(order, acting_user=None, remarks="", **kw):
    return apply_lifecycle_action(order, "complete", acting_user, remarks, **kw)


def hold(order, acting_user=None, remarks="", **kw):
    return apply_lifecycle_action(order, "hold", acting_user, remarks, **kw)


def reject(order, acting_user=None, remarks="", **kw):
    return apply_lifecycle_action(order, "reject", acting_user, remarks, **kw)


def reopen(order, acting_user=None, remarks="", **kw):
    return apply_lifecycle_action(order, "reopen", acting_user, remarks, **kw)


def restore(order, acting_user=None, remarks="", **kw):
    return apply_lifecycle_action(order, "restore", acting_user, remarks, **kw)


def resume(order, acting_user=None, remarks="", **kw):
    return apply_lifecycle_action(order, "resume", acting_user, remarks, **kw)


def return_order(order, acting_user=None, remarks="", **kw):
    return apply_lifecycle_action(order, "return", acting_user, remarks, **kw)


# =====================================================
# WORKFLOW
# =====================================================
def forward(
    order: Order,
    acting_user: Optional[User] = None,
    remarks: str = "",
    *,
    now: Optional[datetime] = None,
    edit_window_minutes: int = DEFAULT_EDIT_WINDOW_MINUTES,
) -> tuple[Order, StatusUpdate]:
    if is_final_stage(order.current_department):
        raise TerminalStage(
            f"Order #{order.order_number} is already in "
            f"{order.current_department.value}, the final department",
            {"department": order.current_department.value},
        )
    target = next_department(order.current_department)

    now = now or utcnow()
    entry = _history_entry(
        order,
        f"Forwarded to {target.value}",
        remarks,
        acting_user,
        now,
        edit_window_minutes,
        department=order.current_department,
    )
    updated = _append(
        order,
        entry,
        now,
        current_department=target,
        status=OrderStatus.NEW,
    )
    return updated, entry


def request_approval(
    order: Order,
    reason: str,
    acting_user: Optional[User] = None,
    *,
    now: Optional[datetime] = None,
    edit_window_minutes: int = DEFAULT_EDIT_WINDOW_MINUTES,
) -> tuple[Order, StatusUpdate]:
    reason = _require_text(
        reason, "reason", "Please provide details for the approval request"
    )

    now = now or utcnow()
    entry = _history_entry(
        order, "Approval Requested", reason, acting_user, now, edit_window_minutes
    )
    updated = _append(
        order,
        entry,
        now,
        status=OrderStatus.PENDING_APPROVAL,
        pending_approval_from=Department.SALES,
        approval_reason=reason,
    )
    return updated, entry


def respond_to_approval(
    order: Order,
    approve: bool,
    remarks: str,
    acting_user: Optional[User] = None,
    *,
    now: Optional[datetime] = None,
    edit_window_minutes: int = DEFAULT_EDIT_WINDOW_MINUTES,
) -> tuple[Order, StatusUpdate]:
    if order.pending_approval_from is None:
        raise ValidationError(f"Order #{order.order_number} is not awaiting approval")
    remarks = _require_text(
        remarks, "remarks", "Please provide feedback with your response"
    )

    now = now or utcnow()
    entry = _history_entry(
        order,
        "Approved" if approve else "Rejected",
        remarks,
        acting_user,
        now,
        edit_window_minutes,
        department=order.pending_approval_from,
    )
    updated = _append(
        order,
        entry,
        now,
        status=OrderStatus.IN_PROGRESS if approve else OrderStatus.ON_HOLD,
        pending_approval_from=None,
        approval_reason=None,
    )
    return updated, entry


def dispatch(
    order: Order,
    address: str,
    contact_number: str,
    acting_user: Optional[User] = None,
    *,
    courier_partner: CourierPartner = CourierPartner.SHREE_MARUTI,
    delivery_type: DeliveryType = DeliveryType.NORMAL,
    tracking_number: Optional[str] = None,
    dispatch_date: Optional[datetime] = None,
    remarks: str = "",
    now: Optional[datetime] = None,
    edit_window_minutes: int = DEFAULT_EDIT_WINDOW_MINUTES,
) -> tuple[Order, StatusUpdate]:
    address = _require_text(address, "address", "Please enter the delivery address")
    contact_number = _require_text(
        contact_number, "contact_number", "Please enter a contact number"
    )

    now = now or utcnow()
    details = DispatchDetails(
        address=address,
        contact_number=contact_number,
        courier_partner=courier_partner,
        delivery_type=delivery_type,
        tracking_number=tracking_number or None,
        dispatch_date=dispatch_date or now,
        verified_by=acting_user.name if acting_user else SYSTEM_AUTHOR,
    )

    note = f"Order dispatched via {courier_partner.value} ({delivery_type.value})."
    if remarks:
        note = f"{note} Remarks: {remarks}"

    entry = _history_entry(
        order, OrderStatus.DISPATCHED.value, note, acting_user, now, edit_window_minutes
    )
    updated = _append(
        order,
        entry,
        now,
        status=OrderStatus.DISPATCHED,
        dispatch_details=details,
        delivery_address=address,
        contact_number=contact_number,
    )
    return updated, entry


# =====================================================
# PAYMENTS
# =====================================================
def _apply_payment(
    order: Order,
    amount,
    method,
    remarks: str,
    paid_on: Optional[datetime],
    now: datetime,
) -> tuple[Order, PaymentRecord]:
    amount = _money(amount, "amount")
    if amount <= 0:
        raise ValidationError(
            "Please enter a valid payment amount", {"field": "amount"}
        )
    try:
        method = PaymentMethod(method)
    except ValueError:
        raise ValidationError(f"Unknown payment method: {method!r}", {"field": "method"})

    payment = PaymentRecord(
        id=new_id(),
        amount=amount,
        date=paid_on or now,
        method=method,
        remarks=remarks or None,
    )

    history = [*order.payment_history, payment]
    paid = sum((p.amount for p in history), Decimal("0.00"))

    updated = order.model_copy(
        update={
            "payment_history": history,
            "paid_amount": paid,
            "pending_amount": order.amount - paid,
            "payment_status": derive_payment_status(order.amount, paid),
            "last_payment_date": payment.date,
            "updated_at": now,
        }
    )
    return updated, payment


def record_payment(
    order: Order,
    amount,
    method=PaymentMethod.CASH,
    remarks: str = "",
    paid_on: Optional[datetime] = None,
    *,
    now: Optional[datetime] = None,
) -> tuple[Order, PaymentRecord]:
    now = now or utcnow()
    updated, payment = _apply_payment(order, amount, method, remarks, paid_on, now)
    return updated.model_copy(update={"version": order.version + 1}), payment


def verify_payment(
    order: Order,
    amount,
    method=PaymentMethod.BANK_TRANSFER,
    remarks: str = "",
    acting_user: Optional[User] = None,
    *,
    full: bool = True,
    now: Optional[datetime] = None,
    edit_window_minutes: int = DEFAULT_EDIT_WINDOW_MINUTES,
) -> tuple[Order, StatusUpdate]:
    """
    Record a payment checked by Sales and note it on the timeline.

    The entry reads "Payment Verified" when ``full`` is set or the amount
    clears the balance, "Partial Payment Received" otherwise.
    """
    if order.payment_status == PaymentStatus.PAID:
        raise ValidationError(f"Order #{order.order_number} is already fully paid")

    now = now or utcnow()
    paid, payment = _apply_payment(order, amount, method, remarks, None, now)

    settled = full or payment.amount >= order.pending_amount
    if settled:
        label = "Payment Verified"
        note = f"Full payment of {format_inr(payment.amount)} verified via {payment.method.value}."
    else:
        label = "Partial Payment Received"
        note = f"Payment of {format_inr(payment.amount)} received via {payment.method.value}."
    if remarks:
        note = f"{note} {remarks}"

    entry = _history_entry(
        paid, label, note, acting_user, now, edit_window_minutes,
        department=Department.SALES,
    )
    updated = _append(
        paid,
        entry,
        now,
        verified_by=acting_user.name if acting_user else SYSTEM_AUTHOR,
        verified_at=now,
    )
    return updated, entry


# =====================================================
# PRODUCT LINES
# =====================================================
def update_product_status(
    order: Order,
    product_id: str,
    status,
    acting_user: Optional[User] = None,
    remarks: str = "",
    estimated_completion: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
    edit_window_minutes: int = DEFAULT_EDIT_WINDOW_MINUTES,
) -> tuple[Order, StatusUpdate]:
    try:
        status = ProgressStatus(status)
    except ValueError:
        raise InvalidArgument(f"Unknown product status: {status!r}")

    product = next((p for p in order.product_status if p.id == product_id), None)
    if product is None:
        raise ValidationError(
            f"Order #{order.order_number} has no product {product_id!r}",
            {"field": "product_id"},
        )

    now = now or utcnow()
    _, department = _author(acting_user, order.current_department)
    changed = product.model_copy(
        update={
            "status": status,
            "remarks": remarks or product.remarks,
            "estimated_completion": estimated_completion or product.estimated_completion,
            "assigned_department": department,
        }
    )

    entry = _history_entry(
        order,
        f"Product Status: {status.value}",
        remarks,
        acting_user,
        now,
        edit_window_minutes,
        estimated_time=estimated_completion,
    ).model_copy(update={"selected_product": product.id})

    products = [changed if p.id == product.id else p for p in order.product_status]
    return _append(order, entry, now, product_status=products), entry


# =====================================================
# PRODUCTION STAGES
# =====================================================
def production_completion(order: Order) -> int:
    """Share of tracked production stages that are completed, 0-100."""
    if not order.production_stages:
        return 0
    done = sum(1 for s in order.production_stages if s.status == ProgressStatus.COMPLETED)
    return round(done / len(order.production_stages) * 100)


def update_production_stage(
    order: Order,
    stage,
    status,
    acting_user: Optional[User] = None,
    remarks: str = "",
    timeline=None,
    *,
    now: Optional[datetime] = None,
    edit_window_minutes: int = DEFAULT_EDIT_WINDOW_MINUTES,
) -> tuple[Order, StatusUpdate]:
    """
    Set the progress of one production stage, adding the stage if new.

    Ready to Dispatch needs a fully paid order and an expected completion
    date. Completing it moves the order itself to Ready to Dispatch.
    """
    try:
        stage = ProductionStage(stage)
        status = ProgressStatus(status)
    except ValueError:
        raise InvalidArgument(f"Unknown production stage or status: {stage!r}, {status!r}")

    timeline = parse_datetime(timeline)
    final = stage == ProductionStage.READY_TO_DISPATCH
    if final and order.payment_status != PaymentStatus.PAID:
        raise ValidationError(
            "Full payment must be received before marking as Ready to Dispatch",
            {"field": "stage"},
        )
    if final and timeline is None:
        raise ValidationError(
            "Expected completion date is required for Ready to Dispatch",
            {"field": "timeline"},
        )

    now = now or utcnow()
    existing = next((s for s in order.production_stages if s.stage == stage), None)
    if existing is None:
        stages = [
            *order.production_stages,
            ProductionStageStatus(
                stage=stage, status=status, remarks=remarks or None, timeline=timeline
            ),
        ]
    else:
        changed = existing.model_copy(
            update={
                "status": status,
                "remarks": remarks or existing.remarks,
                "timeline": timeline or existing.timeline,
            }
        )
        stages = [changed if s.stage == stage else s for s in order.production_stages]

    changes: dict[str, Any] = {"production_stages": stages}
    if final:
        changes["expected_completion_date"] = timeline
        if status == ProgressStatus.COMPLETED:
            changes["status"] = OrderStatus.READY_TO_DISPATCH

    entry = _history_entry(
        order,
        f"{stage.value}: {status.value}",
        remarks,
        acting_user,
        now,
        edit_window_minutes,
    )
    return _append(order, entry, now, **changes), entry


# =====================================================
# DUPLICATE
# =====================================================
def duplicate(
    order: Order,
    acting_user: Optional[User] = None,
    *,
    now: Optional[datetime] = None,
    edit_window_minutes: int = DEFAULT_EDIT_WINDOW_MINUTES,
) -> Order:
    now = now or utcnow()
    new_order_id = new_id()

    order_number = generate_order_number(now)
    while order_number == order.order_number:
        order_number = generate_order_number(now)

    author, _ = _author(acting_user, Department.SALES)
    entry = StatusUpdate(
        id=new_id(),
        order_id=new_order_id,
        timestamp=now,
        department=Department.SALES,
        status=OrderStatus.NEW.value,
        remarks=f"Duplicated from order #{order.order_number}",
        updated_by=author,
        editable_until=now + timedelta(minutes=edit_window_minutes),
    )

    return Order(
        id=new_order_id,
        order_number=order_number,
        client_name=order.client_name,
        items=list(order.items),
        amount=order.amount,
        paid_amount=Decimal("0.00"),
        pending_amount=order.amount,
        payment_status=derive_payment_status(order.amount, Decimal("0.00")),
        current_department=Department.SALES,
        status=OrderStatus.NEW,
        created_at=now,
        updated_at=now,
        delivery_address=order.delivery_address,
        contact_number=order.contact_number,
        product_status=product_lines(order.items),
        status_history=[entry],
        payment_history=[],
    )
