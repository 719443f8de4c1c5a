"""
Read-only aggregations over order collections.

Everything here is pure: orders in, plain values out. Orders with a missing
or malformed ``created_at`` (already ``None`` after loading) are skipped by
the date based views and still counted by the others.
"""
from collections import Counter
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from orderflow.constants.order_status import OrderStatus
from orderflow.constants.payment import PaymentStatus
from orderflow.schemas.orders.order_schemas import Order
from orderflow.schemas.reports.report_schemas import (
    FinancialSummary,
    MonthlyRevenue,
    RecentPayment,
)
from orderflow.services.orders.workflow import WORKFLOW
from orderflow.utils.dates import parse_datetime, utcnow
from orderflow.utils.decimal_utils import to_decimal

ZERO = Decimal("0.00")


# =====================================================
# COUNTS
# =====================================================
def count_by_status(orders: Iterable[Order]) -> dict[str, int]:
    counts = {status.value: 0 for status in OrderStatus}
    for order in orders:
        counts[order.status.value] += 1
    return counts


def count_by_payment_status(orders: Iterable[Order]) -> dict[str, int]:
    counts = {status.value: 0 for status in PaymentStatus}
    for order in orders:
        counts[order.payment_status.value] += 1
    return counts


def count_by_department(orders: Iterable[Order]) -> dict[str, int]:
    tally = Counter(order.current_department for order in orders)
    return {department.value: tally.get(department, 0) for department in WORKFLOW}


# =====================================================
# MONEY
# =====================================================
def financial_summary(orders: Iterable[Order]) -> FinancialSummary:
    orders = list(orders)
    revenue = sum((o.amount for o in orders), ZERO)
    paid = sum((o.paid_amount for o in orders), ZERO)
    pending = sum((o.pending_amount for o in orders), ZERO)
    average = to_decimal(revenue / len(orders)) if orders else ZERO

    return FinancialSummary(
        total_orders=len(orders),
        total_revenue=revenue,
        total_paid=paid,
        total_pending=pending,
        average_order_value=average,
    )


def _month_start(value: datetime) -> date:
    return date(value.year, value.month, 1)


def _next_month(value: date) -> date:
    if value.month == 12:
        return date(value.year + 1, 1, 1)
    return date(value.year, value.month + 1, 1)


def revenue_by_month(orders: Iterable[Order]) -> list[MonthlyRevenue]:
    """
    Monthly revenue and paid totals by order creation month.

    The series is contiguous from the first to the last month that has an
    order; months in between without orders appear with zero totals.
    """
    buckets: dict[date, list[Decimal]] = {}
    for order in orders:
        if order.created_at is None:
            continue
        bucket = buckets.setdefault(_month_start(order.created_at), [ZERO, ZERO])
        bucket[0] += order.amount
        bucket[1] += order.paid_amount

    if not buckets:
        return []

    series = []
    month, last = min(buckets), max(buckets)
    while month <= last:
        revenue, paid = buckets.get(month, (ZERO, ZERO))
        series.append(
            MonthlyRevenue(month=month.strftime("%b %Y"), revenue=revenue, paid=paid)
        )
        month = _next_month(month)
    return series


def recent_payments(
    orders: Iterable[Order],
    days: int = 30,
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> list[RecentPayment]:
    cutoff = (now or utcnow()) - timedelta(days=days)

    rows = [
        RecentPayment(
            payment_id=payment.id,
            order_id=order.id,
            order_number=order.order_number,
            client_name=order.client_name,
            amount=payment.amount,
            date=payment.date,
            method=payment.method,
            remarks=payment.remarks,
        )
        for order in orders
        for payment in order.payment_history
        if payment.date is not None and payment.date >= cutoff
    ]
    rows.sort(key=lambda row: row.date, reverse=True)
    return rows[:limit] if limit is not None else rows


# =====================================================
# FILTERING
# =====================================================
def _day_bound(value, end: bool) -> Optional[datetime]:
    parsed = parse_datetime(value)
    if parsed is None:
        return None
    # a bare date covers the whole day
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(parsed.date(), time.max if end else time.min, parsed.tzinfo)
    if end and parsed.time() == time.min:
        return datetime.combine(parsed.date(), time.max, parsed.tzinfo)
    return parsed


def _matches_search(order: Order, term: str) -> bool:
    haystack = [order.client_name, order.order_number, *order.items]
    return any(term in text.lower() for text in haystack)


def filter_orders(
    orders: Iterable[Order],
    *,
    department=None,
    status=None,
    payment_status=None,
    search: Optional[str] = None,
    date_from=None,
    date_to=None,
) -> list[Order]:
    term = (search or "").strip().lower()
    start = _day_bound(date_from, end=False)
    end = _day_bound(date_to, end=True)

    result = []
    for order in orders:
        if department and order.current_department != department:
            continue
        if status and order.status != status:
            continue
        if payment_status and order.payment_status != payment_status:
            continue
        if term and not _matches_search(order, term):
            continue
        if start or end:
            if order.created_at is None:
                continue
            if start and order.created_at < start:
                continue
            if end and order.created_at > end:
                continue
        result.append(order)
    return result
