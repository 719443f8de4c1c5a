from datetime import datetime
from typing import Optional

from orderflow.schemas.orders.order_schemas import Order, StatusUpdate
from orderflow.utils.dates import utcnow

RULE = "=" * 55


def format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return "Unknown date"
    hour = value.hour % 12 or 12
    return f"{value:%b %d, %Y} {hour}:{value:%M %p}"


def sorted_history(order: Order) -> list[StatusUpdate]:
    """Oldest first; entries without a usable timestamp keep their place at the end."""
    dated = [e for e in order.status_history if e.timestamp is not None]
    undated = [e for e in order.status_history if e.timestamp is None]
    return sorted(dated, key=lambda e: e.timestamp) + undated


def format_timeline_text(order: Order, now: Optional[datetime] = None) -> str:
    lines = [
        f"ORDER TIMELINE: {order.order_number}",
        f"Client: {order.client_name}",
        f"Export Date: {format_timestamp(now or utcnow())}",
        "",
        RULE,
        "",
    ]

    for index, entry in enumerate(sorted_history(order), start=1):
        lines.append(f"#{index}: {format_timestamp(entry.timestamp)}")
        lines.append(f"Department: {entry.department.value}")
        lines.append(f"Status: {entry.status}")
        lines.append(f"Updated By: {entry.updated_by}")
        if entry.remarks:
            lines.append(f"Remarks: {entry.remarks}")
        if entry.estimated_time:
            lines.append(f"Estimated Time: {entry.estimated_time}")
        lines.append("")

    return "\n".join(lines) + "\n"


def timeline_filename(order: Order, extension: str) -> str:
    return f"{order.order_number}-timeline.{extension}"
