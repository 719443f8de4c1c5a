"""
Positional spreadsheet rows <-> orders.

Columns are matched by position, not header text, so a sheet with renamed
headers still imports as long as the column order is kept.
"""
import os
from decimal import Decimal, InvalidOperation
from typing import Sequence

import pandas as pd

from orderflow.core.exceptions import InvalidArgument, ValidationError
from orderflow.schemas.orders.order_schemas import Order
from orderflow.utils.dates import parse_datetime

SHEET_COLUMNS = [
    "Order #",
    "Client",
    "Items",
    "Amount",
    "Paid",
    "Pending",
    "Created At",
    "Status",
    "Department",
    "Payment Status",
    "Sync ID",
]

SHEET_NAME = "Orders"
ITEM_SEPARATOR = ","


# -------------------------
# Helpers
# -------------------------
def norm_str(x) -> str:
    if x is None or (not isinstance(x, str) and pd.isna(x)):
        return ""
    return str(x).strip()


def to_amount(x, column: str, row_number: int) -> Decimal:
    text = norm_str(x).replace(",", "")
    if text == "":
        return Decimal("0.00")
    try:
        value = Decimal(text)
        if not value.is_finite():
            raise InvalidOperation(text)
        return value.quantize(Decimal("0.01"))
    except InvalidOperation:
        raise ValidationError(
            f"Row {row_number}: {column} is not a number",
            {"row": row_number, "column": column, "value": norm_str(x)},
        )


def _sheet_format(path: str) -> str:
    extension = os.path.splitext(path)[1].lower()
    if extension not in {".csv", ".xlsx"}:
        raise InvalidArgument(f"Unsupported spreadsheet format: {extension or path!r}")
    return extension


# -------------------------
# Row mapping
# -------------------------
def order_to_row(order: Order) -> list:
    return [
        order.order_number,
        order.client_name,
        ", ".join(order.items),
        float(order.amount),
        float(order.paid_amount),
        float(order.pending_amount),
        order.created_at.isoformat() if order.created_at else "",
        order.status.value,
        order.current_department.value,
        order.payment_status.value,
        order.sheet_sync_id or order.id,
    ]


def row_to_partial_order(row: Sequence, row_number: int = 0) -> dict:
    """
    Map one positional row to the fields intake needs.

    Missing trailing cells count as empty. Pending amount and payment status
    are returned for reference only; intake recomputes both.
    """
    cells = list(row) + [None] * (len(SHEET_COLUMNS) - len(row))
    (
        order_number, client, items, amount, paid, pending,
        created_at, status, department, payment_status, sync_id,
    ) = cells[: len(SHEET_COLUMNS)]

    return {
        "order_number": norm_str(order_number),
        "client_name": norm_str(client),
        "items": [i.strip() for i in norm_str(items).split(ITEM_SEPARATOR) if i.strip()],
        "amount": to_amount(amount, "Amount", row_number),
        "paid_amount": to_amount(paid, "Paid", row_number),
        "pending_amount": to_amount(pending, "Pending", row_number),
        "created_at": parse_datetime(created_at),
        "status": norm_str(status) or None,
        "current_department": norm_str(department) or None,
        "payment_status": norm_str(payment_status) or None,
        "sheet_sync_id": norm_str(sync_id) or None,
    }


# -------------------------
# Files
# -------------------------
def write_sheet(orders: Sequence[Order], path: str) -> int:
    extension = _sheet_format(path)
    df = pd.DataFrame([order_to_row(o) for o in orders], columns=SHEET_COLUMNS)

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    if extension == ".csv":
        df.to_csv(path, index=False)
    else:
        df.to_excel(path, index=False, sheet_name=SHEET_NAME)
    return len(df)


def read_sheet(path: str) -> list[list]:
    extension = _sheet_format(path)
    if extension == ".csv":
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
    else:
        df = pd.read_excel(path, sheet_name=0, dtype=object)

    df = df.dropna(how="all")
    return df.values.tolist()
