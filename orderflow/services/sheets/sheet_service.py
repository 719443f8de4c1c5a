import os
from typing import Optional

from orderflow.constants.error_codes import ErrorCode
from orderflow.core.config import SHEET_DIR, SHEET_EXPORT_PATH, STATUS_EDIT_WINDOW_MINUTES
from orderflow.core.exceptions import (
    AppException,
    ExternalFailure,
    InvalidArgument,
    NotAllowed,
    OrderDomainError,
)
from orderflow.schemas.orders.order_schemas import User
from orderflow.schemas.sheets.sheet_schemas import (
    SheetExportData,
    SheetImportData,
    SheetRowError,
)
from orderflow.services.notifications.notification_service import notify
from orderflow.services.orders.order_mutators import import_order
from orderflow.services.orders.order_service import load_all_orders, save_order
from orderflow.services.sheets.sheet_codec import read_sheet, row_to_partial_order, write_sheet
from orderflow.services.store.document_store import DocumentStore
from orderflow.utils.logger import get_logger
from orderflow.utils.permissions import Capability, can

logger = get_logger(__name__)


def _require_sync(user: Optional[User]):
    # user is None for the scheduled job
    if user is not None and not can(user, Capability.SYNC_SHEETS):
        raise NotAllowed("Only admins can sync spreadsheets")


def resolve_sheet_path(path: Optional[str]) -> str:
    """
    Map a requested sheet path onto the sheet directory.

    Relative paths are taken from SHEET_DIR. Anything that resolves outside
    it, symlinks included, is refused.
    """
    if not path:
        return SHEET_EXPORT_PATH

    base = os.path.realpath(SHEET_DIR)
    target = os.path.realpath(os.path.join(base, path))
    if os.path.commonpath([base, target]) != base:
        logger.warning("Sheet path outside sheet directory", extra={"path": path})
        raise NotAllowed(
            "Spreadsheet path must be inside the sheet directory",
            {"path": path},
        )
    return target


# =====================================================
# EXPORT
# =====================================================
async def export_orders(
    store: DocumentStore,
    user: Optional[User],
    path: Optional[str] = None,
) -> SheetExportData:
    _require_sync(user)
    path = resolve_sheet_path(path)

    orders = await load_all_orders(store)
    try:
        exported = write_sheet(orders, path)
    except OSError as exc:
        logger.exception("Spreadsheet export failed", extra={"path": path})
        raise ExternalFailure(f"Could not write spreadsheet: {exc}", {"path": path})

    logger.info("Orders exported", extra={"path": path, "exported": exported})
    return SheetExportData(path=path, exported=exported)


# =====================================================
# IMPORT
# =====================================================
async def import_orders(
    store: DocumentStore,
    user: User,
    path: Optional[str] = None,
) -> SheetImportData:
    """
    Create new orders from spreadsheet rows.

    Rows whose sync id already belongs to a stored order are skipped, as are
    blank rows. Rows that fail validation are reported and skipped; the rest
    still import.
    """
    _require_sync(user)
    path = resolve_sheet_path(path)

    try:
        rows = read_sheet(path)
    except FileNotFoundError:
        raise AppException(404, f"Spreadsheet not found: {path}", ErrorCode.SHEET_NOT_FOUND)
    except InvalidArgument:
        raise
    except ValueError as exc:
        raise AppException(400, f"Could not read spreadsheet: {exc}", ErrorCode.SHEET_INVALID)

    # exports write the order id when an order has no sync id of its own
    known_sync_ids = set()
    for o in await load_all_orders(store):
        known_sync_ids.add(o.sheet_sync_id or o.id)

    result = SheetImportData(path=path, imported=0, skipped=0)

    # row 1 is the header
    for row_number, row in enumerate(rows, start=2):
        try:
            partial = row_to_partial_order(row, row_number)
            if not partial["client_name"] and not partial["order_number"]:
                result.skipped += 1
                continue
            if partial["sheet_sync_id"] and partial["sheet_sync_id"] in known_sync_ids:
                result.skipped += 1
                continue

            order = import_order(partial, user, edit_window_minutes=STATUS_EDIT_WINDOW_MINUTES)
        except OrderDomainError as exc:
            result.errors.append(SheetRowError(row=row_number, message=exc.message))
            result.skipped += 1
            continue

        await save_order(store, order)
        await notify(store, order.id, order.order_number, "Imported", order.current_department)

        if order.sheet_sync_id:
            known_sync_ids.add(order.sheet_sync_id)
        result.order_ids.append(order.id)
        result.imported += 1

    logger.info(
        "Orders imported",
        extra={"path": path, "imported": result.imported, "skipped": result.skipped},
    )
    return result
