from fastapi import APIRouter, Depends

from orderflow.schemas.orders.order_schemas import User
from orderflow.schemas.sheets.sheet_schemas import (
    SheetExportData,
    SheetImportData,
    SheetRequest,
)
from orderflow.services.sheets.sheet_service import export_orders, import_orders
from orderflow.services.store.document_store import DocumentStore, get_store
from orderflow.utils.get_user import get_current_user
from orderflow.utils.response import success_response, APIResponse

router = APIRouter(
    prefix="/sheets",
    tags=["Spreadsheet Sync"],
)


@router.post(
    "/export",
    response_model=APIResponse[SheetExportData],
)
async def export_orders_api(
    payload: SheetRequest,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    data = await export_orders(store, user, payload.path)
    return success_response(
        f"Successfully exported {data.exported} orders", data
    )


@router.post(
    "/import",
    response_model=APIResponse[SheetImportData],
)
async def import_orders_api(
    payload: SheetRequest,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    data = await import_orders(store, user, payload.path)
    return success_response(
        f"Successfully imported {data.imported} orders", data
    )
