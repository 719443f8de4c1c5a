from fastapi import APIRouter, Depends, Query

from orderflow.schemas.notifications.notification_schemas import (
    NotificationListData,
    NotificationOut,
)
from orderflow.schemas.orders.order_schemas import User
from orderflow.services.notifications.notification_service import (
    list_notifications,
    mark_notification_read,
)
from orderflow.services.store.document_store import DocumentStore, get_store
from orderflow.utils.get_user import get_current_user
from orderflow.utils.response import success_response, APIResponse

router = APIRouter(
    prefix="/notifications",
    tags=["Notifications"],
)


@router.get("", response_model=APIResponse[NotificationListData])
async def list_notifications_api(
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
    unread_only: bool = Query(False),
):
    data = await list_notifications(store, user, unread_only=unread_only)
    return success_response("Notifications retrieved successfully", data)


@router.post("/{notification_id}/read", response_model=APIResponse[NotificationOut])
async def mark_read_api(
    notification_id: str,
    store: DocumentStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    data = await mark_notification_read(store, notification_id, user)
    return success_response("Notification marked as read", data)
