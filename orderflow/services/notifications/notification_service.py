from typing import Optional
from uuid import uuid4

from orderflow.constants.department import Department
from orderflow.constants.error_codes import ErrorCode
from orderflow.constants.notification_templates import (
    NOTIFICATION_TEMPLATES,
    NotificationType,
)
from orderflow.core.exceptions import AppException
from orderflow.schemas.notifications.notification_schemas import (
    NotificationListData,
    NotificationOut,
)
from orderflow.schemas.orders.order_schemas import User
from orderflow.services.store.document_store import NOTIFICATIONS, DocumentStore
from orderflow.utils.dates import utcnow
from orderflow.utils.logger import get_logger

logger = get_logger(__name__)


# =====================================================
# NOTIFY (fire-and-forget)
# =====================================================
async def notify(
    store: DocumentStore,
    order_id: str,
    order_number: str,
    status_label: str,
    department: Department,
    notification_type: NotificationType = NotificationType.STATUS_UPDATE,
) -> Optional[NotificationOut]:
    """
    Record a notification for ``department`` about an order change.

    Never raises: the order change it reports is already saved, so a
    failure here is logged and swallowed.
    """
    title, template, category, priority = NOTIFICATION_TEMPLATES[notification_type]

    notification = NotificationOut(
        id=uuid4().hex,
        title=title,
        message=template.format(order_number=order_number, status_label=status_label),
        timestamp=utcnow(),
        type=notification_type,
        order_id=order_id,
        for_departments=[department],
        priority=priority,
        category=category,
    )

    try:
        await store.set(NOTIFICATIONS, notification.id, notification.model_dump(mode="json"))
    except Exception:
        logger.exception(
            "Failed to send notification",
            extra={"order_id": order_id, "status_label": status_label},
        )
        await store.db.rollback()
        return None

    logger.info(
        notification.message,
        extra={"order_id": order_id, "department": department.value},
    )
    return notification


# =====================================================
# LIST
# =====================================================
def _visible_to(user: User, notification: NotificationOut) -> bool:
    return user.is_admin or user.department in notification.for_departments


async def list_notifications(
    store: DocumentStore,
    user: User,
    *,
    unread_only: bool = False,
) -> NotificationListData:
    docs = await store.get(NOTIFICATIONS)
    items = [
        n for n in (NotificationOut.model_validate(d) for d in docs)
        if _visible_to(user, n) and not (unread_only and n.is_read)
    ]
    items.sort(key=lambda n: n.timestamp.timestamp() if n.timestamp else 0.0, reverse=True)

    return NotificationListData(
        total=len(items),
        unread=sum(1 for n in items if not n.is_read),
        items=items,
    )


# =====================================================
# MARK READ
# =====================================================
async def mark_notification_read(
    store: DocumentStore,
    notification_id: str,
    user: User,
) -> NotificationOut:
    doc = await store.get_one(NOTIFICATIONS, notification_id)
    if doc is None:
        raise AppException(404, "Notification not found", ErrorCode.NOT_FOUND)

    notification = NotificationOut.model_validate(doc)
    if not _visible_to(user, notification):
        raise AppException(404, "Notification not found", ErrorCode.NOT_FOUND)

    notification = notification.model_copy(update={"is_read": True})
    await store.set(NOTIFICATIONS, notification.id, notification.model_dump(mode="json"))
    return notification
