from pydantic import BaseModel
from typing import List, Optional

from orderflow.constants.department import Department
from orderflow.constants.notification_templates import NotificationType
from orderflow.utils.dates import LenientDatetime


class NotificationOut(BaseModel):
    id: str
    title: str
    message: str
    timestamp: LenientDatetime = None
    is_read: bool = False
    type: NotificationType
    order_id: Optional[str] = None
    for_departments: List[Department]
    priority: str = "medium"
    category: str = "status"


class NotificationListData(BaseModel):
    total: int
    unread: int
    items: List[NotificationOut]
