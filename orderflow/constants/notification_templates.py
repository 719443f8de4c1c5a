import enum


class NotificationType(str, enum.Enum):
    STATUS_UPDATE = "status_update"
    PAYMENT = "payment"
    ORDER = "order"


# type -> (title, message, category, priority)
NOTIFICATION_TEMPLATES = {
    NotificationType.STATUS_UPDATE: (
        "Order Status Update",
        "Order #{order_number} status changed to {status_label}",
        "status",
        "medium",
    ),
    NotificationType.PAYMENT: (
        "Payment Received",
        "Order #{order_number}: {status_label}",
        "payment",
        "medium",
    ),
    NotificationType.ORDER: (
        "Order Update",
        "Order #{order_number}: {status_label}",
        "order",
        "low",
    ),
}
