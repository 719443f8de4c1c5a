# orderflow/constants/order_status.py
import enum


class OrderStatus(str, enum.Enum):
    NEW = "New"
    IN_PROGRESS = "In Progress"
    ON_HOLD = "On Hold"
    COMPLETED = "Completed"
    ISSUE = "Issue"

    # design / prepress
    WORKING_ON_IT = "Working on it"
    PENDING_FEEDBACK = "Pending Feedback from Sales Team"
    FORWARDED_TO_PREPRESS = "Forwarded to Prepress"
    WAITING_FOR_APPROVAL = "Waiting for approval"
    FORWARDED_TO_PRODUCTION = "Forwarded to production"

    # production / dispatch
    READY_TO_DISPATCH = "Ready to Dispatch"
    DISPATCHED = "Dispatched"

    # approvals
    PENDING_APPROVAL = "Pending Approval"

    # lifecycle
    CANCELLED = "Cancelled"
    ARCHIVED = "Archived"
    REJECTED = "Rejected"
