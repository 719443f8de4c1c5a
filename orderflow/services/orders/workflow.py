"""
Department workflow table.

Orders move forward through a fixed linear sequence of departments.
Admin is a cross-cutting department, not a stage, so it has no successor.
"""
from typing import Optional

from orderflow.constants.department import Department
from orderflow.constants.order_status import OrderStatus
from orderflow.core.exceptions import InvalidArgument


WORKFLOW: tuple[Department, ...] = (
    Department.SALES,
    Department.DESIGN,
    Department.PREPRESS,
    Department.PRODUCTION,
)

GENERIC_STATUSES: tuple[OrderStatus, ...] = (
    OrderStatus.IN_PROGRESS,
    OrderStatus.ON_HOLD,
    OrderStatus.COMPLETED,
    OrderStatus.ISSUE,
)

ALLOWED_STATUSES: dict[Department, tuple[OrderStatus, ...]] = {
    Department.SALES: (
        OrderStatus.IN_PROGRESS,
        OrderStatus.ON_HOLD,
        OrderStatus.COMPLETED,
        OrderStatus.DISPATCHED,
        OrderStatus.ISSUE,
    ),
    Department.DESIGN: (
        OrderStatus.WORKING_ON_IT,
        OrderStatus.PENDING_FEEDBACK,
        OrderStatus.FORWARDED_TO_PREPRESS,
    ),
    Department.PREPRESS: (
        OrderStatus.WAITING_FOR_APPROVAL,
        OrderStatus.WORKING_ON_IT,
        OrderStatus.FORWARDED_TO_PRODUCTION,
    ),
    Department.PRODUCTION: (
        OrderStatus.IN_PROGRESS,
        OrderStatus.ON_HOLD,
        OrderStatus.READY_TO_DISPATCH,
        OrderStatus.COMPLETED,
        OrderStatus.ISSUE,
    ),
    Department.ADMIN: GENERIC_STATUSES,
}


def as_department(value) -> Department:
    if isinstance(value, Department):
        return value
    try:
        return Department(value)
    except ValueError:
        raise InvalidArgument(f"Unknown department: {value!r}")


def as_status(value) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidArgument(f"Unknown order status: {value!r}")


def next_department(current) -> Optional[Department]:
    department = as_department(current)
    if department not in WORKFLOW:
        raise InvalidArgument(f"{department.value} is not a workflow stage")

    index = WORKFLOW.index(department)
    if index == len(WORKFLOW) - 1:
        return None
    return WORKFLOW[index + 1]


def is_final_stage(department) -> bool:
    return next_department(department) is None


def allowed_statuses(department) -> tuple[OrderStatus, ...]:
    return ALLOWED_STATUSES[as_department(department)]
