"""
Capability checks for a user acting on an order.

Each capability is decided by one rule in CAPABILITY_RULES. Admins pass
every rule; an absent user fails every rule.
"""
import enum
from typing import Callable, Optional

from orderflow.constants.department import Department
from orderflow.schemas.orders.order_schemas import Order, User


class Capability(str, enum.Enum):
    VIEW_ADDRESS = "view_address_details"
    EDIT_ORDER = "edit_order"
    UPDATE_STATUS = "update_order_status"
    UPDATE_PRODUCTION = "update_production_stages"
    FORWARD = "forward_to_department"
    RECORD_PAYMENT = "record_payment"
    VERIFY_PAYMENT = "verify_payment"
    REQUEST_APPROVAL = "request_approval"
    RESPOND_APPROVAL = "provide_approval"
    DISPATCH = "dispatch_orders"
    CREATE_ORDER = "create_orders"
    DUPLICATE_ORDER = "duplicate_orders"
    DELETE_ORDER = "delete_orders"
    VIEW_REPORTS = "view_reports"
    MANAGE_USERS = "manage_users"
    SYNC_SHEETS = "sync_sheets"


Rule = Callable[[User, Optional[Order]], bool]


def _in_departments(*departments: Department) -> Rule:
    allowed = set(departments)
    return lambda user, order: user.department in allowed


def _owns_order(user: User, order: Optional[Order]) -> bool:
    return order is not None and user.department == order.current_department


def _sales_or_owner(user: User, order: Optional[Order]) -> bool:
    return user.department == Department.SALES or _owns_order(user, order)


def _view_address(user: User, order: Optional[Order]) -> bool:
    return (
        user.department in {Department.SALES, Department.PRODUCTION, Department.ADMIN}
        or _owns_order(user, order)
    )


def _production_owner(user: User, order: Optional[Order]) -> bool:
    return user.department == Department.PRODUCTION and _owns_order(user, order)


def _request_approval(user: User, order: Optional[Order]) -> bool:
    return (
        user.department in {Department.DESIGN, Department.PREPRESS}
        and _owns_order(user, order)
    )


def _respond_approval(user: User, order: Optional[Order]) -> bool:
    return (
        order is not None
        and order.pending_approval_from == Department.SALES
        and user.department == Department.SALES
    )


def _admin_only(user: User, order: Optional[Order]) -> bool:
    return False


CAPABILITY_RULES: dict[Capability, Rule] = {
    Capability.VIEW_ADDRESS: _view_address,
    Capability.EDIT_ORDER: _sales_or_owner,
    Capability.UPDATE_STATUS: _sales_or_owner,
    Capability.UPDATE_PRODUCTION: _production_owner,
    Capability.FORWARD: _owns_order,
    Capability.RECORD_PAYMENT: _in_departments(Department.SALES, Department.ADMIN),
    Capability.VERIFY_PAYMENT: _in_departments(Department.SALES, Department.ADMIN),
    Capability.REQUEST_APPROVAL: _request_approval,
    Capability.RESPOND_APPROVAL: _respond_approval,
    Capability.DISPATCH: _in_departments(Department.SALES, Department.PRODUCTION),
    Capability.CREATE_ORDER: _in_departments(Department.SALES),
    Capability.DUPLICATE_ORDER: _in_departments(Department.SALES),
    Capability.DELETE_ORDER: _admin_only,
    Capability.VIEW_REPORTS: _admin_only,
    Capability.MANAGE_USERS: _admin_only,
    Capability.SYNC_SHEETS: _admin_only,
}


def can(user: Optional[User], capability: Capability, order: Optional[Order] = None) -> bool:
    if user is None:
        return False
    if user.is_admin:
        return True
    return bool(CAPABILITY_RULES[capability](user, order))


# ---------------------------------------------------------------------------
# Named shortcuts
# ---------------------------------------------------------------------------
def can_view_address_details(user: Optional[User], order: Order) -> bool:
    return can(user, Capability.VIEW_ADDRESS, order)


def can_edit_order(user: Optional[User], order: Order) -> bool:
    return can(user, Capability.EDIT_ORDER, order)


def can_forward(user: Optional[User], order: Order) -> bool:
    return can(user, Capability.FORWARD, order)


def can_record_payment(user: Optional[User], order: Optional[Order] = None) -> bool:
    return can(user, Capability.RECORD_PAYMENT, order)


def can_request_approval(user: Optional[User], order: Order) -> bool:
    return can(user, Capability.REQUEST_APPROVAL, order)


def can_respond_to_approval(user: Optional[User], order: Order) -> bool:
    return can(user, Capability.RESPOND_APPROVAL, order)


def can_dispatch(user: Optional[User], order: Optional[Order] = None) -> bool:
    return can(user, Capability.DISPATCH, order)


def can_view_reports(user: Optional[User]) -> bool:
    return can(user, Capability.VIEW_REPORTS)
