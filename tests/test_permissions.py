import pytest

from orderflow.constants.department import Department
from orderflow.services.orders import order_mutators
from orderflow.utils.permissions import (
    Capability,
    can,
    can_dispatch,
    can_edit_order,
    can_forward,
    can_record_payment,
    can_request_approval,
    can_respond_to_approval,
    can_view_address_details,
    can_view_reports,
)


@pytest.fixture
def order(sales_user):
    return order_mutators.create_order(
        "Kulkarni & Sons", ["Brochures x1000"], 5000, sales_user,
        delivery_address="4 FC Road, Pune",
    )


def _in(order, department):
    return order.model_copy(update={"current_department": department})


def test_no_user_can_do_nothing(order):
    for capability in Capability:
        assert can(None, capability, order) is False


def test_admin_can_do_everything(admin_user, order):
    for capability in Capability:
        assert can(admin_user, capability, order) is True


def test_address_visibility(make_user, order):
    design = make_user(Department.DESIGN)
    production = make_user(Department.PRODUCTION)

    assert can_view_address_details(make_user(Department.SALES), order)
    assert can_view_address_details(production, order)
    assert not can_view_address_details(design, order)
    assert can_view_address_details(design, _in(order, Department.DESIGN))


def test_edit_and_forward(make_user, order):
    sales = make_user(Department.SALES)
    prepress = make_user(Department.PREPRESS)
    in_prepress = _in(order, Department.PREPRESS)

    assert can_edit_order(sales, in_prepress)
    assert can_edit_order(prepress, in_prepress)
    assert not can_edit_order(prepress, order)

    assert can_forward(prepress, in_prepress)
    assert not can_forward(sales, in_prepress)


def test_payments_are_for_sales(make_user, order):
    assert can_record_payment(make_user(Department.SALES), order)
    assert not can_record_payment(make_user(Department.DESIGN), order)
    assert not can_record_payment(make_user(Department.PRODUCTION), order)


def test_approval_request_needs_design_or_prepress_owner(make_user, order):
    design = make_user(Department.DESIGN)
    sales = make_user(Department.SALES)

    assert can_request_approval(design, _in(order, Department.DESIGN))
    assert not can_request_approval(design, _in(order, Department.PREPRESS))
    assert not can_request_approval(sales, order)


def test_approval_response_needs_pending_sales_approval(make_user, order):
    sales = make_user(Department.SALES)
    pending = order.model_copy(update={"pending_approval_from": Department.SALES})

    assert not can_respond_to_approval(sales, order)
    assert can_respond_to_approval(sales, pending)
    assert not can_respond_to_approval(make_user(Department.DESIGN), pending)


def test_dispatch_and_admin_only_capabilities(make_user, order):
    sales = make_user(Department.SALES)
    production = make_user(Department.PRODUCTION)

    assert can_dispatch(sales, order)
    assert can_dispatch(production, order)
    assert not can_dispatch(make_user(Department.DESIGN), order)

    assert not can_view_reports(sales)
    assert not can(sales, Capability.DELETE_ORDER, order)
    assert can(sales, Capability.CREATE_ORDER)
    assert not can(production, Capability.CREATE_ORDER)


def test_production_stages_need_production_owner(make_user, order):
    production = make_user(Department.PRODUCTION)
    in_production = _in(order, Department.PRODUCTION)

    assert can(production, Capability.UPDATE_PRODUCTION, in_production)
    assert not can(production, Capability.UPDATE_PRODUCTION, order)
    assert not can(make_user(Department.SALES), Capability.UPDATE_PRODUCTION, in_production)


def test_payment_verification_is_for_sales(make_user, order):
    assert can(make_user(Department.SALES), Capability.VERIFY_PAYMENT, order)
    assert not can(make_user(Department.PREPRESS), Capability.VERIFY_PAYMENT, order)
