import asyncio
import csv
from uuid import uuid4

import pytest
from sqlalchemy.exc import SQLAlchemyError

from orderflow.constants.department import Department
from orderflow.constants.error_codes import ErrorCode
from orderflow.constants.order_status import OrderStatus
from orderflow.core.db import AsyncSessionLocal
from orderflow.core.exceptions import AppException
from orderflow.schemas.orders.order_schemas import StatusChangeCreate
from orderflow.services.orders import order_mutators
from orderflow.services.orders.order_service import change_status, load_order, save_order
from orderflow.services.store.document_store import NOTIFICATIONS, DocumentStore

SALES = Department.SALES
DESIGN = Department.DESIGN
PREPRESS = Department.PREPRESS
PRODUCTION = Department.PRODUCTION


def _post(client, url, headers, json=None):
    return client.post(url, json=json if json is not None else {}, headers=headers)


# =====================================================
# HEALTH / AUTH
# =====================================================
def test_health_check(client):
    res = client.get("/")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"
    assert res.json()["store"] == "up"
    assert res.headers["X-Request-ID"]


def test_invalid_token_is_rejected(client):
    res = client.get("/orders", headers={"Authorization": "Bearer nonsense"})

    assert res.status_code == 401
    assert res.json()["error_code"] == "UNAUTHORIZED"


def test_current_user(client, headers_for):
    res = client.get("/users/me", headers=headers_for(DESIGN))

    assert res.status_code == 200
    assert res.json()["data"]["department"] == "Design"


def test_only_admins_manage_users(client, headers_for, admin_headers):
    payload = {"name": "X", "email": "x-dup@printshop.in", "department": "Sales"}

    assert client.post("/users", json=payload, headers=headers_for(SALES)).status_code == 403

    assert client.post("/users", json=payload, headers=admin_headers).status_code == 201
    duplicate = client.post("/users", json=payload, headers=admin_headers)
    assert duplicate.status_code == 400
    assert duplicate.json()["error_code"] == "USER_EMAIL_EXISTS"

    listed = client.get("/users", params={"department": "Sales"}, headers=admin_headers)
    assert listed.status_code == 200
    assert all(u["department"] == "Sales" for u in listed.json()["data"]["items"])


# =====================================================
# INTAKE / READ
# =====================================================
def test_create_order(create_api_order):
    order = create_api_order()

    assert order["status"] == "New"
    assert order["current_department"] == "Sales"
    assert order["payment_status"] == "Not Paid"
    assert float(order["pending_amount"]) == 1000
    assert len(order["status_history"]) == 1


def test_only_sales_creates_orders(client, headers_for):
    res = client.post(
        "/orders",
        json={"client_name": "X", "items": ["Y"], "amount": "10"},
        headers=headers_for(DESIGN),
    )

    assert res.status_code == 403
    assert res.json()["error_code"] == "PERMISSION_DENIED"


def test_invalid_payload_is_422(client, headers_for):
    res = client.post(
        "/orders",
        json={"client_name": "", "items": [], "amount": "-1"},
        headers=headers_for(SALES),
    )

    assert res.status_code == 422
    assert res.json()["error_code"] == "VALIDATION_ERROR"


def test_unknown_order_is_404(client, headers_for):
    res = client.get("/orders/does-not-exist", headers=headers_for(SALES))

    assert res.status_code == 404
    assert res.json()["error_code"] == "ORDER_NOT_FOUND"


def test_address_hidden_from_other_departments(client, headers_for, create_api_order):
    order = create_api_order()

    as_sales = client.get(f"/orders/{order['id']}", headers=headers_for(SALES)).json()["data"]
    as_design = client.get(f"/orders/{order['id']}", headers=headers_for(DESIGN)).json()["data"]

    assert as_sales["delivery_address"] == "12 MG Road, Pune"
    assert as_design["delivery_address"] is None
    assert as_design["contact_number"] is None


def test_list_orders_with_search(client, headers_for, create_api_order):
    order = create_api_order(client_name="Zebra Stationers Unique")

    res = client.get("/orders", params={"search": "zebra stationers"}, headers=headers_for(SALES))
    data = res.json()["data"]

    assert res.status_code == 200
    assert [o["id"] for o in data["items"]] == [order["id"]]
    assert data["total"] == 1


def test_allowed_statuses(client, headers_for, create_api_order):
    order = create_api_order()

    res = client.get(f"/orders/{order['id']}/allowed-statuses", headers=headers_for(SALES))
    assert res.json()["data"] == ["In Progress", "On Hold", "Completed", "Dispatched", "Issue"]

    res = client.get(f"/orders/{order['id']}/allowed-statuses", headers=headers_for(DESIGN))
    assert res.json()["data"] == []


# =====================================================
# PAYMENTS
# =====================================================
def test_payments(client, headers_for, create_api_order):
    order = create_api_order()
    url = f"/orders/{order['id']}/payments"

    first = _post(client, url, headers_for(SALES), {"amount": "400", "method": "Cash"})
    assert first.status_code == 200
    assert float(first.json()["data"]["pending_amount"]) == 600
    assert first.json()["data"]["payment_status"] == "Partially Paid"

    second = _post(client, url, headers_for(SALES), {"amount": "600", "method": "UPI"})
    assert float(second.json()["data"]["pending_amount"]) == 0
    assert second.json()["data"]["payment_status"] == "Paid"

    history = client.get(url, headers=headers_for(SALES)).json()["data"]
    assert history["total"] == 2
    assert float(history["total_paid"]) == 1000
    assert history["items"][0]["method"] == "UPI"


def test_bad_payments(client, headers_for, create_api_order):
    order = create_api_order()
    url = f"/orders/{order['id']}/payments"

    zero = _post(client, url, headers_for(SALES), {"amount": "0"})
    assert zero.status_code == 400
    assert zero.json()["error_code"] == "VALIDATION_ERROR"

    design = _post(client, url, headers_for(DESIGN), {"amount": "10"})
    assert design.status_code == 403

    unchanged = client.get(f"/orders/{order['id']}", headers=headers_for(SALES)).json()["data"]
    assert unchanged["payment_history"] == []


# =====================================================
# WORKFLOW
# =====================================================
def test_forward_through_every_department(client, headers_for, create_api_order):
    order = create_api_order()
    url = f"/orders/{order['id']}/forward"

    for owner, target in [(SALES, "Design"), (DESIGN, "Prepress"), (PREPRESS, "Production")]:
        res = _post(client, url, headers_for(owner), {"remarks": "Done here"})
        assert res.status_code == 200, res.text
        assert res.json()["data"]["current_department"] == target
        assert res.json()["data"]["status"] == "New"

    last = _post(client, url, headers_for(PRODUCTION))
    assert last.status_code == 409
    assert last.json()["error_code"] == "ORDER_TERMINAL_STAGE"


def test_only_owner_forwards(client, headers_for, create_api_order):
    order = create_api_order()

    res = _post(client, f"/orders/{order['id']}/forward", headers_for(DESIGN))
    assert res.status_code == 403


def test_status_update_and_version_check(client, headers_for, create_api_order):
    order = create_api_order()
    url = f"/orders/{order['id']}/status"

    stale = _post(client, url, headers_for(SALES), {"status": "On Hold", "version": 99})
    assert stale.status_code == 409
    assert stale.json()["error_code"] == "ORDER_VERSION_CONFLICT"

    res = _post(
        client, url, headers_for(SALES),
        {"status": "In Progress", "remarks": "Printing", "version": order["version"]},
    )
    data = res.json()["data"]
    assert res.status_code == 200
    assert data["status"] == "In Progress"
    assert data["version"] == order["version"] + 1
    assert data["status_history"][-1]["remarks"] == "Printing"


def test_unknown_status_is_422(client, headers_for, create_api_order):
    order = create_api_order()

    res = _post(client, f"/orders/{order['id']}/status", headers_for(SALES), {"status": "Teleported"})
    assert res.status_code == 422


def test_approval_flow(client, headers_for, create_api_order):
    order = create_api_order()
    _post(client, f"/orders/{order['id']}/forward", headers_for(SALES))

    requested = _post(
        client, f"/orders/{order['id']}/approval/request", headers_for(DESIGN),
        {"reason": "Please confirm the proof"},
    )
    assert requested.status_code == 200
    assert requested.json()["data"]["status"] == "Pending Approval"
    assert requested.json()["data"]["pending_approval_from"] == "Sales"

    answered = _post(
        client, f"/orders/{order['id']}/approval/respond", headers_for(SALES),
        {"approve": True, "remarks": "Approved by client"},
    )
    assert answered.status_code == 200
    assert answered.json()["data"]["status"] == "In Progress"
    assert answered.json()["data"]["pending_approval_from"] is None

    again = _post(
        client, f"/orders/{order['id']}/approval/respond", headers_for(SALES),
        {"approve": True, "remarks": "Twice"},
    )
    assert again.status_code == 403


def test_dispatch(client, headers_for, create_api_order):
    order = create_api_order()
    url = f"/orders/{order['id']}/dispatch"

    missing = _post(client, url, headers_for(PRODUCTION), {"address": "", "contact_number": "1"})
    assert missing.status_code == 400

    res = _post(
        client, url, headers_for(PRODUCTION),
        {"address": "5 Camp, Pune", "contact_number": "9988776655",
         "courier_partner": "Blue Dart", "delivery_type": "Express"},
    )
    data = res.json()["data"]
    assert res.status_code == 200
    assert data["status"] == "Dispatched"
    assert data["dispatch_details"]["courier_partner"] == "Blue Dart"


def test_lifecycle_actions(client, headers_for, create_api_order):
    order = create_api_order()

    archived = _post(client, f"/orders/{order['id']}/archive", headers_for(SALES))
    assert archived.status_code == 200
    assert archived.json()["data"]["status"] == "Archived"

    restored = _post(client, f"/orders/{order['id']}/restore", headers_for(SALES), {"remarks": "Back"})
    assert restored.json()["data"]["status"] == "In Progress"
    assert restored.json()["data"]["status_history"][-1]["status"] == "Restored"

    unknown = _post(client, f"/orders/{order['id']}/explode", headers_for(SALES))
    assert unknown.status_code == 422


def test_duplicate(client, headers_for, create_api_order):
    order = create_api_order()
    _post(client, f"/orders/{order['id']}/payments", headers_for(SALES), {"amount": "100"})

    res = _post(client, f"/orders/{order['id']}/duplicate", headers_for(SALES))
    copy = res.json()["data"]

    assert res.status_code == 201
    assert copy["id"] != order["id"]
    assert copy["payment_history"] == []
    assert float(copy["pending_amount"]) == 1000
    assert copy["status_history"][0]["remarks"] == f"Duplicated from order #{order['order_number']}"


# =====================================================
# TIMELINE / NOTIFICATIONS
# =====================================================
def test_timeline_export(client, headers_for, create_api_order):
    order = create_api_order()

    text = client.get(f"/orders/{order['id']}/timeline", headers=headers_for(SALES))
    assert text.status_code == 200
    assert text.text.startswith(f"ORDER TIMELINE: {order['order_number']}")

    pdf = client.get(
        f"/orders/{order['id']}/timeline", params={"format": "pdf"}, headers=headers_for(SALES)
    )
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.content.startswith(b"%PDF")


def test_forward_notifies_next_department(client, headers_for, create_api_order):
    order = create_api_order()
    _post(client, f"/orders/{order['id']}/forward", headers_for(SALES))

    res = client.get("/notifications", headers=headers_for(DESIGN))
    messages = [n["message"] for n in res.json()["data"]["items"]]

    assert f"Order #{order['order_number']} status changed to Forwarded to Design" in messages


# =====================================================
# REPORTS
# =====================================================
def test_reports_are_admin_only(client, headers_for, admin_headers, create_api_order):
    create_api_order()

    assert client.get("/reports/summary", headers=headers_for(SALES)).status_code == 403

    res = client.get("/reports/summary", headers=admin_headers)
    data = res.json()["data"]
    assert res.status_code == 200
    assert sum(data["status_counts"].values()) == data["financials"]["total_orders"]
    assert data["financials"]["total_orders"] >= 1
    assert len(data["monthly_revenue"]) >= 1


def test_recent_payments(client, headers_for, create_api_order):
    order = create_api_order()
    _post(client, f"/orders/{order['id']}/payments", headers_for(SALES), {"amount": "250"})

    res = client.get("/reports/recent-payments", headers=headers_for(SALES))
    rows = res.json()["data"]

    assert res.status_code == 200
    assert order["id"] in {r["order_id"] for r in rows}
    assert client.get("/reports/recent-payments", headers=headers_for(DESIGN)).status_code == 403


# =====================================================
# SPREADSHEETS
# =====================================================
HEADER = ["Order #", "Client", "Items", "Amount", "Paid", "Pending",
          "Created At", "Status", "Department", "Payment Status", "Sync ID"]


def _write_csv(path, rows):
    with open(path, "w", newline="") as fh:
        writer = csv.writer(fh)
        writer.writerow(HEADER)
        writer.writerows(rows)


def test_sheet_import_skips_known_rows(client, admin_headers, headers_for, sheet_dir):
    name = f"incoming-{uuid4().hex[:6]}.csv"
    _write_csv(sheet_dir / name, [
        ["SHEET-001", "Imported Client 1", "Item 1, Item 2", "15000", "10000",
         "5000", "", "New", "Sales", "Partially Paid", f"sync-{name}-1"],
        ["SHEET-002", "Imported Client 2", "Item 3", "8000", "8000",
         "0", "", "New", "Sales", "Paid", f"sync-{name}-2"],
        ["SHEET-003", "", "Item 4", "abc", "", "", "", "", "", "", f"sync-{name}-3"],
    ])

    assert _post(client, "/sheets/import", headers_for(SALES), {"path": name}).status_code == 403

    first = _post(client, "/sheets/import", admin_headers, {"path": name}).json()["data"]
    assert first["imported"] == 2
    assert len(first["errors"]) == 1
    assert first["errors"][0]["row"] == 4

    again = _post(client, "/sheets/import", admin_headers, {"path": name}).json()["data"]
    assert again["imported"] == 0


def test_sheet_import_reports_nan_amount(client, admin_headers, sheet_dir):
    name = f"nan-{uuid4().hex[:6]}.csv"
    _write_csv(sheet_dir / name, [
        ["SHEET-101", "Good Client", "Posters", "500", "0", "500",
         "", "New", "Sales", "Not Paid", f"sync-{name}-1"],
        ["SHEET-102", "Broken Client", "Flyers", "NaN", "0", "",
         "", "New", "Sales", "Not Paid", f"sync-{name}-2"],
    ])

    res = _post(client, "/sheets/import", admin_headers, {"path": name})
    data = res.json()["data"]

    assert res.status_code == 200
    assert data["imported"] == 1
    assert [e["row"] for e in data["errors"]] == [3]


def test_sheet_export(client, admin_headers, create_api_order, sheet_dir):
    create_api_order()
    name = f"export-{uuid4().hex[:6]}.xlsx"

    res = _post(client, "/sheets/export", admin_headers, {"path": name})

    assert res.status_code == 200
    assert res.json()["data"]["exported"] >= 1
    assert (sheet_dir / name).exists()

    # everything exported is already known
    reimport = _post(client, "/sheets/import", admin_headers, {"path": name}).json()["data"]
    assert reimport["imported"] == 0


def test_missing_sheet_is_404(client, admin_headers):
    res = _post(client, "/sheets/import", admin_headers, {"path": "nope.csv"})

    assert res.status_code == 404
    assert res.json()["error_code"] == "SHEET_NOT_FOUND"


@pytest.mark.parametrize("path", ["../outside.xlsx", "/etc/passwd.csv", "nested/../../up.csv"])
def test_sheet_paths_stay_in_sheet_dir(client, admin_headers, sheet_dir, path):
    exported = _post(client, "/sheets/export", admin_headers, {"path": path})
    imported = _post(client, "/sheets/import", admin_headers, {"path": path})

    assert exported.status_code == 403
    assert imported.status_code == 403
    assert not (sheet_dir.parent / "outside.xlsx").exists()


# =====================================================
# PRODUCTS / PRODUCTION / VERIFICATION
# =====================================================
def _to_production(client, headers_for, order):
    url = f"/orders/{order['id']}/forward"
    for owner in (SALES, DESIGN, PREPRESS):
        assert _post(client, url, headers_for(owner)).status_code == 200


def test_forward_without_body(client, headers_for, create_api_order):
    order = create_api_order()

    res = client.post(f"/orders/{order['id']}/forward", headers=headers_for(SALES))

    assert res.status_code == 200, res.text
    assert res.json()["data"]["current_department"] == "Design"
    assert res.json()["data"]["status_history"][-1]["remarks"] == ""


def test_verify_payment(client, headers_for, create_api_order):
    order = create_api_order()
    url = f"/orders/{order['id']}/payments/verify"

    assert _post(client, url, headers_for(DESIGN), {"amount": "100"}).status_code == 403

    partial = _post(client, url, headers_for(SALES), {"amount": "400", "full": False})
    assert partial.status_code == 200, partial.text
    assert partial.json()["data"]["status_history"][-1]["status"] == "Partial Payment Received"

    full = _post(client, url, headers_for(SALES), {"amount": "600", "method": "UPI"})
    data = full.json()["data"]
    assert data["status_history"][-1]["status"] == "Payment Verified"
    assert data["payment_status"] == "Paid"
    assert data["verified_by"] == "Sales Member"

    again = _post(client, url, headers_for(SALES), {"amount": "1"})
    assert again.status_code == 400


def test_update_product_status(client, headers_for, create_api_order):
    order = create_api_order()
    product = order["product_status"][0]
    url = f"/orders/{order['id']}/products/{product['id']}/status"

    assert len(order["product_status"]) == 2
    assert _post(client, url, headers_for(DESIGN), {"status": "completed"}).status_code == 403

    res = _post(client, url, headers_for(SALES), {"status": "completed", "remarks": "Printed"})
    data = res.json()["data"]
    assert res.status_code == 200, res.text
    assert data["product_status"][0]["status"] == "completed"
    assert data["product_status"][0]["assigned_department"] == "Sales"
    assert data["product_status"][1]["status"] == "processing"
    assert data["status_history"][-1]["selected_product"] == product["id"]

    missing = _post(
        client, f"/orders/{order['id']}/products/nope/status", headers_for(SALES),
        {"status": "completed"},
    )
    assert missing.status_code == 400


def test_production_stages(client, headers_for, create_api_order):
    order = create_api_order()
    url = f"/orders/{order['id']}/production-stages"

    assert _post(client, url, headers_for(PRODUCTION), {"stage": "Printing", "status": "completed"}).status_code == 403
    _to_production(client, headers_for, order)

    _post(client, url, headers_for(PRODUCTION), {"stage": "Printing", "status": "completed"})
    _post(client, url, headers_for(PRODUCTION), {"stage": "Cutting", "status": "processing"})

    progress = client.get(f"/orders/{order['id']}/production", headers=headers_for(SALES)).json()["data"]
    assert progress["completion"] == 50
    assert [s["stage"] for s in progress["stages"]] == ["Printing", "Cutting"]

    ready = {"stage": "Ready to Dispatch", "status": "completed", "timeline": "2024-04-01T10:00:00Z"}
    unpaid = _post(client, url, headers_for(PRODUCTION), ready)
    assert unpaid.status_code == 400

    _post(client, f"/orders/{order['id']}/payments", headers_for(SALES), {"amount": "1000"})
    res = _post(client, url, headers_for(PRODUCTION), ready)
    assert res.status_code == 200, res.text
    assert res.json()["data"]["status"] == "Ready to Dispatch"
    assert res.json()["data"]["expected_completion_date"].startswith("2024-04-01")


# =====================================================
# CONCURRENT WRITES
# =====================================================
async def _interleaved_status_changes(order_id, user):
    first_db, second_db = AsyncSessionLocal(), AsyncSessionLocal()
    try:
        first, second = DocumentStore(first_db), DocumentStore(second_db)

        # both requests read the order before either one writes
        seen_by_first = await load_order(first, order_id)
        seen_by_second = await load_order(second, order_id)

        moved, _ = order_mutators.advance_status(seen_by_first, OrderStatus.IN_PROGRESS, "", user)
        await save_order(first, moved, seen_by_first)

        held, _ = order_mutators.advance_status(seen_by_second, OrderStatus.ON_HOLD, "", user)
        with pytest.raises(AppException) as exc:
            await save_order(second, held, seen_by_second)
        return exc.value
    finally:
        await first_db.close()
        await second_db.close()


async def _simultaneous_status_changes(order_id, user):
    first_db, second_db = AsyncSessionLocal(), AsyncSessionLocal()
    try:
        return await asyncio.gather(
            change_status(
                DocumentStore(first_db), order_id,
                StatusChangeCreate(status=OrderStatus.IN_PROGRESS, version=1), user,
            ),
            change_status(
                DocumentStore(second_db), order_id,
                StatusChangeCreate(status=OrderStatus.ON_HOLD, version=1), user,
            ),
            return_exceptions=True,
        )
    finally:
        await first_db.close()
        await second_db.close()


def test_interleaved_writes_do_not_lose_history(client, headers_for, create_api_order, sales_user):
    order = create_api_order()

    error = asyncio.run(_interleaved_status_changes(order["id"], sales_user))

    assert error.status_code == 409
    assert error.error_code == ErrorCode.ORDER_VERSION_CONFLICT

    stored = client.get(f"/orders/{order['id']}", headers=headers_for(SALES)).json()["data"]
    assert stored["status"] == "In Progress"
    assert stored["version"] == 2
    assert [e["status"] for e in stored["status_history"]] == ["New", "In Progress"]


def test_simultaneous_requests_with_same_version(client, headers_for, create_api_order, sales_user):
    order = create_api_order()

    results = asyncio.run(_simultaneous_status_changes(order["id"], sales_user))

    saved = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, Exception)]
    assert len(saved) == 1
    assert len(rejected) == 1
    assert isinstance(rejected[0], AppException)
    assert rejected[0].status_code == 409

    stored = client.get(f"/orders/{order['id']}", headers=headers_for(SALES)).json()["data"]
    assert stored["version"] == 2
    assert [e["status"] for e in stored["status_history"]] == ["New", saved[0].status.value]


# =====================================================
# NOTIFICATION FAILURES
# =====================================================
def test_notification_failure_keeps_the_order_change(
    client, headers_for, create_api_order, monkeypatch
):
    order = create_api_order()
    original_set = DocumentStore.set

    async def set_without_notifications(self, collection, doc_id, data, **kwargs):
        if collection == NOTIFICATIONS:
            raise SQLAlchemyError("notifications table unavailable")
        return await original_set(self, collection, doc_id, data, **kwargs)

    monkeypatch.setattr(DocumentStore, "set", set_without_notifications)

    res = _post(client, f"/orders/{order['id']}/status", headers_for(SALES), {"status": "On Hold"})
    assert res.status_code == 200, res.text
    assert res.json()["data"]["status"] == "On Hold"

    monkeypatch.undo()
    stored = client.get(f"/orders/{order['id']}", headers=headers_for(SALES)).json()["data"]
    assert stored["status"] == "On Hold"
    assert len(stored["status_history"]) == 2


# =====================================================
# DELETE
# =====================================================
def test_delete_order(client, headers_for, admin_headers, create_api_order):
    order = create_api_order()

    assert client.delete(f"/orders/{order['id']}", headers=headers_for(SALES)).status_code == 403
    assert client.delete(f"/orders/{order['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/orders/{order['id']}", headers=admin_headers).status_code == 404


def test_bulk_delete(client, headers_for, admin_headers, create_api_order):
    order = create_api_order()

    assert client.delete("/orders", headers=headers_for(SALES)).status_code == 403

    res = client.delete("/orders", headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["deleted"] >= 1
    assert client.get("/orders", headers=admin_headers).json()["data"]["total"] == 0

    messages = [
        n["message"]
        for n in client.get("/notifications", headers=headers_for(SALES)).json()["data"]["items"]
    ]
    assert f"Order #{order['order_number']} status changed to Deleted" in messages
