from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.models.profile import UserRole
from app.services.stock.store import LedgerStore
from conftest import auth_header, make_profile, make_token

API = "/api/v1"


@pytest.fixture
def staff(db):
    make_profile(db, "admin-1", role=UserRole.ADMIN)
    make_profile(db, "clerk-1", role=UserRole.SIMPLE)
    return auth_header("admin-1"), auth_header("clerk-1")


def create_product(client, headers, quantity=0, min_stock=0, name="Pencil"):
    response = client.post(f"{API}/products/", headers=headers, json={
        "name": name,
        "unit": "un",
        "category": "Writing",
        "quantity": quantity,
        "min_stock": min_stock,
    })
    assert response.status_code == 201
    return response.json()


def product_quantity(client, headers, product_id):
    response = client.get(f"{API}/products/{product_id}", headers=headers)
    assert response.status_code == 200
    return response.json()["quantity"]


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "running"
    assert client.get("/health").json()["status"] == "healthy"


def test_requests_without_valid_token_are_unauthorized(client):
    assert client.get(f"{API}/products/").status_code == 401

    response = client.get(f"{API}/products/", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401

    expired = make_token("someone", expires_in=timedelta(minutes=-5))
    response = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401


def test_first_login_is_pending_until_activated(client, staff):
    """A new identity gets a pending profile and no pages"""
    admin_headers, _ = staff
    newcomer = auth_header("new-1", "new@school.test")

    response = client.get(f"{API}/auth/me", headers=newcomer)
    assert response.status_code == 200
    data = response.json()
    assert data["profile"]["role"] == "pending"
    assert data["profile"]["is_active"] is False
    assert data["pages"] == []

    response = client.get(f"{API}/products/", headers=newcomer)
    assert response.status_code == 403
    assert response.json()["code"] == "PERMISSION_DENIED"

    assert client.post(f"{API}/users/new-1/toggle-active", headers=admin_headers).status_code == 200
    response = client.put(f"{API}/users/new-1/role", headers=admin_headers, json={"role": "simple"})
    assert response.status_code == 200
    assert response.json()["role"] == "simple"

    assert client.get(f"{API}/products/", headers=newcomer).status_code == 200
    assert "user-management" not in client.get(f"{API}/auth/me", headers=newcomer).json()["pages"]


def test_entry_and_exit_flow(client, staff):
    admin_headers, clerk_headers = staff
    product = create_product(client, admin_headers, quantity=5)

    response = client.post(f"{API}/entries/", headers=clerk_headers, json={
        "product_id": product["id"], "quantity": 3, "date": "2024-03-01T10:00:00",
    })
    assert response.status_code == 201
    assert response.json()["employee_name"] == "clerk-1@school.test"
    assert product_quantity(client, clerk_headers, product["id"]) == 8

    response = client.post(f"{API}/exits/", headers=clerk_headers, json={
        "product_id": product["id"], "quantity": 2, "date": "2024-03-02T10:00:00",
    })
    assert response.status_code == 201
    assert product_quantity(client, clerk_headers, product["id"]) == 6

    entries = client.get(f"{API}/entries/", headers=clerk_headers, params={"product_id": product["id"]}).json()
    # Opening entry is dated today, after the 2024 entry
    assert [e["quantity"] for e in entries] == [5, 3]


def test_exit_larger_than_stock_is_a_conflict(client, staff):
    admin_headers, clerk_headers = staff
    product = create_product(client, admin_headers, quantity=5)

    response = client.post(f"{API}/exits/", headers=clerk_headers, json={
        "product_id": product["id"], "quantity": 6,
    })

    assert response.status_code == 409
    assert response.json()["code"] == "INSUFFICIENT_STOCK"
    assert product_quantity(client, clerk_headers, product["id"]) == 5


def test_invalid_quantity_and_unknown_product(client, staff):
    admin_headers, clerk_headers = staff
    product = create_product(client, admin_headers)

    response = client.post(f"{API}/entries/", headers=clerk_headers, json={"product_id": product["id"], "quantity": 0})
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"

    response = client.post(f"{API}/entries/", headers=clerk_headers, json={"product_id": "missing", "quantity": 1})
    assert response.status_code == 422

    response = client.get(f"{API}/products/missing", headers=clerk_headers)
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_only_admin_edits_and_deletes_movements(client, staff):
    admin_headers, clerk_headers = staff
    product = create_product(client, admin_headers, quantity=15)
    stock_exit = client.post(f"{API}/exits/", headers=clerk_headers, json={
        "product_id": product["id"], "quantity": 5,
    }).json()
    edit = {"product_id": product["id"], "quantity": 7, "date": "2024-03-05T12:00:00"}

    assert client.put(f"{API}/exits/{stock_exit['id']}", headers=clerk_headers, json=edit).status_code == 403
    assert client.delete(f"{API}/exits/{stock_exit['id']}", headers=clerk_headers).status_code == 403

    response = client.put(f"{API}/exits/{stock_exit['id']}", headers=admin_headers, json=edit)
    assert response.status_code == 200
    assert product_quantity(client, admin_headers, product["id"]) == 8

    edit["quantity"] = 20
    response = client.put(f"{API}/exits/{stock_exit['id']}", headers=admin_headers, json=edit)
    assert response.status_code == 409
    assert product_quantity(client, admin_headers, product["id"]) == 8


def test_delete_preview_then_delete(client, staff):
    admin_headers, _ = staff
    product = create_product(client, admin_headers, quantity=4)
    entry = client.post(f"{API}/entries/", headers=admin_headers, json={
        "product_id": product["id"], "quantity": 6,
    }).json()

    preview = client.get(f"{API}/entries/{entry['id']}/delete-preview", headers=admin_headers).json()
    assert preview["current_quantity"] == 10
    assert preview["resulting_quantity"] == 4
    assert preview["allowed"] is True
    assert product_quantity(client, admin_headers, product["id"]) == 10

    assert client.delete(f"{API}/entries/{entry['id']}", headers=admin_headers).status_code == 204
    assert product_quantity(client, admin_headers, product["id"]) == 4


def test_database_failure_is_service_unavailable(client, staff, monkeypatch):
    admin_headers, clerk_headers = staff
    product = create_product(client, admin_headers, quantity=5)

    def failing_write(self, entry):
        raise OperationalError("INSERT INTO entries", {}, Exception("database is locked"))

    monkeypatch.setattr(LedgerStore, "add_entry", failing_write)
    response = client.post(f"{API}/entries/", headers=clerk_headers, json={
        "product_id": product["id"], "quantity": 3,
    })

    assert response.status_code == 503
    assert response.json()["code"] == "STORE_ERROR"
    assert product_quantity(client, clerk_headers, product["id"]) == 5


def test_products_are_admin_managed(client, staff):
    admin_headers, clerk_headers = staff

    response = client.post(f"{API}/products/", headers=clerk_headers, json={
        "name": "Glue", "unit": "tube", "category": "Crafts",
    })
    assert response.status_code == 403

    product = create_product(client, admin_headers, quantity=3, name="Glue")
    response = client.put(f"{API}/products/{product['id']}", headers=admin_headers, json={"quantity": 1})
    assert response.status_code == 200
    assert response.json()["quantity"] == 1

    found = client.get(f"{API}/products/search/", headers=clerk_headers, params={"query": "gl"}).json()
    assert [p["name"] for p in found] == ["Glue"]

    assert client.delete(f"{API}/products/{product['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"{API}/products/", headers=admin_headers).json() == []


def test_low_stock_alerts(client, staff):
    admin_headers, clerk_headers = staff
    create_product(client, admin_headers, quantity=3, min_stock=5, name="Crayons")
    create_product(client, admin_headers, quantity=5, min_stock=5, name="Markers")
    create_product(client, admin_headers, quantity=6, min_stock=5, name="Scissors")

    alerts = client.get(f"{API}/alerts/low-stock", headers=clerk_headers).json()

    assert [(a["name"], a["shortage"]) for a in alerts] == [("Crayons", 2), ("Markers", 0)]


def test_movement_report_filters(client, staff):
    admin_headers, clerk_headers = staff
    product = create_product(client, admin_headers, name="Notebook")
    for quantity, moved_at in ((4, "2024-01-31T23:59:00"), (2, "2024-02-01T00:00:01")):
        client.post(f"{API}/entries/", headers=clerk_headers, json={
            "product_id": product["id"], "quantity": quantity, "date": moved_at,
        })
    client.post(f"{API}/exits/", headers=clerk_headers, json={
        "product_id": product["id"], "quantity": 1, "date": "2024-01-15T08:00:00",
    })

    response = client.get(f"{API}/reports/movements", headers=clerk_headers, params={
        "start_date": "2024-01-01", "end_date": "2024-01-31",
    })
    assert response.status_code == 200
    report = response.json()
    assert [(m["type"], m["quantity"]) for m in report] == [("entry", 4), ("exit", 1)]
    assert report[0]["product_name"] == "Notebook"

    only_exits = client.get(f"{API}/reports/movements", headers=clerk_headers, params={"type": "exit"}).json()
    assert [m["quantity"] for m in only_exits] == [1]

    summary = client.get(f"{API}/reports/summary", headers=clerk_headers).json()
    assert summary == [{
        "product_id": product["id"], "product_name": "Notebook", "total_in": 6, "total_out": 1, "net": 5,
    }]


def test_admin_cannot_lock_themselves_out(client, staff):
    admin_headers, _ = staff

    response = client.post(f"{API}/users/admin-1/toggle-active", headers=admin_headers)
    assert response.status_code == 403
    response = client.put(f"{API}/users/admin-1/role", headers=admin_headers, json={"role": "simple"})
    assert response.status_code == 403

    me = client.get(f"{API}/auth/me", headers=admin_headers).json()
    assert me["profile"]["role"] == "admin"
    assert me["profile"]["is_active"] is True


def test_user_list_is_admin_only(client, staff):
    admin_headers, clerk_headers = staff

    assert client.get(f"{API}/users/", headers=clerk_headers).status_code == 403
    users = client.get(f"{API}/users/", headers=admin_headers).json()
    assert {u["id"] for u in users} == {"admin-1", "clerk-1"}
