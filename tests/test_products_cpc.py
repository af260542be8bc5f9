from sqlalchemy import select

from app.models.cpc import CpcProduct
from app.models.job import JobQueue
from app.models.notification import Notification

PRODUCT = {"code_cpc": "01111", "product_name": "Blé", "prix_unitaire": "1200.50"}


def test_admin_creates_cpc_and_duplicate_conflicts(client, admin, auth_headers):
    payload = {"code": "0112", "nom": "Maïs", "niveau": 4, "parent_code": "011"}

    created = client.post("/api/v1/cpc/", json=payload, headers=auth_headers(admin))
    assert created.status_code == 201
    assert created.json()["data"]["code"] == "0112"

    duplicate = client.post("/api/v1/cpc/", json=payload, headers=auth_headers(admin))
    assert duplicate.status_code == 409


def test_cpc_creation_requires_admin(client, user, auth_headers):
    response = client.post(
        "/api/v1/cpc/", json={"code": "0112", "nom": "Maïs", "niveau": 4}, headers=auth_headers(user)
    )

    assert response.status_code == 403


def test_cpc_bulk_upserts_and_children(client, db_session, admin, cpc, auth_headers):
    response = client.post(
        "/api/v1/cpc/bulk",
        json=[
            {"code": "01111", "nom": "Blé dur (révisé)", "niveau": 5, "parent_code": "0111"},
            {"code": "01112", "nom": "Blé tendre", "niveau": 5, "parent_code": "0111"},
        ],
        headers=auth_headers(admin),
    )

    assert response.json()["data"] == {"created": 1, "updated": 1}
    db_session.expire_all()
    assert db_session.scalar(select(CpcProduct.nom).where(CpcProduct.code == "01111")) == "Blé dur (révisé)"

    children = client.get("/api/v1/cpc/0111/children", headers=auth_headers(admin))
    assert sorted(c["code"] for c in children.json()["data"]) == ["01111", "01112"]

    options = client.get("/api/v1/cpc/select", headers=auth_headers(admin))
    assert {"code": "01112", "nom": "Blé tendre"} in options.json()["data"]


def test_cpc_code_must_be_numeric(client, admin, auth_headers):
    response = client.post(
        "/api/v1/cpc/", json={"code": "A12", "nom": "X", "niveau": 1}, headers=auth_headers(admin)
    )

    assert response.status_code == 400


def test_product_creation_is_pending_and_alerts_admins(client, db_session, user, cpc, auth_headers):
    response = client.post("/api/v1/products/", json=PRODUCT, headers=auth_headers(user))

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["product_validation"] is False
    assert data["is_stocker"] is False
    assert data["owner_id"] == user.id
    job = db_session.scalar(select(JobQueue).where(JobQueue.kind == "notification.admins"))
    assert job.payload["type"] == "ADMIN_ALERT"
    assert job.payload["data"] == {"product_id": data["id"]}


def test_product_with_unknown_cpc_is_rejected(client, user, auth_headers):
    response = client.post("/api/v1/products/", json=PRODUCT, headers=auth_headers(user))

    assert response.status_code == 404


def test_same_owner_cannot_duplicate_product(client, user, make_user, cpc, auth_headers):
    assert client.post("/api/v1/products/", json=PRODUCT, headers=auth_headers(user)).status_code == 201

    again = client.post("/api/v1/products/", json={**PRODUCT, "product_name": "blé"}, headers=auth_headers(user))
    assert again.status_code == 409

    other = make_user()
    assert client.post("/api/v1/products/", json=PRODUCT, headers=auth_headers(other)).status_code == 201


def test_admin_toggles_validation_and_owner_is_notified(client, db_session, user, admin, make_product, auth_headers):
    product = make_product(user, validated=False)

    response = client.patch(f"/api/v1/products/{product.id}/validation", headers=auth_headers(admin))

    assert response.json()["data"]["product_validation"] is True
    notification = db_session.scalar(select(Notification).where(Notification.user_id == user.id))
    assert notification.title == "Validation produit"


def test_only_owner_updates_product(client, user, make_user, make_product, auth_headers):
    product = make_product(user)
    stranger = make_user()

    denied = client.patch(
        f"/api/v1/products/{product.id}", json={"product_name": "Autre"}, headers=auth_headers(stranger)
    )
    assert denied.status_code == 403

    updated = client.patch(
        f"/api/v1/products/{product.id}", json={"product_name": "Riz rouge"}, headers=auth_headers(user)
    )
    assert updated.json()["data"]["product_name"] == "Riz rouge"


def test_toggle_stock_flag(client, user, make_product, auth_headers):
    product = make_product(user)

    response = client.patch(f"/api/v1/products/{product.id}/stock", headers=auth_headers(user))

    assert response.json()["data"]["is_stocker"] is True


def test_list_my_products_filters(client, user, make_user, make_product, auth_headers):
    make_product(user, name="Riz")
    make_product(user, name="Vanille", validated=False)
    make_product(make_user(), name="Café")

    response = client.get(
        "/api/v1/products/me", params={"product_validation": False}, headers=auth_headers(user)
    )

    body = response.json()
    assert body["total"] == 1
    assert body["data"][0]["product_name"] == "Vanille"
