import pytest

from app.models.passif import PassifReason


@pytest.fixture
def setup(user, make_site, make_product):
    return user, make_site(user, name="S1"), make_site(user, name="S2"), make_product(user)


def _move(client, headers, kind, product, origin, destination, qty, prix="0"):
    return client.post(
        f"/api/v1/stock/{kind}",
        json={
            "product_id": product.id,
            "site_origine_id": origin.id,
            "site_destination_id": destination.id,
            "quantite": qty,
            "prix_unitaire": prix,
        },
        headers=headers,
    )


def test_deposit_withdraw_scenario(client, setup, auth_headers):
    user, s1, s2, product = setup
    headers = auth_headers(user)

    deposit = _move(client, headers, "deposit", product, s1, s2, 100)
    assert deposit.status_code == 201
    assert deposit.json()["message"] == "Opération de Depot effectuée sur le site S2"

    assets = client.get("/api/v1/stock/my-assets", headers=headers).json()
    assert assets["summary"] == [{"product_id": product.id, "product_name": product.product_name, "solde": 100}]

    withdraw = _move(client, headers, "withdraw", product, s2, s2, 100)
    assert withdraw.status_code == 201

    assets = client.get("/api/v1/stock/my-assets", headers=headers).json()
    assert assets["summary"][0]["solde"] == 0


def test_unvalidated_product_is_rejected(client, user, make_site, make_product, auth_headers):
    site = make_site(user)
    product = make_product(user, validated=False)

    response = _move(client, auth_headers(user), "deposit", product, site, site, 5)

    assert response.status_code == 400
    assert response.json()["message"] == "Produit non validé par l'admin."
    history = client.get("/api/v1/stock/history", headers=auth_headers(user)).json()
    assert history["total"] == 0


def test_withdraw_beyond_actif_is_rejected(client, setup, auth_headers):
    user, s1, _, product = setup

    response = _move(client, auth_headers(user), "withdraw", product, s1, s1, 1)

    assert response.status_code == 400
    assert response.json()["message"] == "Stock insuffisant pour cet ayant-droit."


def test_quantity_must_be_positive(client, setup, auth_headers):
    user, s1, s2, product = setup

    response = _move(client, auth_headers(user), "deposit", product, s1, s2, 0)

    assert response.status_code == 400


def test_site_views_and_ledger_endpoints(client, setup, auth_headers):
    user, s1, s2, product = setup
    headers = auth_headers(user)
    _move(client, headers, "deposit", product, s1, s1, 10)
    _move(client, headers, "withdraw", product, s1, s2, 4, prix="50")

    actifs = client.get(f"/api/v1/stock/site/{s1.id}/actifs", headers=headers).json()
    assert actifs["data"][0]["quantite"] == 6
    assert actifs["data"][0]["site"]["site_name"] == "S1"

    passifs = client.get(f"/api/v1/stock/site/{s1.id}/passifs", headers=headers).json()
    assert passifs["data"][0]["quantite"] == 4
    assert passifs["data"][0]["reason"] == PassifReason.RETRAIT.value

    my_passifs = client.get("/api/v1/stock/my-passifs", headers=headers).json()
    assert my_passifs["data"][0]["depart_de"] == "S1"
    assert my_passifs["data"][0]["arrivee"] == "S2"
    assert my_passifs["data"][0]["action"] == "-"

    actif_id = actifs["data"][0]["id"]
    assert client.get(f"/api/v1/actifs/{actif_id}", headers=headers).status_code == 200
    assert client.get("/api/v1/actifs/", headers=headers).json()["total"] == 1
    assert client.get("/api/v1/passifs/", headers=headers).json()["total"] == 1


def test_unknown_site_view_is_not_found(client, user, auth_headers):
    response = client.get("/api/v1/stock/site/9999/actifs", headers=auth_headers(user))

    assert response.status_code == 404
    assert response.json()["message"] == "Site non trouvé"


def test_foreign_actif_is_forbidden(client, setup, make_user, auth_headers):
    user, s1, _, product = setup
    _move(client, auth_headers(user), "deposit", product, s1, s1, 1)
    actif_id = client.get("/api/v1/actifs/", headers=auth_headers(user)).json()["data"][0]["id"]

    response = client.get(f"/api/v1/actifs/{actif_id}", headers=auth_headers(make_user()))

    assert response.status_code == 403


def test_all_passifs_requires_admin(client, user, admin, auth_headers):
    assert client.get("/api/v1/passifs/all", headers=auth_headers(user)).status_code == 403
    assert client.get("/api/v1/passifs/all", headers=auth_headers(admin)).status_code == 200


def test_delete_product_is_refused_once_stocked(client, setup, make_product, auth_headers):
    user, s1, s2, product = setup
    headers = auth_headers(user)
    _move(client, headers, "deposit", product, s1, s2, 100)

    refused = client.delete(f"/api/v1/products/{product.id}", headers=headers)
    assert refused.status_code == 409
    assert refused.json()["status"] == "error"
    assets = client.get("/api/v1/stock/my-assets", headers=headers).json()
    assert assets["summary"] == [{"product_id": product.id, "product_name": product.product_name, "solde": 100}]

    unused = make_product(user, name="Maïs")
    assert client.delete(f"/api/v1/products/{unused.id}", headers=headers).status_code == 200
    assert client.get(f"/api/v1/products/{unused.id}", headers=headers).status_code == 404
