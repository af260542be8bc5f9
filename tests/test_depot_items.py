from decimal import Decimal

import pytest

from app.core.exceptions import InsufficientStock, SiteNotFound
from app.repositories.ledger_repo import DepotItemRepository
from app.schemas.ledger import AdjustStock, TransferStock
from app.services.depot_item_service import DepotItemService


@pytest.fixture
def setup(user, make_site, make_product):
    return user, make_site(user, name="A"), make_site(user, name="B"), make_product(user)


def _stock(db_session, owner, site, product):
    item = DepotItemRepository(db_session).get_by_key(owner.id, site.id, product.id)
    return item.stock if item else None


def test_adjust_in_and_out(db_session, setup, ctx):
    user, a, _, product = setup
    service = DepotItemService(db_session)

    service.adjust_stock(user.id, AdjustStock(depot_id=a.id, product_id=product.id, quantity=10, prix=Decimal("300")), ctx)
    item = service.adjust_stock(user.id, AdjustStock(depot_id=a.id, product_id=product.id, quantity=-4), ctx)

    assert item.stock == 6
    assert item.prix == Decimal("300")


def test_adjust_out_beyond_stock_is_rejected(db_session, setup, ctx):
    user, a, _, product = setup
    service = DepotItemService(db_session)
    service.adjust_stock(user.id, AdjustStock(depot_id=a.id, product_id=product.id, quantity=2), ctx)

    with pytest.raises(InsufficientStock) as exc:
        service.adjust_stock(user.id, AdjustStock(depot_id=a.id, product_id=product.id, quantity=-3), ctx)

    assert exc.value.detail == "Stock insuffisant pour cette sortie"
    assert _stock(db_session, user, a, product) == 2


def test_transfer_moves_exact_quantity_at_source_price(db_session, setup, ctx):
    user, a, b, product = setup
    service = DepotItemService(db_session)
    service.adjust_stock(user.id, AdjustStock(depot_id=a.id, product_id=product.id, quantity=10, prix=Decimal("120")), ctx)

    source, destination = service.transfer(
        user.id, TransferStock(from_site_id=a.id, to_site_id=b.id, product_id=product.id, quantity=4), ctx
    )

    assert source.stock == 6
    assert destination.stock == 4
    assert destination.prix == Decimal("120")


def test_failed_transfer_leaves_both_sides_unchanged(db_session, setup, ctx):
    user, a, b, product = setup
    service = DepotItemService(db_session)
    service.adjust_stock(user.id, AdjustStock(depot_id=a.id, product_id=product.id, quantity=5), ctx)

    with pytest.raises(SiteNotFound):
        service.transfer(
            user.id, TransferStock(from_site_id=a.id, to_site_id=9999, product_id=product.id, quantity=3), ctx
        )

    assert _stock(db_session, user, a, product) == 5
    assert _stock(db_session, user, b, product) is None


def test_transfer_more_than_available_is_rejected(db_session, setup, ctx):
    user, a, b, product = setup
    service = DepotItemService(db_session)
    service.adjust_stock(user.id, AdjustStock(depot_id=a.id, product_id=product.id, quantity=1), ctx)

    with pytest.raises(InsufficientStock):
        service.transfer(
            user.id, TransferStock(from_site_id=a.id, to_site_id=b.id, product_id=product.id, quantity=2), ctx
        )

    assert _stock(db_session, user, a, product) == 1


def test_transfer_schema_rejects_same_site():
    with pytest.raises(ValueError):
        TransferStock(from_site_id=1, to_site_id=1, product_id=1, quantity=1)


def test_inventory_by_site_api(client, db_session, setup, auth_headers, ctx):
    user, a, _, product = setup
    DepotItemService(db_session).adjust_stock(
        user.id, AdjustStock(depot_id=a.id, product_id=product.id, quantity=3), ctx
    )

    response = client.get(f"/api/v1/depot-items/site/{a.id}", headers=auth_headers(user))

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["data"][0]["stock"] == 3
    assert body["data"][0]["product"]["product_name"] == product.product_name


def test_transfer_api_message(client, db_session, setup, auth_headers, ctx):
    user, a, b, product = setup
    DepotItemService(db_session).adjust_stock(
        user.id, AdjustStock(depot_id=a.id, product_id=product.id, quantity=3), ctx
    )

    response = client.post(
        "/api/v1/depot-items/transfer",
        json={"from_site_id": a.id, "to_site_id": b.id, "product_id": product.id, "quantity": 2},
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Transfert inter-dépôts terminé"
    assert body["data"]["source"]["stock"] == 1
    assert body["data"]["destination"]["stock"] == 2
