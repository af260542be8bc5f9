import pytest

from app.core.exceptions import InsufficientQuantity, ValidationError
from app.schemas.ledger import ActifQuery
from app.services.actif_service import ActifService


@pytest.fixture
def setup(user, make_site, make_product):
    return user, make_site(user), make_product(user)


def test_add_or_increase_creates_then_accumulates(db_session, setup):
    user, site, product = setup
    service = ActifService(db_session)

    first = service.add_or_increase(user.id, site.id, product.id, 10)
    second = service.add_or_increase(user.id, site.id, product.id, 5)
    db_session.commit()

    assert first.id == second.id
    assert second.quantite == 15
    assert second.is_active is True


def test_decrease_partial_keeps_row_active(db_session, setup):
    user, site, product = setup
    service = ActifService(db_session)
    service.add_or_increase(user.id, site.id, product.id, 10)

    actif = service.decrease(user.id, site.id, product.id, 4)

    assert actif.quantite == 6
    assert actif.is_active is True
    assert actif.archived_at is None


def test_decrease_to_zero_archives_row(db_session, setup):
    user, site, product = setup
    service = ActifService(db_session)
    service.add_or_increase(user.id, site.id, product.id, 7)

    actif = service.decrease(user.id, site.id, product.id, 7)

    assert actif.quantite == 0
    assert actif.is_active is False
    assert actif.archived_at is not None


def test_increase_reactivates_archived_row(db_session, setup):
    user, site, product = setup
    service = ActifService(db_session)
    service.add_or_increase(user.id, site.id, product.id, 3)
    service.decrease(user.id, site.id, product.id, 3)

    actif = service.add_or_increase(user.id, site.id, product.id, 2)

    assert actif.quantite == 2
    assert actif.is_active is True
    assert actif.archived_at is None


def test_decrease_more_than_held_is_rejected(db_session, setup):
    user, site, product = setup
    service = ActifService(db_session)
    service.add_or_increase(user.id, site.id, product.id, 2)

    with pytest.raises(InsufficientQuantity) as exc:
        service.decrease(user.id, site.id, product.id, 3)

    assert exc.value.status_code == 400
    assert exc.value.detail == "Stock insuffisant pour cet ayant-droit."


def test_decrease_without_row_is_rejected(db_session, setup):
    user, site, product = setup

    with pytest.raises(InsufficientQuantity):
        ActifService(db_session).decrease(user.id, site.id, product.id, 1)


def test_non_positive_quantity_is_rejected(db_session, setup):
    user, site, product = setup

    with pytest.raises(ValidationError):
        ActifService(db_session).add_or_increase(user.id, site.id, product.id, 0)


def test_list_excludes_archived_unless_requested(db_session, setup, make_product):
    user, site, product = setup
    other = make_product(user, name="Maïs")
    service = ActifService(db_session)
    service.add_or_increase(user.id, site.id, product.id, 1)
    service.add_or_increase(user.id, site.id, other.id, 1)
    service.decrease(user.id, site.id, other.id, 1)
    db_session.commit()

    items, total = service.list_by_user(user.id, ActifQuery())
    assert total == 1
    assert items[0].product_id == product.id

    _, total_all = service.list_by_user(user.id, ActifQuery(include_archived=True))
    assert total_all == 2


def test_list_search_matches_product_name(db_session, setup, make_product):
    user, site, product = setup
    other = make_product(user, name="Vanille")
    service = ActifService(db_session)
    service.add_or_increase(user.id, site.id, product.id, 1)
    service.add_or_increase(user.id, site.id, other.id, 1)
    db_session.commit()

    items, total = service.list_by_user_and_site(user.id, site.id, ActifQuery(search="vani"))

    assert total == 1
    assert items[0].product.product_name == "Vanille"
