from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.core.exceptions import (
    ConflictError, InsufficientQuantity, NotFoundError, ProductNotValidated, SiteNotFound, ValidationError
)
from app.models.actif import Actif
from app.models.audit_log import AuditLog, AuditAction, EntityType
from app.models.job import JobQueue
from app.models.notification import Notification
from app.models.stock_movement import StockMovement, MovementType
from app.repositories.ledger_repo import ActifRepository
from app.schemas.ledger import MovementCreate, MovementQuery
from app.services.product_service import ProductService
from app.services.stock_service import StockService


def _dto(product, origin, destination, qty, prix="0"):
    return MovementCreate(
        product_id=product.id,
        site_origine_id=origin.id,
        site_destination_id=destination.id,
        quantite=qty,
        prix_unitaire=Decimal(prix),
    )


def _balance(summary, product):
    return {line.product_id: line.solde for line in summary}.get(product.id, 0)


@pytest.fixture
def sites(user, make_site):
    return make_site(user, name="S1"), make_site(user, name="S2")


def test_deposit_then_withdraw_returns_balance_to_zero(db_session, user, sites, make_product, ctx):
    s1, s2 = sites
    product = make_product(user)
    service = StockService(db_session)

    service.create_movement(_dto(product, s1, s2, 100), user.id, MovementType.DEPOT, ctx)
    _, _, summary = service.get_my_assets(user.id, MovementQuery())
    assert _balance(summary, product) == 100

    service.create_movement(_dto(product, s2, s2, 100), user.id, MovementType.RETRAIT, ctx)
    _, _, summary = service.get_my_assets(user.id, MovementQuery())
    assert _balance(summary, product) == 0


def test_deposit_credits_destination_and_flags_product(db_session, user, sites, make_product, ctx):
    s1, s2 = sites
    product = make_product(user)

    movement = StockService(db_session).create_movement(
        _dto(product, s1, s2, 12), user.id, MovementType.DEPOT, ctx
    )

    actif = ActifRepository(db_session).get_by_key(user.id, s2.id, product.id)
    assert actif.quantite == 12
    assert ActifRepository(db_session).get_by_key(user.id, s1.id, product.id) is None
    db_session.refresh(product)
    assert product.is_stocker is True
    assert movement.depot_origine == "S1"
    assert movement.depot_destination == "S2"


def test_deposit_of_unvalidated_product_writes_nothing(db_session, user, sites, make_product, ctx):
    s1, s2 = sites
    product = make_product(user, validated=False)

    with pytest.raises(ProductNotValidated) as exc:
        StockService(db_session).create_movement(_dto(product, s1, s2, 5), user.id, MovementType.DEPOT, ctx)

    assert exc.value.detail == "Produit non validé par l'admin."
    assert db_session.scalar(select(func.count()).select_from(StockMovement)) == 0
    assert db_session.scalar(select(func.count()).select_from(Actif)) == 0
    assert db_session.scalar(select(func.count()).select_from(AuditLog)) == 0


def test_unknown_product_and_site(db_session, user, sites, make_product, ctx):
    s1, s2 = sites
    product = make_product(user)
    service = StockService(db_session)

    dto = _dto(product, s1, s2, 1)
    dto.product_id = 9999
    with pytest.raises(NotFoundError):
        service.create_movement(dto, user.id, MovementType.DEPOT, ctx)

    dto = _dto(product, s1, s2, 1)
    dto.site_destination_id = 9999
    with pytest.raises(SiteNotFound):
        service.create_movement(dto, user.id, MovementType.DEPOT, ctx)


def test_failed_withdraw_rolls_back_movement(db_session, user, sites, make_product, ctx):
    s1, s2 = sites
    product = make_product(user)
    service = StockService(db_session)
    service.create_movement(_dto(product, s1, s2, 5), user.id, MovementType.DEPOT, ctx)

    with pytest.raises(InsufficientQuantity):
        service.create_movement(_dto(product, s2, s2, 6), user.id, MovementType.RETRAIT, ctx)

    assert db_session.scalar(select(func.count()).select_from(StockMovement)) == 1
    assert ActifRepository(db_session).get_by_key(user.id, s2.id, product.id).quantite == 5


def test_withdraw_opens_passif_at_origin(db_session, user, sites, make_product, ctx):
    s1, s2 = sites
    product = make_product(user)
    service = StockService(db_session)
    service.create_movement(_dto(product, s1, s2, 10), user.id, MovementType.DEPOT, ctx)

    service.create_movement(_dto(product, s2, s1, 4, prix="250"), user.id, MovementType.RETRAIT, ctx)

    views, total, summary = service.get_my_passifs(user.id, MovementQuery())
    assert total == 1
    assert views[0].montant == Decimal("1000")
    assert views[0].depart_de == "S2"
    assert _balance(summary, product) == 4 - 10

    passif = service.passifs.repo.get_by_key(user.id, s2.id, product.id, user.id)
    assert passif.quantite == 4
    assert passif.prix_unitaire == Decimal("250")


def test_transfer_moves_actif_between_sites(db_session, user, sites, make_product, ctx):
    s1, s2 = sites
    product = make_product(user)
    service = StockService(db_session)
    service.create_movement(_dto(product, s1, s1, 10), user.id, MovementType.DEPOT, ctx)

    service.create_movement(_dto(product, s1, s2, 3), user.id, MovementType.TRANSFERT, ctx)

    repo = ActifRepository(db_session)
    assert repo.get_by_key(user.id, s1.id, product.id).quantite == 7
    assert repo.get_by_key(user.id, s2.id, product.id).quantite == 3


def test_transfer_to_same_site_is_rejected(db_session, user, sites, make_product, ctx):
    s1, _ = sites
    product = make_product(user)

    with pytest.raises(ValidationError):
        StockService(db_session).create_movement(_dto(product, s1, s1, 1), user.id, MovementType.TRANSFERT, ctx)


def test_settlement_reduces_open_passifs(db_session, user, sites, make_product, ctx):
    s1, s2 = sites
    product = make_product(user)
    service = StockService(db_session)
    service.create_movement(_dto(product, s1, s1, 10), user.id, MovementType.DEPOT, ctx)
    service.create_movement(_dto(product, s1, s2, 6), user.id, MovementType.RETRAIT, ctx)

    service.create_movement(_dto(product, s1, s2, 6), user.id, MovementType.VIREMENT, ctx)

    passif = service.passifs.repo.get_by_key(user.id, s1.id, product.id, user.id)
    assert passif.quantite == 0
    assert passif.is_active is False


def test_summary_ignores_list_filters(db_session, user, sites, make_product, ctx):
    s1, s2 = sites
    product = make_product(user)
    service = StockService(db_session)
    service.create_movement(_dto(product, s1, s2, 30), user.id, MovementType.DEPOT, ctx)
    service.create_movement(_dto(product, s1, s1, 20), user.id, MovementType.DEPOT, ctx)
    service.create_movement(_dto(product, s2, s2, 5), user.id, MovementType.RETRAIT, ctx)

    future = datetime.utcnow() + timedelta(days=1)
    items, total, summary = service.get_my_assets(
        user.id, MovementQuery(site_id=s2.id, start_date=future)
    )

    assert total == 0
    assert items == []
    assert _balance(summary, product) == 45


def test_history_lists_all_types_newest_first(db_session, user, sites, make_product, ctx):
    s1, s2 = sites
    product = make_product(user)
    service = StockService(db_session)
    service.create_movement(_dto(product, s1, s2, 10), user.id, MovementType.DEPOT, ctx)
    service.create_movement(_dto(product, s2, s2, 2), user.id, MovementType.RETRAIT, ctx)

    items, total = service.get_history(user.id, MovementQuery())

    assert total == 2
    assert [m.type for m in items] == [MovementType.RETRAIT, MovementType.DEPOT]


def test_movement_is_audited_and_notified(db_session, user, sites, make_product, ctx):
    s1, s2 = sites
    product = make_product(user)

    movement = StockService(db_session).create_movement(
        _dto(product, s1, s2, 1), user.id, MovementType.DEPOT, ctx
    )

    audit = db_session.scalar(select(AuditLog).where(AuditLog.entity_type == EntityType.STOCK_MOVEMENT))
    assert audit.action == AuditAction.CREATE
    assert audit.entity_id == str(movement.id)
    assert audit.ip_address == "127.0.0.1"
    assert db_session.scalar(select(func.count()).select_from(Notification)) == 1
    job = db_session.scalar(select(JobQueue).where(JobQueue.kind == "notification.user"))
    assert job.status == "completed"


def test_success_message_names_type_and_destination(db_session, user, sites, make_product, ctx):
    s1, s2 = sites
    product = make_product(user)
    service = StockService(db_session)

    movement = service.create_movement(_dto(product, s1, s2, 1), user.id, MovementType.DEPOT, ctx)

    assert service.success_message(movement) == "Opération de Depot effectuée sur le site S2"


def test_product_with_movements_cannot_be_deleted(db_session, user, sites, make_product, ctx):
    s1, s2 = sites
    product = make_product(user)
    service = StockService(db_session)
    service.create_movement(_dto(product, s1, s2, 100), user.id, MovementType.DEPOT, ctx)

    with pytest.raises(ConflictError):
        ProductService(db_session).delete_product(product.id, user, ctx)

    movements = db_session.scalar(
        select(func.count()).select_from(StockMovement).where(StockMovement.product_id == product.id)
    )
    items, total, summary = service.get_my_assets(user.id, MovementQuery())
    assert movements == 1
    assert total == 1
    assert _balance(summary, product) == 100
