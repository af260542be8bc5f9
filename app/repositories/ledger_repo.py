# ===================================
# app/repositories/ledger_repo.py
# ===================================
"""
Accès aux lignes du registre de stock.

Les incréments passent par un UPDATE atomique (q = q + :delta) ; si la ligne
n'existe pas encore elle est insérée, et une insertion concurrente perdue sur
la contrainte d'unicité retombe sur l'UPDATE. Les décréments sont gardés par
une condition sur la quantité courante, ce qui sérialise les sorties
concurrentes dans la base plutôt que dans l'application.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select, update, func, and_, or_, asc, desc, case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.models.actif import Actif
from app.models.depot_item import DepotItem
from app.models.passif import Passif, PassifReason
from app.models.product import Product
from app.models.stock_movement import StockMovement, MovementType
from app.schemas.ledger import ActifQuery, PassifQuery, MovementQuery


def _upsert_increment(db: Session, model, key: dict, update_stmt, insert_values: dict):
    """UPDATE atomique, sinon INSERT ; une insertion concurrente retombe sur l'UPDATE"""
    if db.execute(update_stmt).rowcount:
        return
    try:
        with db.begin_nested():
            db.add(model(**key, **insert_values))
    except IntegrityError:
        db.execute(update_stmt)


class ActifRepository:
    """Lignes d'actifs, clé naturelle (utilisateur, site, produit)"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _key(user_id: int, site_id: int, product_id: int):
        return (
            Actif.user_id == user_id,
            Actif.site_id == site_id,
            Actif.product_id == product_id,
        )

    def get_by_key(self, user_id: int, site_id: int, product_id: int,
                   active_only: bool = False) -> Optional[Actif]:
        stmt = (
            select(Actif)
            .where(*self._key(user_id, site_id, product_id))
            .execution_options(populate_existing=True)
        )
        if active_only:
            stmt = stmt.where(Actif.is_active == True)  # noqa: E712
        return self.db.scalar(stmt)

    def get_by_id(self, actif_id: int) -> Optional[Actif]:
        return self.db.scalar(
            select(Actif)
            .where(Actif.id == actif_id)
            .options(selectinload(Actif.user), selectinload(Actif.site), selectinload(Actif.product))
            .execution_options(populate_existing=True)
        )

    def increment(self, user_id: int, site_id: int, product_id: int, qty: int) -> Actif:
        """Ajoute qty et réactive la ligne si elle était archivée"""
        stmt = (
            update(Actif)
            .where(*self._key(user_id, site_id, product_id))
            .values(
                quantite=Actif.quantite + qty,
                is_active=True,
                archived_at=None,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        _upsert_increment(
            self.db, Actif,
            dict(user_id=user_id, site_id=site_id, product_id=product_id),
            stmt,
            dict(quantite=qty, is_active=True),
        )
        return self.get_by_key(user_id, site_id, product_id)

    def archive(self, actif_id: int, expected_qty: int) -> bool:
        """Quantité ramenée à zéro : la ligne est archivée, pas supprimée"""
        now = datetime.utcnow()
        result = self.db.execute(
            update(Actif)
            .where(Actif.id == actif_id, Actif.is_active == True, Actif.quantite == expected_qty)  # noqa: E712
            .values(quantite=0, is_active=False, archived_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def decrement(self, actif_id: int, qty: int) -> bool:
        result = self.db.execute(
            update(Actif)
            .where(Actif.id == actif_id, Actif.is_active == True, Actif.quantite > qty)  # noqa: E712
            .values(quantite=Actif.quantite - qty, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def list(self, query: ActifQuery, user_id: Optional[int] = None,
             site_id: Optional[int] = None) -> Tuple[List[Actif], int]:
        stmt = select(Actif).join(Product, Product.id == Actif.product_id)

        conditions = []
        if user_id is not None:
            conditions.append(Actif.user_id == user_id)
        site_filter = site_id if site_id is not None else query.site_id
        if site_filter is not None:
            conditions.append(Actif.site_id == site_filter)
        if not query.include_archived:
            conditions.append(Actif.is_active == True)  # noqa: E712
        if query.search:
            conditions.append(
                or_(
                    Product.product_name.ilike(f"%{query.search}%"),
                    Product.code_cpc.ilike(f"%{query.search}%")
                )
            )
        if conditions:
            stmt = stmt.where(and_(*conditions))

        total = self.db.scalar(select(func.count()).select_from(stmt.subquery()))

        direction = desc if query.sort_order == "desc" else asc
        items = self.db.scalars(
            stmt.options(selectinload(Actif.user), selectinload(Actif.site), selectinload(Actif.product))
            .execution_options(populate_existing=True)
            .order_by(direction(getattr(Actif, query.sort_by)), direction(Actif.id))
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
        ).all()
        return list(items), total or 0


class PassifRepository:
    """Lignes de passifs, clé naturelle (utilisateur, site, produit, ayant-droit)"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _key(user_id: int, site_id: int, product_id: int, ayant_droit_id: int):
        return (
            Passif.user_id == user_id,
            Passif.site_id == site_id,
            Passif.product_id == product_id,
            Passif.ayant_droit_id == ayant_droit_id,
        )

    def get_by_key(self, user_id: int, site_id: int, product_id: int,
                   ayant_droit_id: int) -> Optional[Passif]:
        return self.db.scalar(
            select(Passif)
            .where(*self._key(user_id, site_id, product_id, ayant_droit_id))
            .execution_options(populate_existing=True)
        )

    def get_by_id(self, passif_id: int) -> Optional[Passif]:
        return self.db.scalar(
            select(Passif)
            .where(Passif.id == passif_id)
            .options(*self._display_options())
            .execution_options(populate_existing=True)
        )

    @staticmethod
    def _display_options():
        return (
            selectinload(Passif.user),
            selectinload(Passif.ayant_droit),
            selectinload(Passif.detentaire),
            selectinload(Passif.site),
            selectinload(Passif.product),
        )

    def increment(self, user_id: int, site_id: int, product_id: int, ayant_droit_id: int,
                  qty: int, reason: PassifReason, detentaire_id: int,
                  prix_unitaire: Decimal) -> Passif:
        """Ajoute qty, réactive la ligne et remplace le motif ; le prix reste celui de la création"""
        stmt = (
            update(Passif)
            .where(*self._key(user_id, site_id, product_id, ayant_droit_id))
            .values(
                quantite=Passif.quantite + qty,
                reason=reason,
                detentaire_id=detentaire_id,
                is_active=True,
                closed_at=None,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        _upsert_increment(
            self.db, Passif,
            dict(user_id=user_id, site_id=site_id, product_id=product_id, ayant_droit_id=ayant_droit_id),
            stmt,
            dict(quantite=qty, reason=reason, detentaire_id=detentaire_id,
                 prix_unitaire=prix_unitaire, is_active=True),
        )
        return self.get_by_key(user_id, site_id, product_id, ayant_droit_id)

    def get_open(self, user_id: int, site_id: int, product_id: int) -> List[Passif]:
        """Passifs actifs d'un utilisateur, du plus ancien au plus récent"""
        return list(self.db.scalars(
            select(Passif)
            .where(
                Passif.user_id == user_id,
                Passif.site_id == site_id,
                Passif.product_id == product_id,
                Passif.is_active == True,  # noqa: E712
            )
            .order_by(asc(Passif.created_at), asc(Passif.id))
            .execution_options(populate_existing=True)
        ))

    def reduce(self, passif_id: int, qty: int, expected_qty: int) -> bool:
        """Diminue un passif ; à zéro il est clôturé"""
        now = datetime.utcnow()
        values = dict(quantite=Passif.quantite - qty, updated_at=now)
        if qty == expected_qty:
            values.update(is_active=False, closed_at=now)
        result = self.db.execute(
            update(Passif)
            .where(Passif.id == passif_id, Passif.is_active == True, Passif.quantite == expected_qty)  # noqa: E712
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def list(self, query: PassifQuery, user_id: Optional[int] = None,
             site_id: Optional[int] = None) -> Tuple[List[Passif], int]:
        stmt = select(Passif)

        conditions = []
        if user_id is not None:
            conditions.append(Passif.user_id == user_id)
        site_filter = site_id if site_id is not None else query.site_id
        if site_filter is not None:
            conditions.append(Passif.site_id == site_filter)
        if not query.include_archived:
            conditions.append(Passif.is_active == True)  # noqa: E712
        if query.search:
            matching = [reason for reason in PassifReason if query.search.lower() in reason.value.lower()]
            conditions.append(Passif.reason.in_(matching))
        if conditions:
            stmt = stmt.where(and_(*conditions))

        total = self.db.scalar(select(func.count()).select_from(stmt.subquery()))

        direction = desc if query.sort_order == "desc" else asc
        items = self.db.scalars(
            stmt.options(*self._display_options())
            .execution_options(populate_existing=True)
            .order_by(direction(getattr(Passif, query.sort_by)), direction(Passif.id))
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
        ).all()
        return list(items), total or 0


class DepotItemRepository:
    """Lignes de stock par dépôt, clé naturelle (propriétaire, dépôt, produit)"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _key(owner_id: int, depot_id: int, product_id: int):
        return (
            DepotItem.owner_id == owner_id,
            DepotItem.depot_id == depot_id,
            DepotItem.product_id == product_id,
        )

    def get_by_key(self, owner_id: int, depot_id: int, product_id: int) -> Optional[DepotItem]:
        return self.db.scalar(
            select(DepotItem)
            .where(*self._key(owner_id, depot_id, product_id))
            .execution_options(populate_existing=True)
        )

    def increment(self, owner_id: int, depot_id: int, product_id: int, qty: int,
                  prix: Optional[Decimal] = None) -> DepotItem:
        values = dict(stock=DepotItem.stock + qty, last_update=datetime.utcnow())
        if prix is not None:
            values["prix"] = prix
        stmt = (
            update(DepotItem)
            .where(*self._key(owner_id, depot_id, product_id))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        _upsert_increment(
            self.db, DepotItem,
            dict(owner_id=owner_id, depot_id=depot_id, product_id=product_id),
            stmt,
            dict(stock=qty, prix=prix if prix is not None else Decimal("0")),
        )
        return self.get_by_key(owner_id, depot_id, product_id)

    def decrement(self, owner_id: int, depot_id: int, product_id: int, qty: int,
                  prix: Optional[Decimal] = None) -> bool:
        """Sortie gardée : échoue (False) si le stock courant est inférieur à qty"""
        values = dict(stock=DepotItem.stock - qty, last_update=datetime.utcnow())
        if prix is not None:
            values["prix"] = prix
        result = self.db.execute(
            update(DepotItem)
            .where(*self._key(owner_id, depot_id, product_id), DepotItem.stock >= qty)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def list_by_site(self, depot_id: int, owner_id: int) -> List[DepotItem]:
        return list(self.db.scalars(
            select(DepotItem)
            .where(DepotItem.depot_id == depot_id, DepotItem.owner_id == owner_id)
            .options(selectinload(DepotItem.product))
            .order_by(asc(DepotItem.product_id))
            .execution_options(populate_existing=True)
        ))


class MovementRepository:
    """Journal des mouvements (ajout seul)"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, data: dict) -> StockMovement:
        movement = StockMovement(**data)
        self.db.add(movement)
        self.db.flush()
        return movement

    def _filters(self, operator_id: int, query: MovementQuery,
                 movement_type: Optional[MovementType]):
        conditions = [StockMovement.operator_id == operator_id]
        if query.site_id is not None:
            conditions.append(
                or_(
                    StockMovement.site_origine_id == query.site_id,
                    StockMovement.site_destination_id == query.site_id
                )
            )
        if query.product_id is not None:
            conditions.append(StockMovement.product_id == query.product_id)
        if movement_type is not None:
            conditions.append(StockMovement.type == movement_type)
        if query.start_date is not None:
            conditions.append(StockMovement.created_at >= query.start_date)
        if query.end_date is not None:
            conditions.append(StockMovement.created_at <= query.end_date)
        return conditions

    def list(self, operator_id: int, query: MovementQuery,
             movement_type: Optional[MovementType] = None) -> Tuple[List[StockMovement], int]:
        """Mouvements paginés, du plus récent au plus ancien"""
        stmt = select(StockMovement).where(and_(*self._filters(operator_id, query, movement_type)))

        total = self.db.scalar(select(func.count()).select_from(stmt.subquery()))
        items = self.db.scalars(
            stmt.options(selectinload(StockMovement.product))
            .order_by(desc(StockMovement.created_at), desc(StockMovement.id))
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
        ).all()
        return list(items), total or 0

    def balance(self, operator_id: int, positive_type: MovementType) -> List[Tuple[int, str, int]]:
        """
        Solde par produit sur tout l'historique de l'opérateur :
        + quantité pour positive_type, - quantité pour les autres types.
        """
        signed = case(
            (StockMovement.type == positive_type, StockMovement.quantite),
            else_=-StockMovement.quantite,
        )
        rows = self.db.execute(
            select(StockMovement.product_id, Product.product_name, func.sum(signed))
            .outerjoin(Product, Product.id == StockMovement.product_id)
            .where(StockMovement.operator_id == operator_id)
            .group_by(StockMovement.product_id, Product.product_name)
            .order_by(asc(StockMovement.product_id))
        ).all()
        return [(product_id, name, int(total or 0)) for product_id, name, total in rows]
