# ===================================
# app/services/stock_service.py
# ===================================
"""
Journal des mouvements de stock et calcul des soldes.

Un mouvement est écrit avec tous ses effets (actifs, passifs, indicateur
de stockage du produit, audit, notification) dans une seule transaction :
si une étape échoue, aucune écriture n'est conservée.
"""

from decimal import Decimal
from typing import List, Tuple
import logging

from sqlalchemy.orm import Session

from app.core.context import RequestContext
from app.core.database import unit_of_work
from app.core.exceptions import NotFoundError, ProductNotValidated, SiteNotFound, ValidationError
from app.models.audit_log import AuditAction, EntityType
from app.models.passif import PassifReason
from app.models.site import Site
from app.models.stock_movement import StockMovement, MovementType
from app.repositories.ledger_repo import MovementRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.site_repo import SiteRepository
from app.schemas.ledger import (
    ActifQuery, PassifQuery, MovementCreate, MovementQuery, BalanceLine, PassifView
)
from app.services.actif_service import ActifService
from app.services.audit_service import AuditService, snapshot
from app.services.notification_service import NotificationService
from app.services.outbox_service import deliver_outbox
from app.services.passif_service import PassifService

logger = logging.getLogger(__name__)


class StockService:
    """Service pour la logique métier des mouvements de stock"""

    def __init__(self, db: Session):
        self.db = db
        self.movements = MovementRepository(db)
        self.product_repo = ProductRepository(db)
        self.site_repo = SiteRepository(db)
        self.actifs = ActifService(db)
        self.passifs = PassifService(db)
        self.audit = AuditService(db)
        self.notifications = NotificationService(db)

    def create_movement(self, dto: MovementCreate, operator_id: int,
                        movement_type: MovementType, ctx: RequestContext) -> StockMovement:
        """Valider, écrire le mouvement et appliquer son effet sur le registre"""
        with unit_of_work(self.db):
            product = self.product_repo.get_product_by_id(dto.product_id)
            if not product:
                raise NotFoundError("Produit non trouvé")
            if not product.product_validation:
                raise ProductNotValidated()

            origin = self.site_repo.get_site_by_id(dto.site_origine_id)
            destination = self.site_repo.get_site_by_id(dto.site_destination_id)
            if not origin or not destination:
                raise SiteNotFound()
            if movement_type == MovementType.TRANSFERT and origin.id == destination.id:
                raise ValidationError("Un transfert doit se faire entre deux sites différents")

            movement = self.movements.create({
                "operator_id": operator_id,
                "product_id": product.id,
                "site_origine_id": origin.id,
                "depot_origine": origin.site_name,
                "site_destination_id": destination.id,
                "depot_destination": destination.site_name,
                "quantite": dto.quantite,
                "prix_unitaire": dto.prix_unitaire,
                "type": movement_type,
                "observations": dto.observations,
            })

            self._apply_ledger_effect(movement, origin, destination)

            self.audit.log(
                AuditAction.CREATE, EntityType.STOCK_MOVEMENT, movement.id, operator_id, ctx,
                new_state=snapshot(movement),
            )
            self.notifications.notify_user(
                operator_id,
                f"Opération de {movement_type.value}",
                f"{dto.quantite} x {product.product_name} : {origin.site_name} -> {destination.site_name}",
            )

        logger.info(
            f"Mouvement {movement.id} ({movement_type.value}) : produit {movement.product_id}, "
            f"quantité {movement.quantite}, opérateur {operator_id}"
        )
        deliver_outbox(self.db)
        return movement

    def _apply_ledger_effect(self, movement: StockMovement, origin: Site, destination: Site):
        operator_id = movement.operator_id
        product_id = movement.product_id
        qty = movement.quantite

        if movement.type == MovementType.DEPOT:
            self.actifs.add_or_increase(operator_id, destination.id, product_id, qty)
            self.product_repo.mark_stocked(product_id)

        elif movement.type == MovementType.RETRAIT:
            self.actifs.decrease(operator_id, origin.id, product_id, qty)
            self.passifs.add_or_increase(
                operator_id, origin.id, product_id, qty,
                reason=PassifReason.RETRAIT,
                ayant_droit_id=operator_id,
                detentaire_id=operator_id,
                prix_unitaire=movement.prix_unitaire,
            )

        elif movement.type == MovementType.TRANSFERT:
            self.actifs.decrease(operator_id, origin.id, product_id, qty)
            self.actifs.add_or_increase(operator_id, destination.id, product_id, qty)

        elif movement.type == MovementType.VIREMENT:
            self.passifs.settle(operator_id, origin.id, product_id, qty)

    def success_message(self, movement: StockMovement) -> str:
        return f"Opération de {movement.type.value} effectuée sur le site {movement.depot_destination}"

    def _balance(self, operator_id: int, positive_type: MovementType) -> List[BalanceLine]:
        return [
            BalanceLine(product_id=product_id, product_name=name, solde=solde)
            for product_id, name, solde in self.movements.balance(operator_id, positive_type)
        ]

    def get_my_assets(self, operator_id: int,
                      query: MovementQuery) -> Tuple[List[StockMovement], int, List[BalanceLine]]:
        """
        Page de mouvements (dépôts par défaut) et solde par produit.
        Le solde porte sur tout l'historique de l'opérateur, indépendamment
        des filtres appliqués à la page.
        """
        movement_type = query.movement_type or MovementType.DEPOT
        items, total = self.movements.list(operator_id, query, movement_type)
        summary = self._balance(operator_id, MovementType.DEPOT)
        return items, total, summary

    def get_my_passifs(self, operator_id: int,
                       query: MovementQuery) -> Tuple[List[PassifView], int, List[BalanceLine]]:
        """Retraits présentés comme passifs, avec leur solde par produit"""
        items, total = self.movements.list(operator_id, query, MovementType.RETRAIT)
        views = [
            PassifView(
                id=m.id,
                date=m.created_at,
                situation=m.product.product_name,
                type=m.type,
                montant=Decimal(m.quantite) * Decimal(m.prix_unitaire or 0),
                depart_de=m.depot_origine,
                arrivee=m.depot_destination,
                action=m.observations or "-",
            )
            for m in items
        ]
        summary = self._balance(operator_id, MovementType.RETRAIT)
        return views, total, summary

    def get_history(self, operator_id: int, query: MovementQuery) -> Tuple[List[StockMovement], int]:
        """Historique complet, tous types confondus sauf filtre explicite"""
        return self.movements.list(operator_id, query, query.movement_type)

    def _require_site(self, site_id: int) -> Site:
        site = self.site_repo.get_site_by_id(site_id)
        if not site:
            raise SiteNotFound()
        return site

    def get_site_actifs(self, user_id: int, site_id: int, query: ActifQuery):
        self._require_site(site_id)
        return self.actifs.list_by_user_and_site(user_id, site_id, query)

    def get_site_passifs(self, user_id: int, site_id: int, query: PassifQuery):
        self._require_site(site_id)
        return self.passifs.list_by_user_and_site(user_id, site_id, query)
