# ===================================
# app/services/depot_item_service.py
# ===================================
from decimal import Decimal
from typing import List, Optional, Tuple
import logging

from sqlalchemy.orm import Session

from app.core.context import RequestContext
from app.core.database import unit_of_work
from app.core.exceptions import InsufficientStock, NotFoundError, SiteNotFound, ValidationError
from app.models.audit_log import AuditAction, EntityType
from app.models.depot_item import DepotItem
from app.repositories.ledger_repo import DepotItemRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.site_repo import SiteRepository
from app.schemas.ledger import AdjustStock, TransferStock
from app.services.audit_service import AuditService, snapshot
from app.services.notification_service import NotificationService
from app.services.outbox_service import deliver_outbox

logger = logging.getLogger(__name__)


class DepotItemService:
    """Lignes de stock par dépôt : ajustements et transferts inter-dépôts"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = DepotItemRepository(db)
        self.site_repo = SiteRepository(db)
        self.product_repo = ProductRepository(db)
        self.audit = AuditService(db)
        self.notifications = NotificationService(db)

    def _adjust(self, owner_id: int, depot_id: int, product_id: int, quantity: int,
                prix: Optional[Decimal] = None) -> DepotItem:
        if quantity == 0:
            raise ValidationError("La quantité ne peut pas être nulle")
        if not self.site_repo.get_site_by_id(depot_id):
            raise SiteNotFound()
        if not self.product_repo.get_product_by_id(product_id):
            raise NotFoundError("Produit non trouvé")

        if quantity < 0:
            if not self.repo.decrement(owner_id, depot_id, product_id, -quantity, prix):
                raise InsufficientStock()
            return self.repo.get_by_key(owner_id, depot_id, product_id)

        return self.repo.increment(owner_id, depot_id, product_id, quantity, prix)

    def adjust_stock(self, owner_id: int, dto: AdjustStock, ctx: RequestContext) -> DepotItem:
        """Entrée (quantité positive) ou sortie (négative) de stock"""
        with unit_of_work(self.db):
            item = self._adjust(owner_id, dto.depot_id, dto.product_id, dto.quantity, dto.prix)
            self.audit.log(
                AuditAction.UPDATE, EntityType.DEPOT_ITEM, item.id, owner_id, ctx,
                new_state={**snapshot(item), "delta": dto.quantity},
            )
        logger.info(f"Ajustement dépôt {dto.depot_id} produit {dto.product_id} : {dto.quantity:+d}")
        return item

    def transfer(self, owner_id: int, dto: TransferStock,
                 ctx: RequestContext) -> Tuple[DepotItem, DepotItem]:
        """
        Transfert inter-dépôts : sortie à la source puis entrée à la
        destination au prix unitaire de la source, dans une même transaction.
        """
        if dto.from_site_id == dto.to_site_id:
            raise ValidationError("Les dépôts source et destination doivent être différents")

        with unit_of_work(self.db):
            source = self._adjust(owner_id, dto.from_site_id, dto.product_id, -dto.quantity)
            destination = self._adjust(
                owner_id, dto.to_site_id, dto.product_id, dto.quantity, prix=source.prix
            )
            self.audit.log(
                AuditAction.UPDATE, EntityType.DEPOT_ITEM, source.id, owner_id, ctx,
                previous_state={"depot_id": dto.from_site_id, "stock": source.stock + dto.quantity},
                new_state={"depot_id": dto.to_site_id, "stock": destination.stock, "quantity": dto.quantity},
            )
            self.notifications.notify_user(
                owner_id,
                "Transfert inter-dépôts",
                f"{dto.quantity} unité(s) transférée(s) du dépôt {dto.from_site_id} vers le dépôt {dto.to_site_id}",
            )

        deliver_outbox(self.db)
        return source, destination

    def get_inventory_by_site(self, site_id: int, owner_id: int) -> List[DepotItem]:
        if not self.site_repo.get_site_by_id(site_id):
            raise SiteNotFound()
        return self.repo.list_by_site(site_id, owner_id)
