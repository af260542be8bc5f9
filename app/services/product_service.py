# ===================================
# app/services/product_service.py
# ===================================

from typing import List, Tuple
import logging

from sqlalchemy.orm import Session

from app.core.context import RequestContext
from app.core.database import unit_of_work
from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from app.models.audit_log import AuditAction, EntityType
from app.models.product import Product
from app.models.user import User, UserRole
from app.repositories.cpc_repo import CpcRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.product import ProductCreate, ProductUpdate, ProductQuery
from app.services.audit_service import AuditService, snapshot
from app.services.notification_service import NotificationService
from app.services.outbox_service import deliver_outbox

logger = logging.getLogger(__name__)


class ProductService:
    """Service pour la logique métier des produits"""

    def __init__(self, db: Session):
        self.db = db
        self.product_repo = ProductRepository(db)
        self.cpc_repo = CpcRepository(db)
        self.audit = AuditService(db)
        self.notifications = NotificationService(db)

    def _check_cpc(self, code: str):
        if not self.cpc_repo.get_by_code(code):
            raise NotFoundError(f"Code CPC {code} non trouvé")

    def _check_duplicate(self, owner_id: int, code_cpc: str, name: str, exclude_id: int = None):
        if self.product_repo.find_duplicate(owner_id, code_cpc, name, exclude_id=exclude_id):
            raise ConflictError("Vous avez déjà un produit avec ce nom et ce code CPC")

    def create_product(self, product_data: ProductCreate, owner: User, ctx: RequestContext) -> Product:
        """Créer un produit ; il reste à valider par un administrateur"""
        with unit_of_work(self.db):
            self._check_cpc(product_data.code_cpc)
            self._check_duplicate(owner.id, product_data.code_cpc, product_data.product_name)

            product_dict = product_data.dict()
            product_dict.update(owner_id=owner.id, product_validation=False, is_stocker=False)
            product = self.product_repo.create_product(product_dict)

            self.audit.log(AuditAction.CREATE, EntityType.PRODUCT, product.id, owner.id, ctx,
                           new_state=snapshot(product))
            self.notifications.notify_all_admins(
                "Nouveau produit à valider",
                f"{product.product_name} ({product.code_cpc}) créé par {owner.email}",
                {"product_id": product.id},
            )

        deliver_outbox(self.db)
        self.db.refresh(product)
        return product

    def update_product(self, product_id: int, product_update: ProductUpdate,
                       user: User, ctx: RequestContext) -> Product:
        """Mettre à jour un produit (propriétaire uniquement)"""
        update_data = product_update.dict(exclude_unset=True)

        with unit_of_work(self.db):
            product = self.get_product(product_id)
            if product.owner_id != user.id:
                raise ForbiddenError("Seul le propriétaire peut modifier ce produit")

            code_cpc = update_data.get("code_cpc") or product.code_cpc
            name = update_data.get("product_name") or product.product_name
            if "code_cpc" in update_data:
                self._check_cpc(code_cpc)
            self._check_duplicate(user.id, code_cpc, name, exclude_id=product.id)

            previous = snapshot(product)
            self.product_repo.update_product(product, update_data)
            self.audit.log(AuditAction.UPDATE, EntityType.PRODUCT, product.id, user.id, ctx,
                           previous_state=previous, new_state=snapshot(product))

        self.db.refresh(product)
        return product

    def get_product(self, product_id: int) -> Product:
        product = self.product_repo.get_product_by_id(product_id)
        if not product:
            raise NotFoundError("Produit non trouvé")
        return product

    def get_products(self, query: ProductQuery) -> Tuple[List[Product], int]:
        return self.product_repo.get_products(query)

    def get_my_products(self, owner_id: int, query: ProductQuery) -> Tuple[List[Product], int]:
        return self.product_repo.get_products(query.copy(update={"owner_id": owner_id}))

    def toggle_validation(self, product_id: int, admin: User, ctx: RequestContext) -> Product:
        """Valider ou invalider un produit (administrateur) et prévenir le propriétaire"""
        with unit_of_work(self.db):
            product = self.get_product(product_id)
            previous = snapshot(product)
            product.product_validation = not product.product_validation
            self.db.flush()
            self.audit.log(AuditAction.UPDATE, EntityType.PRODUCT, product.id, admin.id, ctx,
                           previous_state=previous, new_state=snapshot(product))
            state = "validé" if product.product_validation else "invalidé"
            self.notifications.notify_user(
                product.owner_id,
                "Validation produit",
                f"Votre produit {product.product_name} a été {state} par un administrateur",
            )

        logger.info(f"Produit {product_id} {state} par l'administrateur {admin.id}")
        deliver_outbox(self.db)
        self.db.refresh(product)
        return product

    def set_stock_status(self, product_id: int, is_stocker: bool, user: User,
                         ctx: RequestContext) -> Product:
        """Basculer manuellement l'indicateur de stockage"""
        with unit_of_work(self.db):
            product = self.get_product(product_id)
            if product.owner_id != user.id and not user.has_role(UserRole.ADMIN):
                raise ForbiddenError("Seul le propriétaire peut modifier ce produit")
            previous = snapshot(product)
            product.is_stocker = is_stocker
            self.db.flush()
            self.audit.log(AuditAction.UPDATE, EntityType.PRODUCT, product.id, user.id, ctx,
                           previous_state=previous, new_state=snapshot(product))
        self.db.refresh(product)
        return product

    def toggle_stock(self, product_id: int, user: User, ctx: RequestContext) -> Product:
        product = self.get_product(product_id)
        return self.set_stock_status(product_id, not product.is_stocker, user, ctx)

    def delete_product(self, product_id: int, user: User, ctx: RequestContext) -> None:
        with unit_of_work(self.db):
            product = self.get_product(product_id)
            if product.owner_id != user.id and not user.has_role(UserRole.ADMIN):
                raise ForbiddenError("Seul le propriétaire peut supprimer ce produit")
            # Le journal des mouvements est en ajout seul
            if self.product_repo.has_stock_records(product_id):
                logger.warning(f"Suppression refusée : produit {product_id} présent dans le registre")
                raise ConflictError("Ce produit a des mouvements de stock et ne peut pas être supprimé")
            previous = snapshot(product)
            self.db.delete(product)
            self.audit.log(AuditAction.DELETE, EntityType.PRODUCT, product_id, user.id, ctx,
                           previous_state=previous)
