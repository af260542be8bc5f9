# ===================================
# app/services/site_service.py
# ===================================
from typing import List, Tuple
import logging

from sqlalchemy.orm import Session

from app.core.context import RequestContext
from app.core.database import unit_of_work
from app.core.exceptions import ForbiddenError, NotFoundError, SiteNotFound, ValidationError
from app.models.audit_log import AuditAction, EntityType
from app.models.site import Site
from app.models.user import User, UserRole
from app.repositories.site_repo import SiteRepository
from app.repositories.user_repo import get_user_by_id
from app.schemas.site import SiteCreate, SiteUpdate, SiteQuery, NearbyQuery
from app.services.audit_service import AuditService, snapshot

logger = logging.getLogger(__name__)


class SiteService:
    """Registre des sites (entrepôts, dépôts)"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SiteRepository(db)
        self.audit = AuditService(db)

    def create(self, owner_id: int, data: SiteCreate, ctx: RequestContext) -> Site:
        """Créer un site pour un utilisateur existant"""
        with unit_of_work(self.db):
            if not get_user_by_id(self.db, owner_id):
                raise NotFoundError("Utilisateur non trouvé")
            site = self.repo.create_site({**data.dict(), "owner_id": owner_id})
            self.audit.log(AuditAction.CREATE, EntityType.SITE, site.id, owner_id, ctx,
                           new_state=snapshot(site))
        self.db.refresh(site)
        logger.info(f"Site {site.id} créé pour l'utilisateur {owner_id}")
        return site

    def find_all(self, query: SiteQuery) -> Tuple[List[Site], int]:
        return self.repo.get_sites(
            skip=(query.page - 1) * query.limit, limit=query.limit, search=query.search
        )

    def find_all_by_user(self, owner_id: int, query: SiteQuery) -> Tuple[List[Site], int]:
        return self.repo.get_sites(
            skip=(query.page - 1) * query.limit, limit=query.limit,
            search=query.search, owner_id=owner_id
        )

    def find_one(self, site_id: int) -> Site:
        site = self.repo.get_site_by_id(site_id)
        if not site:
            raise SiteNotFound()
        return site

    def _check_owner(self, site: Site, user: User):
        if site.owner_id != user.id and not user.has_role(UserRole.ADMIN):
            raise ForbiddenError("Ce site ne vous appartient pas")

    def update(self, site_id: int, data: SiteUpdate, user: User, ctx: RequestContext) -> Site:
        """Mise à jour partielle ; le point GeoJSON suit toujours lat/lng"""
        update_data = data.dict(exclude_unset=True)
        if any(update_data.get(field) is None for field in update_data):
            raise ValidationError("Les champs fournis ne peuvent pas être nuls")

        with unit_of_work(self.db):
            site = self.find_one(site_id)
            self._check_owner(site, user)
            previous = snapshot(site)
            for field, value in update_data.items():
                setattr(site, field, value)
            if "site_lat" in update_data or "site_lng" in update_data:
                site.sync_location()
            self.db.flush()
            self.audit.log(AuditAction.UPDATE, EntityType.SITE, site.id, user.id, ctx,
                           previous_state=previous, new_state=snapshot(site))
        self.db.refresh(site)
        return site

    def remove(self, site_id: int, user: User, ctx: RequestContext) -> None:
        with unit_of_work(self.db):
            site = self.find_one(site_id)
            self._check_owner(site, user)
            previous = snapshot(site)
            self.db.delete(site)
            self.audit.log(AuditAction.DELETE, EntityType.SITE, site_id, user.id, ctx,
                           previous_state=previous)
        logger.info(f"Site {site_id} supprimé par l'utilisateur {user.id}")

    def find_by_location(self, query: NearbyQuery) -> Tuple[List[Tuple[Site, float]], int]:
        """Sites dans un rayon (km), du plus proche au plus éloigné"""
        results = self.repo.get_sites_near(query.lat, query.lng, query.radius_km)
        start = (query.page - 1) * query.limit
        return results[start:start + query.limit], len(results)
