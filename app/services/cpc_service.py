# ===================================
# app/services/cpc_service.py
# ===================================
from typing import List, Tuple

from sqlalchemy.orm import Session

from app.core.context import RequestContext
from app.core.database import unit_of_work
from app.core.exceptions import ConflictError, NotFoundError
from app.models.audit_log import AuditAction, EntityType
from app.models.cpc import CpcProduct
from app.repositories.cpc_repo import CpcRepository
from app.schemas.cpc import CpcCreate, CpcUpdate, CpcQuery
from app.services.audit_service import AuditService, snapshot


class CpcService:
    """Classification Centrale de Produits"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CpcRepository(db)
        self.audit = AuditService(db)

    def create(self, data: CpcCreate, user_id: int, ctx: RequestContext) -> CpcProduct:
        with unit_of_work(self.db):
            if self.repo.get_by_code(data.code):
                raise ConflictError(f"Le code CPC {data.code} existe déjà")
            cpc = self.repo.create(data.dict())
            self.audit.log(AuditAction.CREATE, EntityType.CPC, cpc.code, user_id, ctx,
                           new_state=snapshot(cpc))
        self.db.refresh(cpc)
        return cpc

    def bulk_create(self, items: List[CpcCreate], user_id: int, ctx: RequestContext) -> Tuple[int, int]:
        """Création ou mise à jour en masse ; retourne (créés, mis à jour)"""
        created = updated = 0
        with unit_of_work(self.db):
            for data in items:
                existing = self.repo.get_by_code(data.code)
                if existing:
                    for field, value in data.dict(exclude={"code"}).items():
                        setattr(existing, field, value)
                    updated += 1
                else:
                    self.repo.create(data.dict())
                    created += 1
            self.db.flush()
            self.audit.log(AuditAction.CREATE, EntityType.CPC, None, user_id, ctx,
                           new_state={"created": created, "updated": updated})
        return created, updated

    def get_for_select(self) -> List[CpcProduct]:
        return self.repo.get_for_select()

    def find_all(self, query: CpcQuery) -> Tuple[List[CpcProduct], int]:
        return self.repo.get_all(
            skip=(query.page - 1) * query.limit, limit=query.limit,
            niveau=query.niveau, search=query.search
        )

    def find_children(self, parent_code: str) -> List[CpcProduct]:
        return self.repo.get_children(parent_code)

    def find_one(self, code: str) -> CpcProduct:
        cpc = self.repo.get_by_code(code)
        if not cpc:
            raise NotFoundError(f"Code CPC {code} non trouvé")
        return cpc

    def update(self, code: str, data: CpcUpdate, user_id: int, ctx: RequestContext) -> CpcProduct:
        with unit_of_work(self.db):
            cpc = self.find_one(code)
            previous = snapshot(cpc)
            for field, value in data.dict(exclude_unset=True).items():
                setattr(cpc, field, value)
            self.db.flush()
            self.audit.log(AuditAction.UPDATE, EntityType.CPC, cpc.code, user_id, ctx,
                           previous_state=previous, new_state=snapshot(cpc))
        self.db.refresh(cpc)
        return cpc

    def delete(self, code: str, user_id: int, ctx: RequestContext) -> None:
        with unit_of_work(self.db):
            cpc = self.find_one(code)
            previous = snapshot(cpc)
            self.db.delete(cpc)
            self.audit.log(AuditAction.DELETE, EntityType.CPC, code, user_id, ctx,
                           previous_state=previous)
