# ===================================
# app/repositories/cpc_repo.py
# ===================================
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import select, func, and_, or_, asc

from app.models.cpc import CpcProduct


class CpcRepository:
    """Repository de la classification CPC"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_code(self, code: str) -> Optional[CpcProduct]:
        return self.db.scalar(select(CpcProduct).where(CpcProduct.code == code))

    def get_all(self, skip: int = 0, limit: int = 20,
                niveau: Optional[int] = None,
                search: Optional[str] = None) -> Tuple[List[CpcProduct], int]:
        """Liste paginée triée par code"""
        query = select(CpcProduct)

        conditions = []
        if niveau is not None:
            conditions.append(CpcProduct.niveau == niveau)
        if search:
            conditions.append(
                or_(
                    CpcProduct.code.ilike(f"{search}%"),
                    CpcProduct.nom.ilike(f"%{search}%")
                )
            )
        if conditions:
            query = query.where(and_(*conditions))

        total = self.db.scalar(select(func.count()).select_from(query.subquery()))
        items = self.db.scalars(
            query.order_by(asc(CpcProduct.code)).offset(skip).limit(limit)
        ).all()
        return list(items), total or 0

    def get_children(self, parent_code: str) -> List[CpcProduct]:
        return list(self.db.scalars(
            select(CpcProduct)
            .where(CpcProduct.parent_code == parent_code)
            .order_by(asc(CpcProduct.code))
        ))

    def get_for_select(self) -> List[CpcProduct]:
        return list(self.db.scalars(select(CpcProduct).order_by(asc(CpcProduct.code))))

    def create(self, data: dict) -> CpcProduct:
        cpc = CpcProduct(**data)
        self.db.add(cpc)
        self.db.flush()
        return cpc
