# ===================================
# app/models/depot_item.py
# ===================================
from sqlalchemy import Column, Integer, DateTime, ForeignKey, Numeric, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from app.core.database import Base


class DepotItem(Base):
    """Ligne de stock par dépôt, unique par (propriétaire, dépôt, produit)"""
    __tablename__ = "depot_item"
    __table_args__ = (
        UniqueConstraint('owner_id', 'depot_id', 'product_id', name='uq_depot_item_owner_depot_product'),
        CheckConstraint('stock >= 0', name='check_depot_item_stock_positive'),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    depot_id = Column(Integer, ForeignKey('site.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('product.id', ondelete='RESTRICT'), nullable=False, index=True)

    stock = Column(Integer, default=0, nullable=False)
    prix = Column(Numeric(14, 2), default=0, nullable=False)
    last_update = Column(DateTime(timezone=True), default=datetime.utcnow)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    # Relations
    owner = relationship("User")
    depot = relationship("Site")
    product = relationship("Product")

    def __repr__(self):
        return f"<DepotItem(id={self.id}, depot={self.depot_id}, product={self.product_id}, stock={self.stock})>"
