# ===================================
# app/models/actif.py
# ===================================
from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import datetime

from app.core.database import Base


class Actif(Base):
    """Position d'actif : quantité détenue par un utilisateur pour un produit sur un site"""
    __tablename__ = "actif"
    __table_args__ = (
        UniqueConstraint('user_id', 'site_id', 'product_id', name='uq_actif_user_site_product'),
        CheckConstraint('quantite >= 0', name='check_actif_quantite_positive'),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    site_id = Column(Integer, ForeignKey('site.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('product.id', ondelete='RESTRICT'), nullable=False, index=True)

    quantite = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relations
    user = relationship("User")
    site = relationship("Site")
    product = relationship("Product")

    def __repr__(self):
        return f"<Actif(id={self.id}, user={self.user_id}, site={self.site_id}, product={self.product_id}, qty={self.quantite})>"
