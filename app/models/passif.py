# ===================================
# app/models/passif.py
# ===================================
from sqlalchemy import (
    Column, Integer, Boolean, DateTime, ForeignKey, Numeric, Enum, CheckConstraint, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import datetime
import enum

from app.core.database import Base, enum_values


class PassifReason(str, enum.Enum):
    RETRAIT = "Retrait"
    VENTE = "Vente"
    PERTE = "Perte"
    AUTRE = "Autre"


class Passif(Base):
    """
    Position de passif : quantité due par un utilisateur.
    Distingue le détenteur physique (detentaire) du propriétaire légal (ayant_droit).
    """
    __tablename__ = "passif"
    __table_args__ = (
        UniqueConstraint('user_id', 'site_id', 'product_id', 'ayant_droit_id', name='uq_passif_key'),
        CheckConstraint('quantite >= 0', name='check_passif_quantite_positive'),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    site_id = Column(Integer, ForeignKey('site.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('product.id', ondelete='RESTRICT'), nullable=False, index=True)
    ayant_droit_id = Column(Integer, ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    detentaire_id = Column(Integer, ForeignKey('user.id', ondelete='SET NULL'), nullable=True)

    quantite = Column(Integer, default=0, nullable=False)
    prix_unitaire = Column(Numeric(14, 2), default=0, nullable=False)  # figé à la création
    reason = Column(
        Enum(PassifReason, native_enum=False, values_callable=enum_values, length=16),
        default=PassifReason.RETRAIT,
        nullable=False,
    )
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relations
    user = relationship("User", foreign_keys=[user_id])
    ayant_droit = relationship("User", foreign_keys=[ayant_droit_id])
    detentaire = relationship("User", foreign_keys=[detentaire_id])
    site = relationship("Site")
    product = relationship("Product")

    def __repr__(self):
        return f"<Passif(id={self.id}, user={self.user_id}, product={self.product_id}, qty={self.quantite})>"
