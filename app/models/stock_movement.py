# ===================================
# app/models/stock_movement.py
# ===================================
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric, Text, Enum, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.core.database import Base, enum_values


class MovementType(str, enum.Enum):
    """Types de mouvements de stock"""
    DEPOT = "Depot"            # Entrée en stock
    RETRAIT = "Retrait"        # Sortie de stock (crée un passif)
    TRANSFERT = "Transfert"    # Déplacement entre deux sites
    VIREMENT = "Virement"      # Règlement d'un passif


class StockMovement(Base):
    """Écriture immuable du journal des mouvements"""
    __tablename__ = "stock_movement"
    __table_args__ = (
        CheckConstraint('quantite >= 1', name='check_movement_quantite_min'),
    )

    id = Column(Integer, primary_key=True, index=True)
    operator_id = Column(Integer, ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('product.id', ondelete='RESTRICT'), nullable=False, index=True)

    # Noms des sites figés au moment de l'écriture
    site_origine_id = Column(Integer, ForeignKey('site.id', ondelete='SET NULL'), nullable=True, index=True)
    depot_origine = Column(String, nullable=False)
    site_destination_id = Column(Integer, ForeignKey('site.id', ondelete='SET NULL'), nullable=True, index=True)
    depot_destination = Column(String, nullable=False)

    quantite = Column(Integer, nullable=False)
    prix_unitaire = Column(Numeric(14, 2), default=0, nullable=False)
    type = Column(
        Enum(MovementType, native_enum=False, values_callable=enum_values, length=16),
        nullable=False,
        index=True,
    )
    observations = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, index=True)

    # Relations
    operator = relationship("User")
    product = relationship("Product")
    site_origine = relationship("Site", foreign_keys=[site_origine_id])
    site_destination = relationship("Site", foreign_keys=[site_destination_id])

    def __repr__(self):
        return f"<StockMovement(id={self.id}, type='{self.type}', qty={self.quantite})>"
