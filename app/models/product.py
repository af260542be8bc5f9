# ===================================
# app/models/product.py
# ===================================
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, Text, Numeric, Float, JSON, Enum
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from app.core.database import Base, enum_values


class ProductState(str, enum.Enum):
    BRUT = "Brut"
    TRANSFORME = "Transformé"
    CONDITIONNE = "Conditionné"


class Product(Base):
    __tablename__ = "product"

    id = Column(Integer, primary_key=True, index=True)
    code_cpc = Column(String(16), ForeignKey('cpc_product.code'), nullable=False, index=True)
    product_name = Column(String, nullable=False, index=True)
    product_description = Column(Text, nullable=True)
    product_state = Column(
        Enum(ProductState, native_enum=False, values_callable=enum_values, length=32),
        default=ProductState.BRUT,
        nullable=False,
    )
    product_image = Column(String, nullable=True)  # URL publique
    owner_id = Column(Integer, ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)

    # Validation admin : seuls les produits validés peuvent entrer en stock
    product_validation = Column(Boolean, default=False, nullable=False)
    # Passe à True au premier dépôt, jamais remis à False par les mouvements
    is_stocker = Column(Boolean, default=False, nullable=False)

    prix_unitaire = Column(Numeric(14, 2), default=0, nullable=False)
    product_volume = Column(Float, nullable=True)
    product_poids = Column(Float, nullable=True)
    dimensions = Column(JSON, nullable=True)  # {"longueur", "largeur", "hauteur"}

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relations
    owner = relationship("User")
    cpc = relationship("CpcProduct")

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.product_name}')>"
