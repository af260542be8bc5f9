# ===================================
# app/models/cpc.py
# ===================================
from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func

from app.core.database import Base


class CpcProduct(Base):
    """Nœud de la Classification Centrale de Produits"""
    __tablename__ = "cpc_product"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(16), unique=True, index=True, nullable=False)
    nom = Column(String, nullable=False)
    niveau = Column(Integer, nullable=False, index=True)
    parent_code = Column(String(16), nullable=True, index=True)
    correspondances = Column(JSON, nullable=True)  # {"sh": ..., "citi": ..., "ctci": ...}

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<CpcProduct(code='{self.code}', niveau={self.niveau})>"
