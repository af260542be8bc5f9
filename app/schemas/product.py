# ===================================
# app/schemas/product.py
# ===================================

from typing import Optional
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field

from app.models.product import ProductState


class Dimensions(BaseModel):
    longueur: Optional[float] = Field(None, ge=0)
    largeur: Optional[float] = Field(None, ge=0)
    hauteur: Optional[float] = Field(None, ge=0)


class ProductBase(BaseModel):
    product_name: str = Field(min_length=1, max_length=255)
    product_description: Optional[str] = None
    product_state: ProductState = ProductState.BRUT
    product_image: Optional[str] = None
    prix_unitaire: Decimal = Field(default=Decimal("0"), ge=0)
    product_volume: Optional[float] = Field(None, ge=0)
    product_poids: Optional[float] = Field(None, ge=0)
    dimensions: Optional[Dimensions] = None


class ProductCreate(ProductBase):
    code_cpc: str = Field(min_length=1, max_length=16)


class ProductUpdate(BaseModel):
    code_cpc: Optional[str] = Field(None, min_length=1, max_length=16)
    product_name: Optional[str] = Field(None, min_length=1, max_length=255)
    product_description: Optional[str] = None
    product_state: Optional[ProductState] = None
    product_image: Optional[str] = None
    prix_unitaire: Optional[Decimal] = Field(None, ge=0)
    product_volume: Optional[float] = Field(None, ge=0)
    product_poids: Optional[float] = Field(None, ge=0)
    dimensions: Optional[Dimensions] = None


class Product(ProductBase):
    id: int
    code_cpc: str
    owner_id: int
    product_validation: bool
    is_stocker: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    search: Optional[str] = None
    is_stocker: Optional[bool] = None
    owner_id: Optional[int] = None
    product_validation: Optional[bool] = None


class StockStatusUpdate(BaseModel):
    is_stocker: bool
