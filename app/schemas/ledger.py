# ===================================
# app/schemas/ledger.py
# ===================================
"""
Schémas du registre de stock : actifs, passifs, mouvements et lignes de dépôt.
"""

from typing import Optional
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field, validator

from app.models.passif import PassifReason
from app.models.stock_movement import MovementType


# Champs d'affichage joints
class UserRef(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: Optional[str] = None

    class Config:
        from_attributes = True


class SiteRef(BaseModel):
    id: int
    site_name: str
    site_address: str

    class Config:
        from_attributes = True


class ProductRef(BaseModel):
    id: int
    product_name: str
    code_cpc: str
    prix_unitaire: Decimal

    class Config:
        from_attributes = True


# Actifs
class Actif(BaseModel):
    id: int
    quantite: int
    is_active: bool
    archived_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: UserRef
    site: SiteRef
    product: ProductRef

    class Config:
        from_attributes = True


class ActifQuery(BaseModel):
    """Options de liste des actifs"""
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    site_id: Optional[int] = None
    search: Optional[str] = None  # nom du produit ou code CPC
    sort_by: str = Field(default="created_at", pattern="^(created_at|updated_at|quantite)$")
    sort_order: str = Field(default="desc", pattern="^(asc|desc)$")
    include_archived: bool = False


# Passifs
class Passif(BaseModel):
    id: int
    quantite: int
    prix_unitaire: Decimal
    reason: PassifReason
    is_active: bool
    closed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: UserRef
    ayant_droit: UserRef
    detentaire: Optional[UserRef] = None
    site: SiteRef
    product: ProductRef

    class Config:
        from_attributes = True


class PassifQuery(BaseModel):
    """Options de liste des passifs"""
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    site_id: Optional[int] = None
    search: Optional[str] = None  # motif (reason)
    sort_by: str = Field(default="created_at", pattern="^(created_at|updated_at|quantite)$")
    sort_order: str = Field(default="desc", pattern="^(asc|desc)$")
    include_archived: bool = False


# Mouvements
class MovementCreate(BaseModel):
    product_id: int
    site_origine_id: int
    site_destination_id: int
    quantite: int = Field(ge=1)
    prix_unitaire: Decimal = Field(default=Decimal("0"), ge=0)
    observations: Optional[str] = Field(None, max_length=1000)


class StockMovement(BaseModel):
    id: int
    operator_id: int
    product_id: int
    site_origine_id: Optional[int] = None
    depot_origine: str
    site_destination_id: Optional[int] = None
    depot_destination: str
    quantite: int
    prix_unitaire: Decimal
    type: MovementType
    observations: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MovementQuery(BaseModel):
    """Options de liste des mouvements"""
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    site_id: Optional[int] = None  # origine OU destination
    product_id: Optional[int] = None
    movement_type: Optional[MovementType] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @validator("end_date")
    def check_date_range(cls, v, values):
        start = values.get("start_date")
        if v is not None and start is not None and v < start:
            raise ValueError("end_date doit être postérieure à start_date")
        return v


class BalanceLine(BaseModel):
    product_id: int
    product_name: Optional[str] = None
    solde: int


class PassifView(BaseModel):
    """Projection d'un retrait pour la vue des passifs"""
    id: int
    date: Optional[datetime] = None
    situation: Optional[str] = None
    type: MovementType
    montant: Decimal
    depart_de: str
    arrivee: str
    action: str


# Lignes de dépôt
class AdjustStock(BaseModel):
    depot_id: int
    product_id: int
    quantity: int  # signé : négatif pour une sortie
    prix: Optional[Decimal] = Field(None, ge=0)

    @validator("quantity")
    def non_zero(cls, v):
        if v == 0:
            raise ValueError("La quantité ne peut pas être nulle")
        return v


class TransferStock(BaseModel):
    from_site_id: int
    to_site_id: int
    product_id: int
    quantity: int = Field(gt=0)

    @validator("to_site_id")
    def distinct_sites(cls, v, values):
        if values.get("from_site_id") == v:
            raise ValueError("Les dépôts source et destination doivent être différents")
        return v


class DepotItem(BaseModel):
    id: int
    owner_id: int
    depot_id: int
    product_id: int
    stock: int
    prix: Decimal
    last_update: Optional[datetime] = None
    product: Optional[ProductRef] = None

    class Config:
        from_attributes = True


class TransferResult(BaseModel):
    source: DepotItem
    destination: DepotItem
