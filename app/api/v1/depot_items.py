# ===================================
# app/api/v1/depot_items.py
# ===================================
from typing import Any, List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_request_context
from app.core.context import RequestContext
from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User
from app.schemas.common import ApiResponse
from app.schemas.ledger import AdjustStock, TransferStock, DepotItem, TransferResult
from app.services.depot_item_service import DepotItemService

router = APIRouter()


@router.post("/adjust", response_model=ApiResponse[DepotItem])
def adjust_stock(
    dto: AdjustStock,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    """
    Ajuster le stock d'un produit dans un dépôt (quantité signée)
    """
    item = DepotItemService(db).adjust_stock(current_user.id, dto, ctx)
    return ApiResponse(message="Stock ajusté", data=DepotItem.from_orm(item))


@router.post("/transfer", response_model=ApiResponse[TransferResult])
def transfer_stock(
    dto: TransferStock,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    source, destination = DepotItemService(db).transfer(current_user.id, dto, ctx)
    return ApiResponse(
        message="Transfert inter-dépôts terminé",
        data=TransferResult(source=DepotItem.from_orm(source), destination=DepotItem.from_orm(destination)),
    )


@router.get("/site/{site_id}", response_model=ApiResponse[List[DepotItem]])
def inventory_by_site(
    site_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    items = DepotItemService(db).get_inventory_by_site(site_id, current_user.id)
    return ApiResponse(message="Inventaire du dépôt", data=[DepotItem.from_orm(i) for i in items])
