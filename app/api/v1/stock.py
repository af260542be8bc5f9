# ===================================
# app/api/v1/stock.py
# ===================================
from typing import Any
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_request_context, paginated
from app.core.context import RequestContext
from app.core.database import get_db
from app.core.security import get_current_user
from app.models.stock_movement import MovementType
from app.models.user import User
from app.schemas.common import ApiResponse, PaginatedResponse
from app.schemas.ledger import (
    Actif, ActifQuery, Passif, PassifQuery, MovementCreate, MovementQuery, PassifView, StockMovement
)
from app.services.stock_service import StockService

router = APIRouter()


def _record(movement_type: MovementType, dto: MovementCreate, user: User,
            db: Session, ctx: RequestContext) -> ApiResponse:
    service = StockService(db)
    movement = service.create_movement(dto, user.id, movement_type, ctx)
    return ApiResponse(message=service.success_message(movement), data=StockMovement.from_orm(movement))


@router.post("/deposit", response_model=ApiResponse[StockMovement], status_code=status.HTTP_201_CREATED)
def deposit(
    dto: MovementCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    """
    Dépôt : l'actif de l'opérateur augmente sur le site de destination
    """
    return _record(MovementType.DEPOT, dto, current_user, db, ctx)


@router.post("/withdraw", response_model=ApiResponse[StockMovement], status_code=status.HTTP_201_CREATED)
def withdraw(
    dto: MovementCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    """
    Retrait : l'actif diminue au site d'origine et un passif est ouvert
    """
    return _record(MovementType.RETRAIT, dto, current_user, db, ctx)


@router.post("/transfer", response_model=ApiResponse[StockMovement], status_code=status.HTTP_201_CREATED)
def transfer(
    dto: MovementCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    return _record(MovementType.TRANSFERT, dto, current_user, db, ctx)


@router.post("/settlement", response_model=ApiResponse[StockMovement], status_code=status.HTTP_201_CREATED)
def settlement(
    dto: MovementCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    """
    Virement : solde les passifs ouverts au site d'origine
    """
    return _record(MovementType.VIREMENT, dto, current_user, db, ctx)


@router.get("/my-assets", response_model=PaginatedResponse[StockMovement])
def my_assets(
    query: MovementQuery = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    items, total, summary = StockService(db).get_my_assets(current_user.id, query)
    return paginated(
        "Actifs récupérés", [StockMovement.from_orm(m) for m in items], total,
        query.page, query.limit, summary=[line.dict() for line in summary],
    )


@router.get("/my-passifs", response_model=PaginatedResponse[PassifView])
def my_passifs(
    query: MovementQuery = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    views, total, summary = StockService(db).get_my_passifs(current_user.id, query)
    return paginated(
        "Passifs récupérés", views, total, query.page, query.limit,
        summary=[line.dict() for line in summary],
    )


@router.get("/history", response_model=PaginatedResponse[StockMovement])
def history(
    query: MovementQuery = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    items, total = StockService(db).get_history(current_user.id, query)
    return paginated("Historique récupéré", [StockMovement.from_orm(m) for m in items], total, query.page, query.limit)


@router.get("/site/{site_id}/actifs", response_model=PaginatedResponse[Actif])
def site_actifs(
    site_id: int,
    query: ActifQuery = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    items, total = StockService(db).get_site_actifs(current_user.id, site_id, query)
    return paginated("Actifs du site récupérés", [Actif.from_orm(a) for a in items], total, query.page, query.limit)


@router.get("/site/{site_id}/passifs", response_model=PaginatedResponse[Passif])
def site_passifs(
    site_id: int,
    query: PassifQuery = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    items, total = StockService(db).get_site_passifs(current_user.id, site_id, query)
    return paginated("Passifs du site récupérés", [Passif.from_orm(p) for p in items], total, query.page, query.limit)
