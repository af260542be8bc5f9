# ===================================
# app/api/v1/cpc.py
# ===================================
from typing import Any, List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_request_context, paginated, require_admin
from app.core.context import RequestContext
from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User
from app.schemas.common import ApiResponse, MessageResponse, PaginatedResponse
from app.schemas.cpc import Cpc, CpcCreate, CpcUpdate, CpcQuery, CpcSelectOption, BulkResult
from app.services.cpc_service import CpcService

router = APIRouter()


@router.post("/", response_model=ApiResponse[Cpc], status_code=status.HTTP_201_CREATED)
def create_cpc(
    data: CpcCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    cpc = CpcService(db).create(data, admin.id, ctx)
    return ApiResponse(message="Code CPC créé", data=Cpc.from_orm(cpc))


@router.post("/bulk", response_model=ApiResponse[BulkResult])
def bulk_create_cpc(
    items: List[CpcCreate],
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    """Création ou mise à jour en masse (admin)"""
    created, updated = CpcService(db).bulk_create(items, admin.id, ctx)
    return ApiResponse(message="Import terminé", data=BulkResult(created=created, updated=updated))


@router.get("/", response_model=PaginatedResponse[Cpc])
def list_cpc(
    query: CpcQuery = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    items, total = CpcService(db).find_all(query)
    return paginated("Codes CPC récupérés", [Cpc.from_orm(c) for c in items], total, query.page, query.limit)


@router.get("/select", response_model=ApiResponse[List[CpcSelectOption]])
def cpc_for_select(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    """Liste compacte (code, nom) pour les listes déroulantes"""
    items = CpcService(db).get_for_select()
    return ApiResponse(message="Codes CPC récupérés", data=[CpcSelectOption.from_orm(c) for c in items])


@router.get("/{code}/children", response_model=ApiResponse[List[Cpc]])
def cpc_children(
    code: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    items = CpcService(db).find_children(code)
    return ApiResponse(message="Sous-codes récupérés", data=[Cpc.from_orm(c) for c in items])


@router.get("/{code}", response_model=ApiResponse[Cpc])
def read_cpc(
    code: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    cpc = CpcService(db).find_one(code)
    return ApiResponse(message="Code CPC récupéré", data=Cpc.from_orm(cpc))


@router.patch("/{code}", response_model=ApiResponse[Cpc])
def update_cpc(
    code: str,
    data: CpcUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    cpc = CpcService(db).update(code, data, admin.id, ctx)
    return ApiResponse(message="Code CPC mis à jour", data=Cpc.from_orm(cpc))


@router.delete("/{code}", response_model=MessageResponse)
def delete_cpc(
    code: str,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    CpcService(db).delete(code, admin.id, ctx)
    return MessageResponse(message="Code CPC supprimé")
