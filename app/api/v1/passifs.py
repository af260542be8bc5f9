# ===================================
# app/api/v1/passifs.py
# ===================================
from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import paginated, require_admin
from app.core.database import get_db
from app.core.exceptions import ForbiddenError
from app.core.security import get_current_user
from app.models.user import User, UserRole
from app.schemas.common import ApiResponse, PaginatedResponse
from app.schemas.ledger import Passif, PassifQuery
from app.services.passif_service import PassifService

router = APIRouter()


@router.get("/", response_model=PaginatedResponse[Passif])
def list_my_passifs(
    query: PassifQuery = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    items, total = PassifService(db).list_by_user(current_user.id, query)
    return paginated("Passifs récupérés", [Passif.from_orm(p) for p in items], total, query.page, query.limit)


@router.get("/all", response_model=PaginatedResponse[Passif])
def list_all_passifs(
    query: PassifQuery = Depends(),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> Any:
    """
    Tous les passifs (admin)
    """
    items, total = PassifService(db).find_all(query)
    return paginated("Passifs récupérés", [Passif.from_orm(p) for p in items], total, query.page, query.limit)


@router.get("/site/{site_id}", response_model=PaginatedResponse[Passif])
def list_my_passifs_by_site(
    site_id: int,
    query: PassifQuery = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    items, total = PassifService(db).list_by_user_and_site(current_user.id, site_id, query)
    return paginated("Passifs récupérés", [Passif.from_orm(p) for p in items], total, query.page, query.limit)


@router.get("/{passif_id}", response_model=ApiResponse[Passif])
def read_passif(
    passif_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    passif = PassifService(db).find_one(passif_id)
    allowed = {passif.user_id, passif.ayant_droit_id, passif.detentaire_id}
    if current_user.id not in allowed and not current_user.has_role(UserRole.ADMIN):
        raise ForbiddenError()
    return ApiResponse(message="Passif récupéré", data=Passif.from_orm(passif))
