# ===================================
# app/api/v1/actifs.py
# ===================================
from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import paginated
from app.core.database import get_db
from app.core.exceptions import ForbiddenError
from app.core.security import get_current_user
from app.models.user import User, UserRole
from app.schemas.common import ApiResponse, PaginatedResponse
from app.schemas.ledger import Actif, ActifQuery
from app.services.actif_service import ActifService

router = APIRouter()


@router.get("/", response_model=PaginatedResponse[Actif])
def list_my_actifs(
    query: ActifQuery = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    """
    Actifs de l'utilisateur connecté (lignes archivées exclues par défaut)
    """
    items, total = ActifService(db).list_by_user(current_user.id, query)
    return paginated("Actifs récupérés", [Actif.from_orm(a) for a in items], total, query.page, query.limit)


@router.get("/site/{site_id}", response_model=PaginatedResponse[Actif])
def list_my_actifs_by_site(
    site_id: int,
    query: ActifQuery = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    items, total = ActifService(db).list_by_user_and_site(current_user.id, site_id, query)
    return paginated("Actifs récupérés", [Actif.from_orm(a) for a in items], total, query.page, query.limit)


@router.get("/{actif_id}", response_model=ApiResponse[Actif])
def read_actif(
    actif_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    actif = ActifService(db).find_one(actif_id)
    if actif.user_id != current_user.id and not current_user.has_role(UserRole.ADMIN):
        raise ForbiddenError()
    return ApiResponse(message="Actif récupéré", data=Actif.from_orm(actif))
