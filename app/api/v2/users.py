# ===================================
# app/api/v2/users.py
# ===================================
from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import paginated, require_admin
from app.core.database import get_db
from app.models.user import User as UserModel
from app.schemas.common import PaginatedResponse
from app.schemas.user import User, UserListQuery
from app.services.user_service import UserService

router = APIRouter()


@router.get("/all-paginated", response_model=PaginatedResponse[User])
def list_users_paginated(
    query: UserListQuery = Depends(),
    admin: UserModel = Depends(require_admin),
    db: Session = Depends(get_db),
) -> Any:
    """
    Liste paginée avec recherche, tri et filtres (rôle, activation, vérification)
    """
    users, total = UserService(db).find_all_paginated(query)
    return paginated("Utilisateurs récupérés", [User.from_orm(u) for u in users], total, query.page, query.limit)
