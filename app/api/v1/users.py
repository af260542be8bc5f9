# ===================================
# app/api/v1/users.py
# ===================================
from typing import Any
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_request_context, paginated, require_admin
from app.core.context import RequestContext
from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User as UserModel
from app.schemas.common import ApiResponse, MessageResponse, PaginatedResponse
from app.schemas.user import User, UserCreate, UserUpdate, UserListQuery, UserRoleUpdate
from app.services.user_service import UserService

router = APIRouter()


@router.post("/", response_model=ApiResponse[User], status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    """
    Inscription : le compte doit être vérifié puis activé avant la connexion
    """
    user = UserService(db).register(user_data, ctx)
    return ApiResponse(
        message="Inscription réussie. Vérifiez votre email pour activer votre compte.",
        data=User.from_orm(user),
    )


@router.get("/verify-account", response_model=ApiResponse[User])
def verify_account(
    token: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    user = UserService(db).verify_account(token, ctx)
    return ApiResponse(message="Email vérifié avec succès", data=User.from_orm(user))


@router.get("/", response_model=PaginatedResponse[User])
def list_users(
    query: UserListQuery = Depends(),
    admin: UserModel = Depends(require_admin),
    db: Session = Depends(get_db),
) -> Any:
    """
    Liste paginée des utilisateurs (admin)
    """
    users, total = UserService(db).find_all_paginated(query)
    return paginated(
        "Utilisateurs récupérés", [User.from_orm(u) for u in users], total, query.page, query.limit
    )


@router.get("/me", response_model=ApiResponse[User])
def read_me(current_user: UserModel = Depends(get_current_user)) -> Any:
    return ApiResponse(message="Utilisateur récupéré", data=User.from_orm(current_user))


@router.get("/{user_id}", response_model=ApiResponse[User])
def read_user(
    user_id: int,
    current_user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    user = UserService(db).find_one(user_id)
    return ApiResponse(message="Utilisateur récupéré", data=User.from_orm(user))


@router.patch("/{user_id}", response_model=ApiResponse[User])
def update_user(
    user_id: int,
    user_update: UserUpdate,
    current_user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    user = UserService(db).update(user_id, user_update, current_user, ctx)
    return ApiResponse(message="Utilisateur mis à jour", data=User.from_orm(user))


@router.patch("/{user_id}/activate", response_model=ApiResponse[User])
def activate_user(
    user_id: int,
    admin: UserModel = Depends(require_admin),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    """
    Activer un compte (admin)
    """
    user = UserService(db).activate_account(user_id, admin, ctx)
    return ApiResponse(message="Compte activé", data=User.from_orm(user))


@router.patch("/{user_id}/role", response_model=ApiResponse[User])
def change_user_role(
    user_id: int,
    data: UserRoleUpdate,
    admin: UserModel = Depends(require_admin),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    user = UserService(db).change_role(user_id, data.role, admin, ctx)
    return ApiResponse(message="Rôle modifié", data=User.from_orm(user))


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    current_user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    """
    Suppression logique d'un compte
    """
    UserService(db).remove(user_id, current_user, ctx)
    return MessageResponse(message="Utilisateur supprimé")
