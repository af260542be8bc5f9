# ===================================
# app/api/v1/auth.py
# ===================================
from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_request_context
from app.core.context import RequestContext
from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User as UserModel
from app.schemas.common import ApiResponse, MessageResponse
from app.schemas.user import (
    LoginRequest,
    RefreshTokenRequest,
    VerifyTokenRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    ChangePasswordRequest,
    Token,
    User,
)
from app.services.auth_service import AuthService

router = APIRouter()


@router.post("/login", response_model=ApiResponse[Token])
def login(
    login_data: LoginRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    """
    Connexion d'un utilisateur
    """
    token = AuthService(db).login(login_data.email, login_data.password, ctx)
    return ApiResponse(message="Connexion réussie", data=token)


@router.post("/logout", response_model=MessageResponse)
def logout(
    refresh_data: RefreshTokenRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    """
    Déconnexion : révocation du refresh token
    """
    AuthService(db).logout(refresh_data.refresh_token, ctx)
    return MessageResponse(message="Déconnexion réussie")


@router.post("/refresh", response_model=ApiResponse[Token])
def refresh_token(
    refresh_data: RefreshTokenRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    """
    Rafraîchir un token d'accès
    """
    token = AuthService(db).refresh(refresh_data.refresh_token, ctx)
    return ApiResponse(message="Token rafraîchi", data=token)


@router.post("/verify-token", response_model=ApiResponse[dict])
def verify_token(data: VerifyTokenRequest, db: Session = Depends(get_db)) -> Any:
    payload = AuthService(db).verify_token(data.token)
    return ApiResponse(message="Token valide", data=payload)


@router.get("/profile", response_model=ApiResponse[User])
def profile(current_user: UserModel = Depends(get_current_user)) -> Any:
    """
    Profil de l'utilisateur connecté
    """
    return ApiResponse(message="Profil récupéré", data=User.from_orm(current_user))


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    data: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    AuthService(db).forgot_password(data.email, ctx)
    return MessageResponse(
        message="Si un compte existe pour cet email, un lien de réinitialisation a été envoyé"
    )


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    data: ResetPasswordRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    AuthService(db).reset_password(data, ctx)
    return MessageResponse(message="Mot de passe réinitialisé avec succès")


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    data: ChangePasswordRequest,
    current_user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    """
    Changer le mot de passe de l'utilisateur connecté
    """
    AuthService(db).change_password(current_user, data, ctx)
    return MessageResponse(message="Mot de passe modifié avec succès")
