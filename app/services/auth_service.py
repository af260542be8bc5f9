# ===================================
# app/services/auth_service.py
# ===================================
"""
Authentification : connexion, jetons de rafraîchissement et mots de passe.

Les tentatives de connexion refusées sont journalisées puis validées avant
que l'erreur ne soit levée, pour que l'audit les conserve.
"""

from datetime import datetime, timedelta
from typing import Optional
import logging

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.context import RequestContext
from app.core.database import unit_of_work
from app.core.exceptions import (
    AuthErrorMessage, ForbiddenError, UnauthorizedError, ValidationError
)
from app.core.security import (
    create_access_token, create_refresh_token, decode_token, generate_token,
    get_password_hash, hash_token, verify_password
)
from app.models.audit_log import AuditAction, EntityType
from app.models.user import User
from app.repositories import user_repo
from app.schemas.user import ChangePasswordRequest, ResetPasswordRequest, Token
from app.services.audit_service import AuditService

logger = logging.getLogger(__name__)


def access_claims(user: User) -> dict:
    return {
        "email": user.email,
        "role": user.role.value,
        "validated": user.is_validated,
        "verified": user.is_email_verified,
    }


class AuthService:

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditService(db)

    def _reject_login(self, user: Optional[User], email: str, message: str,
                      ctx: RequestContext):
        """Journaliser la tentative refusée puis lever l'erreur"""
        with unit_of_work(self.db):
            self.audit.log(
                AuditAction.LOGIN, EntityType.USER, user.id if user else None,
                user.id if user else None, ctx,
                new_state={"success": False, "email": email, "reason": message},
            )
        logger.warning(f"Connexion refusée pour {email}")
        raise UnauthorizedError(message)

    def login(self, email: str, password: str, ctx: RequestContext) -> Token:
        user = user_repo.get_user_by_email(self.db, email)

        if not user:
            self._reject_login(None, email, AuthErrorMessage.INVALID_CREDENTIALS, ctx)
        if not user.is_email_verified and not user.is_validated:
            self._reject_login(user, email, AuthErrorMessage.ACCOUNT_NOT_VERIFIED, ctx)
        if not user.is_validated:
            self._reject_login(user, email, AuthErrorMessage.ACCOUNT_INACTIVE, ctx)
        if not verify_password(password, user.password_hash):
            self._reject_login(user, email, AuthErrorMessage.INVALID_CREDENTIALS, ctx)

        with unit_of_work(self.db):
            access_token = create_access_token(subject=user.id, claims=access_claims(user))
            refresh_token = create_refresh_token(subject=user.id)
            expires_at = datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
            user_repo.save_refresh_token(self.db, user.id, refresh_token, expires_at, ctx)
            user_repo.update_last_login(self.db, user.id)
            self.audit.log(AuditAction.LOGIN, EntityType.USER, user.id, user.id, ctx,
                           new_state={"success": True})

        logger.info(f"Connexion de l'utilisateur {user.id}")
        return Token(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        )

    def logout(self, refresh_token: str, ctx: RequestContext) -> None:
        with unit_of_work(self.db):
            db_token = user_repo.get_refresh_token(self.db, refresh_token)
            if not db_token or not user_repo.revoke_refresh_token(self.db, refresh_token):
                raise ValidationError(AuthErrorMessage.INVALID_REFRESH_TOKEN)
            self.audit.log(AuditAction.LOGOUT, EntityType.USER, db_token.user_id, db_token.user_id, ctx)

    def refresh(self, refresh_token: str, ctx: RequestContext) -> Token:
        """Nouveau jeton d'accès à partir d'un refresh token valide"""
        with unit_of_work(self.db):
            db_token = user_repo.get_valid_refresh_token(self.db, refresh_token)
            if not db_token:
                raise ForbiddenError(AuthErrorMessage.INVALID_REFRESH_TOKEN)
            user = user_repo.get_user_by_id(self.db, db_token.user_id)
            if not user:
                raise ForbiddenError(AuthErrorMessage.USER_NOT_FOUND)

            access_token = create_access_token(subject=user.id, claims=access_claims(user))
            self.audit.log(AuditAction.REFRESH_TOKEN, EntityType.USER, user.id, user.id, ctx)

        return Token(
            access_token=access_token,
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        )

    def verify_token(self, token: str) -> dict:
        """Vérifier un jeton d'accès et retourner ses claims"""
        payload = decode_token(token)
        if payload.get("type") != "access":
            raise UnauthorizedError(AuthErrorMessage.INVALID_TOKEN)
        return payload

    def forgot_password(self, email: str, ctx: RequestContext) -> None:
        """La réponse est identique que l'email existe ou non"""
        with unit_of_work(self.db):
            user = user_repo.get_user_by_email(self.db, email)
            if not user:
                return
            token = generate_token()
            user.reset_password_token = hash_token(token)
            user.reset_password_expires = datetime.utcnow() + timedelta(
                hours=settings.PASSWORD_RESET_EXPIRE_HOURS
            )
            self.audit.log(AuditAction.PASSWORD_RESET, EntityType.USER, user.id, user.id, ctx,
                           new_state={"requested": True})
        logger.debug(f"Lien de réinitialisation: {settings.APP_URL}/reset-password?token={token}")

    def reset_password(self, dto: ResetPasswordRequest, ctx: RequestContext) -> None:
        if dto.new_password != dto.confirm_password:
            raise ValidationError("Les mots de passe ne correspondent pas")

        with unit_of_work(self.db):
            user = user_repo.get_user_by_reset_token(self.db, hash_token(dto.token))
            if (not user or not user.reset_password_expires
                    or user.reset_password_expires.replace(tzinfo=None) < datetime.utcnow()):
                raise ValidationError("Token de réinitialisation invalide ou expiré")

            user.password_hash = get_password_hash(dto.new_password)
            user.reset_password_token = None
            user.reset_password_expires = None
            user_repo.revoke_all_user_tokens(self.db, user.id)
            self.audit.log(AuditAction.PASSWORD_CHANGED, EntityType.USER, user.id, user.id, ctx)

    def change_password(self, user: User, dto: ChangePasswordRequest, ctx: RequestContext) -> None:
        if dto.new_password != dto.confirm_password:
            raise ValidationError("Les mots de passe ne correspondent pas")
        if dto.new_password == dto.current_password:
            raise ValidationError("Le nouveau mot de passe doit être différent de l'actuel")
        if not verify_password(dto.current_password, user.password_hash):
            raise ValidationError("Mot de passe actuel incorrect")

        with unit_of_work(self.db):
            user.password_hash = get_password_hash(dto.new_password)
            self.audit.log(AuditAction.PASSWORD_CHANGED, EntityType.USER, user.id, user.id, ctx)
