# ===================================
# app/services/user_service.py
# ===================================
from datetime import datetime, timedelta
from typing import List, Tuple
import logging

from sqlalchemy import delete
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.context import RequestContext
from app.core.database import unit_of_work
from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.core.security import generate_token, get_password_hash
from app.models.audit_log import AuditAction, EntityType
from app.models.user import User, UserRole, UserVerificationToken
from app.repositories import user_repo
from app.repositories.site_repo import SiteRepository
from app.schemas.user import UserCreate, UserUpdate, UserListQuery
from app.services.audit_service import AuditService, snapshot
from app.services.notification_service import NotificationService
from app.services.outbox_service import deliver_outbox

logger = logging.getLogger(__name__)


class UserService:
    """Cycle de vie des comptes : inscription, vérification, activation, suppression logique"""

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditService(db)
        self.notifications = NotificationService(db)

    def register(self, data: UserCreate, ctx: RequestContext) -> User:
        """
        Créer un compte non vérifié et non activé, son jeton de vérification
        et son site principal.
        """
        with unit_of_work(self.db):
            if user_repo.get_user_by_email(self.db, data.email):
                raise ConflictError("Email déjà utilisé")

            user = User(
                **data.dict(exclude={"password", "email"}),
                email=data.email.lower(),
                password_hash=get_password_hash(data.password),
                is_email_verified=False,
                is_validated=False,
            )
            self.db.add(user)
            self.db.flush()

            token = generate_token()
            user_repo.save_verification_token(
                self.db, user.id, token,
                datetime.utcnow() + timedelta(hours=settings.VERIFICATION_TOKEN_EXPIRE_HOURS),
            )

            site = SiteRepository(self.db).create_site({
                "site_name": f"{user.full_name} - Site principal",
                "site_address": data.address or "Adresse non renseignée",
                "site_lat": data.main_lat,
                "site_lng": data.main_lng,
                "owner_id": user.id,
            })

            self.audit.log(AuditAction.CREATE, EntityType.USER, user.id, user.id, ctx,
                           new_state=snapshot(user))
            self.audit.log(AuditAction.CREATE, EntityType.SITE, site.id, user.id, ctx,
                           new_state=snapshot(site))
            self.notifications.notify_all_admins(
                "Nouvel utilisateur",
                f"{user.email} vient de s'inscrire ({user.role.value})",
                {"user_id": user.id},
            )

        logger.info(f"Utilisateur {user.id} inscrit")
        logger.debug(f"Lien de vérification: {settings.APP_URL}/verify-account?token={token}")
        deliver_outbox(self.db)
        self.db.refresh(user)
        return user

    def verify_account(self, token: str, ctx: RequestContext) -> User:
        """Valider l'adresse email à partir du jeton reçu"""
        with unit_of_work(self.db):
            db_token = user_repo.get_verification_token(self.db, token)
            if not db_token or db_token.is_expired():
                raise ValidationError("Token invalide ou expiré")
            user = user_repo.get_user_by_id(self.db, db_token.user_id)
            if not user:
                raise NotFoundError("Utilisateur non trouvé")

            user.is_email_verified = True
            self.db.execute(
                delete(UserVerificationToken).where(UserVerificationToken.user_id == user.id)
            )
            self.audit.log(AuditAction.VERIFY_EMAIL, EntityType.USER, user.id, user.id, ctx,
                           new_state={"is_email_verified": True})
        self.db.refresh(user)
        return user

    def activate_account(self, user_id: int, admin: User, ctx: RequestContext) -> User:
        """Activation du compte par un administrateur"""
        with unit_of_work(self.db):
            user = self.find_one(user_id)
            user.is_validated = True
            self.audit.log(AuditAction.ACTIVATE_ACCOUNT, EntityType.USER, user.id, admin.id, ctx,
                           previous_state={"is_validated": False}, new_state={"is_validated": True})
            self.notifications.notify_user(
                user.id, "Compte activé", "Votre compte a été activé par un administrateur"
            )
        deliver_outbox(self.db)
        self.db.refresh(user)
        return user

    def find_one(self, user_id: int) -> User:
        user = user_repo.get_user_by_id(self.db, user_id)
        if not user:
            raise NotFoundError("Utilisateur non trouvé")
        return user

    def find_all_paginated(self, query: UserListQuery) -> Tuple[List[User], int]:
        return user_repo.get_users(self.db, query)

    def _check_self_or_admin(self, user_id: int, actor: User):
        if actor.id != user_id and not actor.has_role(UserRole.ADMIN):
            raise ForbiddenError("Action réservée au titulaire du compte ou à un administrateur")

    def update(self, user_id: int, data: UserUpdate, actor: User, ctx: RequestContext) -> User:
        self._check_self_or_admin(user_id, actor)
        with unit_of_work(self.db):
            user = self.find_one(user_id)
            previous = snapshot(user)
            for field, value in data.dict(exclude_unset=True).items():
                if value is not None:
                    setattr(user, field, value)
            self.db.flush()
            self.audit.log(AuditAction.UPDATE, EntityType.USER, user.id, actor.id, ctx,
                           previous_state=previous, new_state=snapshot(user))
        self.db.refresh(user)
        return user

    def change_role(self, user_id: int, role: UserRole, admin: User, ctx: RequestContext) -> User:
        with unit_of_work(self.db):
            user = self.find_one(user_id)
            previous_role = user.role
            user.role = role
            self.audit.log(AuditAction.CHANGE_ROLE, EntityType.USER, user.id, admin.id, ctx,
                           previous_state={"role": previous_role.value}, new_state={"role": role.value})
        self.db.refresh(user)
        return user

    def remove(self, user_id: int, actor: User, ctx: RequestContext) -> None:
        """Suppression logique : le compte est marqué, jamais effacé"""
        self._check_self_or_admin(user_id, actor)
        with unit_of_work(self.db):
            user = self.find_one(user_id)
            previous = snapshot(user)
            user.deleted_at = datetime.utcnow()
            user_repo.revoke_all_user_tokens(self.db, user.id)
            self.audit.log(AuditAction.DELETE, EntityType.USER, user.id, actor.id, ctx,
                           previous_state=previous, new_state={"deleted_at": user.deleted_at.isoformat()})
        logger.info(f"Utilisateur {user_id} supprimé (logique) par {actor.id}")
