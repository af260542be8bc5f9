# ===================================
# app/repositories/user_repo.py
# ===================================
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import select, func, and_, or_, desc, asc, update, delete
from datetime import datetime

from app.core.context import RequestContext
from app.models.user import User, RefreshToken, UserVerificationToken
from app.schemas.user import UserListQuery


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    """Récupérer un utilisateur non supprimé par son ID"""
    return db.scalar(
        select(User)
        .where(User.id == user_id, User.deleted_at.is_(None))
    )


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Récupérer un utilisateur non supprimé par son email"""
    return db.scalar(
        select(User)
        .where(User.email == email.lower(), User.deleted_at.is_(None))
    )


def get_users(db: Session, query: UserListQuery) -> Tuple[List[User], int]:
    """Récupérer la liste des utilisateurs avec filtres"""
    stmt = select(User)

    # Filtres
    conditions = [User.deleted_at.is_(None)]

    if query.search:
        conditions.append(
            or_(
                User.email.ilike(f"%{query.search}%"),
                User.first_name.ilike(f"%{query.search}%"),
                User.last_name.ilike(f"%{query.search}%"),
                User.nick_name.ilike(f"%{query.search}%")
            )
        )

    if query.role is not None:
        conditions.append(User.role == query.role)

    if query.is_active is not None:
        conditions.append(User.is_validated == query.is_active)

    if query.is_verified is not None:
        conditions.append(User.is_email_verified == query.is_verified)

    stmt = stmt.where(and_(*conditions))

    # Compter le total
    count_query = select(func.count()).select_from(stmt.subquery())
    total = db.scalar(count_query)

    # Tri
    order_column = getattr(User, query.sort_by, User.created_at)
    direction = desc if query.order == "desc" else asc

    users = db.scalars(
        stmt.order_by(direction(order_column), direction(User.id))
        .offset((query.page - 1) * query.limit)
        .limit(query.limit)
    ).all()

    return list(users), total or 0


def update_last_login(db: Session, user_id: int):
    """Mettre à jour la dernière connexion"""
    db.execute(
        update(User)
        .where(User.id == user_id)
        .values(last_login=datetime.utcnow())
    )


def get_user_by_reset_token(db: Session, token_hash: str) -> Optional[User]:
    """Récupérer l'utilisateur porteur d'un jeton de réinitialisation"""
    return db.scalar(
        select(User)
        .where(User.reset_password_token == token_hash, User.deleted_at.is_(None))
    )


# Gestion des refresh tokens
def save_refresh_token(db: Session, user_id: int, token: str, expires_at: datetime,
                       ctx: RequestContext) -> RefreshToken:
    """Sauvegarder un refresh token"""
    db_token = RefreshToken(
        token=token,
        user_id=user_id,
        expires_at=expires_at,
        ip_address=ctx.ip_address,
        user_agent=ctx.user_agent,
    )
    db.add(db_token)
    db.flush()
    return db_token


def get_refresh_token(db: Session, token: str) -> Optional[RefreshToken]:
    """Récupérer un refresh token"""
    return db.scalar(select(RefreshToken).where(RefreshToken.token == token))


def get_valid_refresh_token(db: Session, token: str) -> Optional[RefreshToken]:
    """Récupérer un refresh token non révoqué et non expiré"""
    return db.scalar(
        select(RefreshToken)
        .where(
            RefreshToken.token == token,
            RefreshToken.is_revoked == False,  # noqa: E712
            RefreshToken.expires_at > datetime.utcnow()
        )
    )


def revoke_refresh_token(db: Session, token: str) -> bool:
    """Révoquer un refresh token"""
    result = db.execute(
        update(RefreshToken)
        .where(RefreshToken.token == token, RefreshToken.is_revoked == False)  # noqa: E712
        .values(is_revoked=True, revoked_at=datetime.utcnow())
    )
    return result.rowcount > 0


def revoke_all_user_tokens(db: Session, user_id: int) -> int:
    """Révoquer tous les refresh tokens d'un utilisateur"""
    result = db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user_id, RefreshToken.is_revoked == False)  # noqa: E712
        .values(is_revoked=True, revoked_at=datetime.utcnow())
    )
    return result.rowcount


def cleanup_expired_tokens(db: Session) -> int:
    """Supprimer les tokens expirés (refresh et vérification)"""
    now = datetime.utcnow()
    refresh = db.execute(delete(RefreshToken).where(RefreshToken.expires_at < now))
    verification = db.execute(
        delete(UserVerificationToken).where(UserVerificationToken.expires_at < now)
    )
    db.commit()
    return refresh.rowcount + verification.rowcount


# Jetons de vérification d'email
def save_verification_token(db: Session, user_id: int, token: str,
                            expires_at: datetime) -> UserVerificationToken:
    db_token = UserVerificationToken(token=token, user_id=user_id, expires_at=expires_at)
    db.add(db_token)
    db.flush()
    return db_token


def get_verification_token(db: Session, token: str) -> Optional[UserVerificationToken]:
    return db.scalar(select(UserVerificationToken).where(UserVerificationToken.token == token))
