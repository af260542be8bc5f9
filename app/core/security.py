# ===================================
# app/core/security.py
# ===================================

from datetime import datetime, timedelta
from typing import Any, Union, Optional
import hashlib
import secrets

from jose import jwt, JWTError
from passlib.context import CryptContext
from fastapi import Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import UnauthorizedError, ForbiddenError, AuthErrorMessage

# Configuration du hachage des mots de passe
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

# Configuration du bearer token
security = HTTPBearer(auto_error=False)


def create_access_token(
    subject: Union[str, Any],
    claims: Optional[dict] = None,
    expires_delta: timedelta = None,
) -> str:
    """Créer un token d'accès JWT"""
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode = dict(claims or {})
    to_encode.update({
        "exp": expire,
        "sub": str(subject),
        "type": "access",
    })
    encoded_jwt = jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )
    return encoded_jwt


def create_refresh_token(subject: Union[str, Any]) -> str:
    """Créer un token de rafraîchissement"""
    expire = datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    to_encode = {
        "exp": expire,
        "sub": str(subject),
        "type": "refresh",
        # Deux tokens émis dans la même seconde doivent rester distincts
        "jti": secrets.token_hex(16),
    }
    encoded_jwt = jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )
    return encoded_jwt


def generate_token() -> str:
    """Jeton opaque aléatoire (vérification d'email, réinitialisation)"""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """Empreinte sha256 d'un jeton stocké en base"""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Vérifier un mot de passe"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hacher un mot de passe"""
    return pwd_context.hash(password)


def decode_token(token: str) -> dict:
    """Décoder et valider un token JWT"""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
        return payload
    except JWTError:
        raise UnauthorizedError(AuthErrorMessage.INVALID_TOKEN)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    db: Session = Depends(get_db)
):
    """Obtenir l'utilisateur actuel à partir du token"""
    from app.repositories.user_repo import get_user_by_id  # Import local pour éviter les imports circulaires

    if credentials is None:
        raise UnauthorizedError("Token d'authentification manquant")

    payload = decode_token(credentials.credentials)
    user_id = payload.get("sub")
    if user_id is None or payload.get("type") != "access":
        raise UnauthorizedError(AuthErrorMessage.INVALID_TOKEN)

    user = get_user_by_id(db, user_id=int(user_id))
    if user is None:
        raise UnauthorizedError(AuthErrorMessage.USER_NOT_FOUND)

    return user


def require_roles(*roles):
    """Dépendance vérifiant le rôle de l'utilisateur authentifié"""
    def role_checker(current_user=Depends(get_current_user)):
        if not current_user.has_role(*roles):
            raise ForbiddenError("Accès refusé : rôle insuffisant")
        return current_user

    return role_checker
