# ===================================
# app/models/user.py
# ===================================
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Float, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import datetime
import enum

from app.core.database import Base, enum_values


class UserRole(str, enum.Enum):
    BUYER = "BUYER"
    SELLER = "SELLER"
    CARRIER = "CARRIER"
    WAREHOUSE_MANAGER = "WAREHOUSE_MANAGER"
    ADMIN = "ADMIN"


class AccountType(str, enum.Enum):
    PARTICULIER = "Particulier"
    PROFESSIONNEL = "Professionnel"
    ENTREPRISE = "Entreprise"


class User(Base):
    __tablename__ = "user"

    id = Column(Integer, primary_key=True, index=True)
    # Unicité vérifiée parmi les comptes non supprimés (suppression logique)
    email = Column(String, index=True, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=True)
    nick_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    role = Column(
        Enum(UserRole, native_enum=False, values_callable=enum_values, length=32),
        default=UserRole.BUYER,
        nullable=False,
    )
    account_type = Column(
        Enum(AccountType, native_enum=False, values_callable=enum_values, length=32),
        default=AccountType.PARTICULIER,
        nullable=False,
    )

    # Entreprise
    company_name = Column(String, nullable=True)
    manager_name = Column(String, nullable=True)
    manager_email = Column(String, nullable=True)

    # Position du site principal
    main_lat = Column(Float, nullable=True)
    main_lng = Column(Float, nullable=True)

    # Authentification
    password_hash = Column(String, nullable=False)
    is_email_verified = Column(Boolean, default=False, nullable=False)
    is_validated = Column(Boolean, default=False, nullable=False)
    reset_password_token = Column(String, nullable=True, index=True)  # sha256 du jeton
    reset_password_expires = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    last_login = Column(DateTime(timezone=True), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    # Relations
    sites = relationship("Site", back_populates="owner")
    refresh_tokens = relationship("RefreshToken", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"

    @property
    def full_name(self):
        """Nom complet de l'utilisateur"""
        if self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name

    def has_role(self, *roles: UserRole) -> bool:
        """Vérifier si l'utilisateur a l'un des rôles donnés"""
        return self.role in roles


class RefreshToken(Base):
    __tablename__ = "refresh_token"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(Integer, ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_revoked = Column(Boolean, default=False, nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relations
    user = relationship("User", back_populates="refresh_tokens")

    def __repr__(self):
        return f"<RefreshToken(id={self.id}, user_id={self.user_id})>"


class UserVerificationToken(Base):
    __tablename__ = "user_verification_token"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(Integer, ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")

    def is_expired(self) -> bool:
        return datetime.utcnow() > self.expires_at.replace(tzinfo=None)
