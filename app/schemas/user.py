# ===================================
# app/schemas/user.py
# ===================================
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, validator

from app.models.user import UserRole, AccountType


class UserBase(BaseModel):
    email: EmailStr
    first_name: str = Field(min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    nick_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    account_type: AccountType = AccountType.PARTICULIER
    company_name: Optional[str] = None
    manager_name: Optional[str] = None
    manager_email: Optional[EmailStr] = None


class UserCreate(UserBase):
    password: str = Field(min_length=8)
    role: UserRole = UserRole.BUYER
    main_lat: float = Field(ge=-90, le=90)
    main_lng: float = Field(ge=-180, le=180)

    @validator("role")
    def no_self_admin(cls, v):
        """Le rôle ADMIN ne s'obtient que par un administrateur"""
        if v == UserRole.ADMIN:
            raise ValueError("Le rôle ADMIN ne peut pas être choisi à l'inscription")
        return v

    @validator("manager_email", always=True)
    def company_manager_required(cls, v, values):
        if values.get("account_type") == AccountType.ENTREPRISE:
            if not values.get("manager_name") or not v:
                raise ValueError("Le nom et l'email du responsable sont obligatoires pour une entreprise")
        return v


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = None
    nick_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    company_name: Optional[str] = None
    manager_name: Optional[str] = None
    manager_email: Optional[EmailStr] = None
    main_lat: Optional[float] = Field(None, ge=-90, le=90)
    main_lng: Optional[float] = Field(None, ge=-180, le=180)


class UserRoleUpdate(BaseModel):
    role: UserRole


class User(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: Optional[str] = None
    nick_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    role: UserRole
    account_type: AccountType
    company_name: Optional[str] = None
    main_lat: Optional[float] = None
    main_lng: Optional[float] = None
    is_email_verified: bool
    is_validated: bool
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserListQuery(BaseModel):
    """Options de liste des utilisateurs"""
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    search: Optional[str] = None
    sort_by: str = Field(default="created_at", pattern="^(created_at|email|first_name|last_name|role)$")
    order: str = Field(default="desc", pattern="^(asc|desc)$")
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None      # filtre sur is_validated
    is_verified: Optional[bool] = None    # filtre sur is_email_verified


# Authentification
class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class VerifyTokenRequest(BaseModel):
    token: str


class Token(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: int


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(min_length=8)
    confirm_password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=8)
    confirm_password: str
