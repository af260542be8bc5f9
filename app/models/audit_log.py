# ===================================
# app/models/audit_log.py
# ===================================
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Enum
from datetime import datetime
import enum

from app.core.database import Base, enum_values


class AuditAction(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    REFRESH_TOKEN = "REFRESH_TOKEN"
    VERIFY_EMAIL = "VERIFY_EMAIL"
    ACTIVATE_ACCOUNT = "ACTIVATE_ACCOUNT"
    CHANGE_ROLE = "CHANGE_ROLE"
    PASSWORD_RESET = "PASSWORD_RESET"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"


class EntityType(str, enum.Enum):
    USER = "USER"
    SITE = "SITE"
    PRODUCT = "PRODUCT"
    CPC = "CPC"
    STOCK_MOVEMENT = "STOCK_MOVEMENT"
    DEPOT_ITEM = "DEPOT_ITEM"


class AuditLog(Base):
    """Journal d'audit en ajout seul"""
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(Enum(AuditAction, native_enum=False, values_callable=enum_values, length=32), nullable=False, index=True)
    entity_type = Column(Enum(EntityType, native_enum=False, values_callable=enum_values, length=32), nullable=False)
    entity_id = Column(String, nullable=True)
    # Null pour les actions échouées avant authentification
    user_id = Column(Integer, ForeignKey('user.id', ondelete='SET NULL'), nullable=True, index=True)
    previous_state = Column(JSON, nullable=True)
    new_state = Column(JSON, nullable=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', entity='{self.entity_type}')>"
