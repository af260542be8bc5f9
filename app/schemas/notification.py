# ===================================
# app/schemas/notification.py
# ===================================
from typing import Any, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from app.models.audit_log import AuditAction, EntityType


class Notification(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    is_read: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AuditLog(BaseModel):
    id: int
    action: AuditAction
    entity_type: EntityType
    entity_id: Optional[str] = None
    user_id: Optional[int] = None
    previous_state: Optional[Any] = None
    new_state: Optional[Any] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: Optional[datetime] = None

    class Config:
        from_attributes = True


class AuditQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    user_id: Optional[int] = None
    action: Optional[AuditAction] = None
    entity_type: Optional[EntityType] = None
