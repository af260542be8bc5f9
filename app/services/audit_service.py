# ===================================
# app/services/audit_service.py
# ===================================
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional, Tuple
import enum

from sqlalchemy import select, func, and_, desc, inspect
from sqlalchemy.orm import Session

from app.core.context import RequestContext
from app.models.audit_log import AuditLog, AuditAction, EntityType
from app.schemas.notification import AuditQuery

# Jamais recopiés dans le journal
SENSITIVE_FIELDS = {"password_hash", "reset_password_token", "token"}


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, enum.Enum):
        return value.value
    return value


def snapshot(instance) -> Optional[dict]:
    """État d'une entité (colonnes uniquement) sérialisable en JSON"""
    if instance is None:
        return None
    return {
        attr.key: _jsonable(getattr(instance, attr.key))
        for attr in inspect(instance).mapper.column_attrs
        if attr.key not in SENSITIVE_FIELDS
    }


class AuditService:
    """Journal d'audit : les entrées sont écrites dans la transaction de l'appelant"""

    def __init__(self, db: Session):
        self.db = db

    def log(self, action: AuditAction, entity_type: EntityType, entity_id: Any,
            user_id: Optional[int], ctx: RequestContext,
            previous_state: Optional[dict] = None,
            new_state: Optional[dict] = None) -> AuditLog:
        entry = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            user_id=user_id,
            previous_state=previous_state,
            new_state=new_state,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def find_logs_by_user(self, user_id: int, page: int = 1, limit: int = 20) -> Tuple[List[AuditLog], int]:
        """Journal d'un utilisateur, du plus récent au plus ancien"""
        return self.list(AuditQuery(page=page, limit=limit, user_id=user_id))

    def list(self, query: AuditQuery) -> Tuple[List[AuditLog], int]:
        stmt = select(AuditLog)
        conditions = []
        if query.user_id is not None:
            conditions.append(AuditLog.user_id == query.user_id)
        if query.action is not None:
            conditions.append(AuditLog.action == query.action)
        if query.entity_type is not None:
            conditions.append(AuditLog.entity_type == query.entity_type)
        if conditions:
            stmt = stmt.where(and_(*conditions))

        total = self.db.scalar(select(func.count()).select_from(stmt.subquery()))
        items = self.db.scalars(
            stmt.order_by(desc(AuditLog.timestamp), desc(AuditLog.id))
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
        ).all()
        return list(items), total or 0
