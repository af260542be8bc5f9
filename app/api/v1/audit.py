# ===================================
# app/api/v1/audit.py
# ===================================
from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import paginated, require_admin
from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User
from app.schemas.common import PageQuery, PaginatedResponse
from app.schemas.notification import AuditLog, AuditQuery
from app.services.audit_service import AuditService

router = APIRouter()


@router.get("/get-all-sessions", response_model=PaginatedResponse[AuditLog])
def my_sessions(
    query: PageQuery = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    """
    Journal d'activité de l'utilisateur connecté
    """
    items, total = AuditService(db).find_logs_by_user(current_user.id, query.page, query.limit)
    return paginated("Journal récupéré", [AuditLog.from_orm(a) for a in items], total, query.page, query.limit)


@router.get("/", response_model=PaginatedResponse[AuditLog])
def list_audit_logs(
    query: AuditQuery = Depends(),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> Any:
    items, total = AuditService(db).list(query)
    return paginated("Journal récupéré", [AuditLog.from_orm(a) for a in items], total, query.page, query.limit)
