# ===================================
# app/api/deps.py
# ===================================
from typing import Any, List, Optional

from fastapi import Depends, Request

from app.core.context import RequestContext
from app.core.security import get_current_user, require_roles
from app.models.user import User, UserRole
from app.schemas.common import PaginatedResponse


def get_request_context(request: Request) -> RequestContext:
    """
    Métadonnées de la requête transmises explicitement aux services
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip_address = forwarded.split(",")[0].strip()
    else:
        ip_address = request.client.host if request.client else None
    return RequestContext(
        ip_address=ip_address,
        user_agent=request.headers.get("user-agent"),
    )


def require_admin(current_user: User = Depends(require_roles(UserRole.ADMIN))) -> User:
    """
    Vérifier que l'utilisateur est admin
    """
    return current_user


def paginated(message: str, items: List[Any], total: int, page: int, limit: int,
              summary: Optional[Any] = None) -> PaginatedResponse:
    """Construire l'enveloppe standard d'une liste paginée"""
    return PaginatedResponse(
        status="success",
        message=message,
        data=items,
        total=total,
        page=page,
        limit=limit,
        summary=summary,
    )


__all__ = ["get_current_user", "get_request_context", "require_admin", "paginated"]
