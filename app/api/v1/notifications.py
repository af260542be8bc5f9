# ===================================
# app/api/v1/notifications.py
# ===================================
from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import paginated
from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User
from app.schemas.common import ApiResponse, PageQuery, PaginatedResponse
from app.schemas.notification import Notification
from app.services.notification_service import NotificationService

router = APIRouter()


@router.get("/", response_model=PaginatedResponse[Notification])
def list_notifications(
    query: PageQuery = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    items, total = NotificationService(db).get_user_notifications(current_user.id, query.page, query.limit)
    return paginated(
        "Notifications récupérées", [Notification.from_orm(n) for n in items], total, query.page, query.limit
    )


@router.patch("/{notification_id}/read", response_model=ApiResponse[Notification])
def mark_notification_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    notification = NotificationService(db).mark_as_read(current_user.id, notification_id)
    return ApiResponse(message="Notification marquée comme lue", data=Notification.from_orm(notification))
