# ===================================
# app/services/notification_service.py
# ===================================
from collections import defaultdict
from datetime import datetime
from threading import Lock
from typing import Callable, Dict, List, Optional, Tuple
import logging

from sqlalchemy import select, func, desc
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models.notification import Notification
from app.services.outbox_service import OutboxService, outbox_handler

logger = logging.getLogger(__name__)

ADMIN_ROOM = "admin_room"


def user_room(user_id: int) -> str:
    return f"user_{user_id}"


class NotificationHub:
    """Canaux de diffusion en direct (canal -> abonnés)"""

    def __init__(self):
        self._subscribers: Dict[str, List[Callable[[str, dict], None]]] = defaultdict(list)
        self._lock = Lock()

    def subscribe(self, channel: str, callback: Callable[[str, dict], None]) -> None:
        with self._lock:
            self._subscribers[channel].append(callback)

    def publish(self, channel: str, event: str, payload: dict) -> int:
        with self._lock:
            subscribers = list(self._subscribers.get(channel, []))
        for callback in subscribers:
            callback(event, payload)
        return len(subscribers)

    def clear(self) -> None:
        with self._lock:
            self._subscribers.clear()


hub = NotificationHub()


@outbox_handler("notification.user")
def push_to_user(payload: dict) -> None:
    hub.publish(user_room(payload["user_id"]), "notification", payload)


@outbox_handler("notification.admins")
def push_to_admins(payload: dict) -> None:
    hub.publish(ADMIN_ROOM, "admin_notification", payload)


class NotificationService:
    """Notifications persistées pour un utilisateur et alertes administrateur"""

    def __init__(self, db: Session):
        self.db = db
        self.outbox = OutboxService(db)

    def notify_user(self, user_id: int, title: str, message: str) -> Notification:
        """Persister la notification puis planifier sa diffusion sur le canal de l'utilisateur"""
        notification = Notification(user_id=user_id, title=title, message=message, is_read=False)
        self.db.add(notification)
        self.db.flush()

        self.outbox.enqueue("notification.user", {
            "id": notification.id,
            "user_id": user_id,
            "title": title,
            "message": message,
            "is_read": False,
            "created_at": notification.created_at.isoformat() if notification.created_at else None,
        })
        return notification

    def notify_all_admins(self, title: str, message: str, data: Optional[dict] = None) -> None:
        """Alerte diffusée aux administrateurs, sans persistance"""
        self.outbox.enqueue("notification.admins", {
            "type": "ADMIN_ALERT",
            "title": title,
            "message": message,
            "data": data,
            "timestamp": datetime.utcnow().isoformat(),
        })

    def get_user_notifications(self, user_id: int, page: int = 1,
                               limit: int = 10) -> Tuple[List[Notification], int]:
        """Notifications paginées, les plus récentes d'abord"""
        query = select(Notification).where(Notification.user_id == user_id)
        total = self.db.scalar(select(func.count()).select_from(query.subquery()))
        items = self.db.scalars(
            query.order_by(desc(Notification.created_at), desc(Notification.id))
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
        return list(items), total or 0

    def mark_as_read(self, user_id: int, notification_id: int) -> Notification:
        notification = self.db.scalar(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        if not notification:
            raise NotFoundError("Notification non trouvée")
        notification.is_read = True
        self.db.commit()
        self.db.refresh(notification)
        return notification
