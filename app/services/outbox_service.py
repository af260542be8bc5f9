# ===================================
# app/services/outbox_service.py
# ===================================
"""
Outbox des effets de bord.

Les notifications sont enregistrées comme jobs dans la même transaction que
la mutation qui les provoque, puis livrées après le commit. Un job en échec
est replanifié jusqu'à épuisement de ses tentatives ; l'erreur est journalisée
et n'est jamais remontée à l'appelant de l'opération principale.
"""

from datetime import datetime
from typing import Callable, Dict, Optional
import logging

from sqlalchemy import select, update, asc
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.job import JobQueue, JobStatus

logger = logging.getLogger(__name__)

_HANDLERS: Dict[str, Callable[[dict], None]] = {}


def outbox_handler(kind: str):
    """Enregistrer le livreur d'un type de job"""
    def decorator(func):
        _HANDLERS[kind] = func
        return func
    return decorator


def _get_handler(kind: str) -> Optional[Callable[[dict], None]]:
    if not _HANDLERS:
        # Les livreurs s'enregistrent à l'import de leur module
        import app.services.notification_service  # noqa: F401
    return _HANDLERS.get(kind)


class OutboxService:

    def __init__(self, db: Session):
        self.db = db

    def enqueue(self, kind: str, payload: dict) -> JobQueue:
        """Ajouter un job ; il est validé avec la transaction courante"""
        job = JobQueue(
            kind=kind,
            payload=payload,
            status=JobStatus.PENDING.value,
            max_attempts=settings.OUTBOX_MAX_ATTEMPTS,
        )
        self.db.add(job)
        self.db.flush()
        return job

    def _claim(self, job_id: int) -> bool:
        """Passer un job PENDING en RUNNING ; un seul dispatcher peut le réclamer"""
        claimed = self.db.execute(
            update(JobQueue)
            .where(JobQueue.id == job_id, JobQueue.status == JobStatus.PENDING.value)
            .values(status=JobStatus.RUNNING.value, started_at=datetime.utcnow())
        ).rowcount
        self.db.commit()
        return claimed == 1

    def dispatch_pending(self, limit: Optional[int] = None) -> int:
        """Livrer les jobs prêts ; retourne le nombre de jobs livrés"""
        jobs = self.db.scalars(
            select(JobQueue)
            .where(
                JobQueue.status == JobStatus.PENDING.value,
                JobQueue.run_at <= datetime.utcnow(),
            )
            .order_by(asc(JobQueue.run_at), asc(JobQueue.id))
            .limit(limit or settings.OUTBOX_BATCH_SIZE)
        ).all()

        delivered = 0
        for job in jobs:
            # Réclamé entre-temps par un autre dispatcher
            if not self._claim(job.id):
                continue
            handler = _get_handler(job.kind)
            try:
                if handler is None:
                    raise LookupError(f"Aucun livreur pour le job '{job.kind}'")
                handler(job.payload or {})
            except Exception as e:
                job.mark_failed(str(e))
                logger.error(f"Échec livraison job {job.id} ({job.kind}), tentative {job.attempts}: {e}")
            else:
                job.mark_completed()
                delivered += 1
            self.db.commit()

        return delivered


def deliver_outbox(db: Session) -> None:
    """Livraison immédiate après commit ; ce qui échoue sera repris par le scheduler"""
    try:
        OutboxService(db).dispatch_pending()
    except Exception as e:
        db.rollback()
        logger.error(f"Erreur livraison outbox: {e}")
