# ===================================
# Fichier: app/models/job.py
# ===================================
from sqlalchemy import Column, Integer, String, DateTime, Text, JSON
from datetime import datetime, timedelta
import enum

from app.core.database import Base


class JobStatus(str, enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobQueue(Base):
    """Outbox : effet de bord enregistré dans la même transaction que la mutation"""
    __tablename__ = "job_queue"

    id = Column(Integer, primary_key=True, index=True)
    kind = Column(String, nullable=False, index=True)  # Type de job
    payload = Column(JSON, nullable=True)  # Données du job
    status = Column(String, default=JobStatus.PENDING.value, nullable=False, index=True)

    # Planification
    run_at = Column(DateTime(timezone=True), default=datetime.utcnow, index=True)

    # Tentatives
    attempts = Column(Integer, default=0, nullable=False)
    max_attempts = Column(Integer, default=5, nullable=False)

    # Résultats
    last_error = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<JobQueue(id={self.id}, kind='{self.kind}', status='{self.status}')>"

    def mark_completed(self):
        """Marquer le job comme terminé"""
        self.status = JobStatus.COMPLETED.value
        self.completed_at = datetime.utcnow()
        self.last_error = None

    def mark_failed(self, error: str):
        """
        Enregistrer un échec. Le job est replanifié avec un délai croissant
        tant qu'il reste des tentatives, puis passe en FAILED.
        """
        self.attempts += 1
        self.last_error = error
        if self.attempts >= self.max_attempts:
            self.status = JobStatus.FAILED.value
            self.completed_at = datetime.utcnow()
        else:
            self.status = JobStatus.PENDING.value
            self.run_at = datetime.utcnow() + timedelta(seconds=30 * 2 ** (self.attempts - 1))
