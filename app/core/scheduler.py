# ===================================
# Fichier: app/core/scheduler.py
# ===================================
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.executors.pool import ThreadPoolExecutor
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)

scheduler = None


def init_scheduler():
    """Initialiser APScheduler"""
    global scheduler

    if not settings.SCHEDULER_ENABLED or scheduler is not None:
        return

    executors = {
        'default': ThreadPoolExecutor(5),
    }

    job_defaults = {
        'coalesce': True,
        'max_instances': 1
    }

    scheduler = BackgroundScheduler(
        executors=executors,
        job_defaults=job_defaults,
        timezone='UTC'
    )

    add_periodic_jobs()

    scheduler.start()
    logger.info("APScheduler démarré")


def add_periodic_jobs():
    """Ajouter les tâches périodiques"""
    # Diffusion des notifications en attente
    scheduler.add_job(
        func=dispatch_outbox_job,
        trigger='interval',
        seconds=settings.OUTBOX_INTERVAL_SECONDS,
        id='dispatch_outbox',
        replace_existing=True
    )

    # Nettoyage des tokens expirés (tous les jours à 2h)
    scheduler.add_job(
        func=cleanup_expired_tokens_job,
        trigger='cron',
        hour=2,
        minute=0,
        id='cleanup_expired_tokens',
        replace_existing=True
    )


def dispatch_outbox_job():
    """Job de diffusion de l'outbox"""
    try:
        from app.core.database import SessionLocal
        from app.services.outbox_service import OutboxService

        with SessionLocal() as db:
            count = OutboxService(db).dispatch_pending(settings.OUTBOX_BATCH_SIZE)
            if count:
                logger.info(f"Outbox: {count} job(s) livré(s)")
    except Exception as e:
        logger.error(f"Erreur diffusion outbox: {e}")


def cleanup_expired_tokens_job():
    """Job de nettoyage des tokens expirés"""
    try:
        from app.core.database import SessionLocal
        from app.repositories.user_repo import cleanup_expired_tokens

        with SessionLocal() as db:
            count = cleanup_expired_tokens(db)
            logger.info(f"Nettoyage tokens: {count} tokens expirés supprimés")
    except Exception as e:
        logger.error(f"Erreur nettoyage tokens: {e}")


def shutdown_scheduler():
    """Arrêter le scheduler"""
    global scheduler
    if scheduler:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("APScheduler arrêté")
