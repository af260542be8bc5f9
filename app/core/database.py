# ===================================
# app/core/database.py
# ===================================
from contextlib import contextmanager
from typing import Generator, Iterator
import logging

from sqlalchemy import create_engine, text
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings

logger = logging.getLogger(__name__)


def _engine_options() -> dict:
    """Options du moteur selon le backend (PostgreSQL en prod, SQLite en test)"""
    if settings.is_sqlite:
        options = {"connect_args": {"check_same_thread": False}}
        if settings.DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
            # Base en mémoire partagée entre les threads du serveur de test
            options["poolclass"] = StaticPool
        return options
    return {"pool_pre_ping": True}


# Configuration du moteur SQLAlchemy
engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,  # Log des requêtes SQL en mode debug
    future=True,  # SQLAlchemy 2.0 style
    **_engine_options(),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True
)

Base = declarative_base()


def enum_values(enum_cls) -> list:
    """Valeurs persistées pour une colonne Enum (les valeurs, pas les noms)"""
    return [member.value for member in enum_cls]


def get_db() -> Generator:
    """
    Générateur de session de base de données pour l'injection de dépendance FastAPI
    """
    try:
        db = SessionLocal()
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Transaction unique pour une opération métier en plusieurs étapes.
    Tout est validé ensemble ou annulé ensemble.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def init_db() -> None:
    """
    Initialise la base de données (création des tables manquantes)
    """
    import app.models  # noqa: F401  enregistre les modèles sur Base.metadata

    Base.metadata.create_all(bind=engine)
    logger.info("✓ Tables créées")


def check_db_connection() -> bool:
    """
    Vérifie la connexion à la base de données
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"❌ Erreur de connexion DB: {e}")
        return False
