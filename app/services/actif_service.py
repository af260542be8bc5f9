# ===================================
# app/services/actif_service.py
# ===================================
from typing import List, Tuple
import logging

from sqlalchemy.orm import Session

from app.core.exceptions import InsufficientQuantity, NotFoundError, ValidationError
from app.models.actif import Actif
from app.repositories.ledger_repo import ActifRepository
from app.schemas.ledger import ActifQuery

logger = logging.getLogger(__name__)


class ActifService:
    """
    Registre des actifs. Ne valide pas la transaction : l'appelant
    (service de mouvements) regroupe les écritures dans une seule unité.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = ActifRepository(db)

    def add_or_increase(self, user_id: int, site_id: int, product_id: int, quantite: int) -> Actif:
        """Créer l'actif ou augmenter sa quantité"""
        if quantite <= 0:
            raise ValidationError("La quantité doit être strictement positive")
        return self.repo.increment(user_id, site_id, product_id, quantite)

    def decrease(self, user_id: int, site_id: int, product_id: int, quantite: int) -> Actif:
        """
        Diminuer un actif actif. Une quantité égale au stock archive la ligne
        (quantité 0, is_active False, archived_at renseigné).
        """
        if quantite <= 0:
            raise ValidationError("La quantité doit être strictement positive")

        actif = self.repo.get_by_key(user_id, site_id, product_id, active_only=True)
        if not actif or actif.quantite < quantite:
            raise InsufficientQuantity()

        if actif.quantite == quantite:
            applied = self.repo.archive(actif.id, expected_qty=quantite)
        else:
            applied = self.repo.decrement(actif.id, quantite)

        if not applied:
            # La ligne a changé entre la lecture et l'écriture
            logger.warning(f"Sortie concurrente refusée sur l'actif {actif.id}")
            raise InsufficientQuantity()

        return self.repo.get_by_key(user_id, site_id, product_id)

    def list_by_user(self, user_id: int, query: ActifQuery) -> Tuple[List[Actif], int]:
        """Actifs d'un utilisateur ; les lignes archivées sont exclues par défaut"""
        return self.repo.list(query, user_id=user_id)

    def list_by_user_and_site(self, user_id: int, site_id: int,
                              query: ActifQuery) -> Tuple[List[Actif], int]:
        return self.repo.list(query, user_id=user_id, site_id=site_id)

    def find_one(self, actif_id: int) -> Actif:
        actif = self.repo.get_by_id(actif_id)
        if not actif:
            raise NotFoundError("Actif non trouvé")
        return actif
