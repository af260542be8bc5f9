# ===================================
# app/services/passif_service.py
# ===================================
from decimal import Decimal
from typing import List, Optional, Tuple
import logging

from sqlalchemy.orm import Session

from app.core.exceptions import InsufficientQuantity, NotFoundError, ValidationError
from app.models.passif import Passif, PassifReason
from app.repositories.ledger_repo import PassifRepository
from app.schemas.ledger import PassifQuery

logger = logging.getLogger(__name__)


class PassifService:
    """Registre des passifs (détenteur physique et ayant-droit distincts)"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PassifRepository(db)

    def add_or_increase(self, user_id: int, site_id: int, product_id: int, quantite: int,
                        reason: PassifReason = PassifReason.RETRAIT,
                        ayant_droit_id: Optional[int] = None,
                        detentaire_id: Optional[int] = None,
                        prix_unitaire: Decimal = Decimal("0")) -> Passif:
        """
        Créer le passif ou augmenter sa quantité. La ligne est toujours
        réactivée et son motif remplacé par le plus récent.
        """
        if quantite <= 0:
            raise ValidationError("La quantité doit être strictement positive")
        return self.repo.increment(
            user_id=user_id,
            site_id=site_id,
            product_id=product_id,
            ayant_droit_id=ayant_droit_id if ayant_droit_id is not None else user_id,
            qty=quantite,
            reason=reason,
            detentaire_id=detentaire_id if detentaire_id is not None else user_id,
            prix_unitaire=prix_unitaire,
        )

    def settle(self, user_id: int, site_id: int, product_id: int, quantite: int) -> List[Passif]:
        """Régler des passifs ouverts, du plus ancien au plus récent ; clôture ceux soldés"""
        if quantite <= 0:
            raise ValidationError("La quantité doit être strictement positive")

        open_passifs = self.repo.get_open(user_id, site_id, product_id)
        if sum(p.quantite for p in open_passifs) < quantite:
            raise InsufficientQuantity("Passif insuffisant pour ce règlement.")

        remaining = quantite
        touched = []
        for passif in open_passifs:
            if remaining == 0:
                break
            part = min(remaining, passif.quantite)
            if not self.repo.reduce(passif.id, part, expected_qty=passif.quantite):
                logger.warning(f"Règlement concurrent refusé sur le passif {passif.id}")
                raise InsufficientQuantity("Passif insuffisant pour ce règlement.")
            remaining -= part
            touched.append(passif.id)

        return [self.repo.get_by_id(passif_id) for passif_id in touched]

    def list_by_user(self, user_id: int, query: PassifQuery) -> Tuple[List[Passif], int]:
        return self.repo.list(query, user_id=user_id)

    def list_by_user_and_site(self, user_id: int, site_id: int,
                              query: PassifQuery) -> Tuple[List[Passif], int]:
        return self.repo.list(query, user_id=user_id, site_id=site_id)

    def find_all(self, query: PassifQuery) -> Tuple[List[Passif], int]:
        """Tous les passifs (administration)"""
        return self.repo.list(query)

    def find_one(self, passif_id: int) -> Passif:
        passif = self.repo.get_by_id(passif_id)
        if not passif:
            raise NotFoundError("Passif non trouvé")
        return passif
