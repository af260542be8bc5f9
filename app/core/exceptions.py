# ===================================
# app/core/exceptions.py
# ===================================
"""
Taxonomie des erreurs métier.

Chaque erreur porte son code HTTP ; le gestionnaire global de ``app.main``
les transforme en ``{"status": "error", "message": ..., "data": null}``.
"""

from typing import Optional

from fastapi import HTTPException, status


class AppError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Erreur interne du serveur"

    def __init__(self, message: Optional[str] = None, headers: Optional[dict] = None):
        super().__init__(
            status_code=self.status_code,
            detail=message or self.default_message,
            headers=headers,
        )

    @property
    def message(self) -> str:
        return self.detail


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Requête invalide"


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Non authentifié"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Accès refusé"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Ressource non trouvée"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "La ressource existe déjà"


class InternalError(AppError):
    pass


# Erreurs du registre de stock
class InsufficientQuantity(ValidationError):
    default_message = "Stock insuffisant pour cet ayant-droit."


class InsufficientStock(ValidationError):
    default_message = "Stock insuffisant pour cette sortie"


class ProductNotValidated(ValidationError):
    default_message = "Produit non validé par l'admin."


class SiteNotFound(NotFoundError):
    default_message = "Site non trouvé"


class AuthErrorMessage:
    """Messages d'authentification renvoyés au client"""
    INVALID_CREDENTIALS = (
        "Identifiants invalides. Veuillez vérifier votre e-mail et votre mot de passe puis réessayer."
    )
    ACCOUNT_NOT_VERIFIED = (
        "Votre compte n'est pas vérifié. Veuillez vérifier votre e-mail pour activer votre compte."
    )
    ACCOUNT_INACTIVE = "Compte inactif. Veuillez contacter le support pour activer votre compte."
    INVALID_REFRESH_TOKEN = "Jeton de rafraîchissement invalide ou expiré"
    INVALID_TOKEN = "Jeton invalide"
    USER_NOT_FOUND = "Utilisateur non trouvé"
