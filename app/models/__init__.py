"""
Models package initialization.
This file imports all models to make them available to Alembic for autogeneration.
"""

# IMPORTANT: Utiliser la MÊME Base que celle de database.py
from app.core.database import Base

# Import all your models here so they are registered with Base.metadata
from .user import User, UserRole, AccountType, RefreshToken, UserVerificationToken
from .site import Site
from .cpc import CpcProduct
from .product import Product, ProductState
from .actif import Actif
from .passif import Passif, PassifReason
from .depot_item import DepotItem
from .stock_movement import StockMovement, MovementType
from .audit_log import AuditLog, AuditAction, EntityType
from .notification import Notification
from .job import JobQueue, JobStatus  # Outbox des effets de bord

__all__ = [
    'Base',
    'User', 'UserRole', 'AccountType', 'RefreshToken', 'UserVerificationToken',
    'Site', 'CpcProduct', 'Product', 'ProductState',
    'Actif', 'Passif', 'PassifReason', 'DepotItem', 'StockMovement', 'MovementType',
    'AuditLog', 'AuditAction', 'EntityType', 'Notification',
    'JobQueue', 'JobStatus',
]
