# ===================================
# app/repositories/product_repo.py
# ===================================
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import select, func, and_, or_, desc, update

from app.models.actif import Actif
from app.models.depot_item import DepotItem
from app.models.passif import Passif
from app.models.product import Product
from app.models.stock_movement import StockMovement
from app.schemas.product import ProductQuery


class ProductRepository:
    """Repository pour la gestion des produits"""

    def __init__(self, db: Session):
        self.db = db

    def get_product_by_id(self, product_id: int) -> Optional[Product]:
        """Récupérer un produit par son ID"""
        return self.db.get(Product, product_id)

    def find_duplicate(self, owner_id: int, code_cpc: str, product_name: str,
                       exclude_id: Optional[int] = None) -> Optional[Product]:
        """Produit du même propriétaire avec le même nom et le même code CPC"""
        query = select(Product).where(
            Product.owner_id == owner_id,
            Product.code_cpc == code_cpc,
            func.lower(Product.product_name) == product_name.lower(),
        )
        if exclude_id is not None:
            query = query.where(Product.id != exclude_id)
        return self.db.scalar(query)

    def get_products(self, query: ProductQuery) -> Tuple[List[Product], int]:
        """Récupérer les produits avec filtres et pagination"""
        stmt = select(Product)

        # Filtres
        conditions = []

        if query.owner_id is not None:
            conditions.append(Product.owner_id == query.owner_id)

        if query.is_stocker is not None:
            conditions.append(Product.is_stocker == query.is_stocker)

        if query.product_validation is not None:
            conditions.append(Product.product_validation == query.product_validation)

        if query.search:
            conditions.append(
                or_(
                    Product.product_name.ilike(f"%{query.search}%"),
                    Product.code_cpc.ilike(f"%{query.search}%")
                )
            )

        if conditions:
            stmt = stmt.where(and_(*conditions))

        # Compter le total
        total = self.db.scalar(select(func.count()).select_from(stmt.subquery()))

        products = self.db.scalars(
            stmt.order_by(desc(Product.created_at), desc(Product.id))
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
        ).all()

        return list(products), total or 0

    def create_product(self, product_data: dict) -> Product:
        """Créer un nouveau produit"""
        product = Product(**product_data)
        self.db.add(product)
        self.db.flush()
        return product

    def update_product(self, product: Product, update_data: dict) -> Product:
        """Mettre à jour un produit"""
        for field, value in update_data.items():
            if hasattr(product, field) and value is not None:
                setattr(product, field, value)
        self.db.flush()
        return product

    def mark_stocked(self, product_id: int) -> bool:
        """Passer is_stocker à True s'il ne l'est pas déjà"""
        result = self.db.execute(
            update(Product)
            .where(Product.id == product_id, Product.is_stocker == False)  # noqa: E712
            .values(is_stocker=True)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount > 0

    def has_stock_records(self, product_id: int) -> bool:
        """Le produit figure-t-il dans le registre (mouvements, positions ou dépôts) ?"""
        for model in (StockMovement, Actif, Passif, DepotItem):
            found = self.db.scalar(
                select(model.id).where(model.product_id == product_id).limit(1)
            )
            if found is not None:
                return True
        return False
