# ===================================
# app/api/v1/products.py
# ===================================
from typing import Any
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_request_context, paginated, require_admin
from app.core.context import RequestContext
from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User
from app.schemas.common import ApiResponse, MessageResponse, PaginatedResponse
from app.schemas.product import Product, ProductCreate, ProductUpdate, ProductQuery, StockStatusUpdate
from app.services.product_service import ProductService

router = APIRouter()


@router.post("/", response_model=ApiResponse[Product], status_code=status.HTTP_201_CREATED)
def create_product(
    product_data: ProductCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    """
    Créer un nouveau produit (en attente de validation)
    """
    product = ProductService(db).create_product(product_data, current_user, ctx)
    return ApiResponse(message="Produit créé avec succès", data=Product.from_orm(product))


@router.get("/", response_model=PaginatedResponse[Product])
def list_products(
    query: ProductQuery = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    """
    Lister les produits avec filtres et pagination
    """
    products, total = ProductService(db).get_products(query)
    return paginated("Produits récupérés", [Product.from_orm(p) for p in products], total, query.page, query.limit)


@router.get("/me", response_model=PaginatedResponse[Product])
def list_my_products(
    query: ProductQuery = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    products, total = ProductService(db).get_my_products(current_user.id, query)
    return paginated("Produits récupérés", [Product.from_orm(p) for p in products], total, query.page, query.limit)


@router.get("/{product_id}", response_model=ApiResponse[Product])
def read_product(
    product_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    product = ProductService(db).get_product(product_id)
    return ApiResponse(message="Produit récupéré", data=Product.from_orm(product))


@router.patch("/{product_id}", response_model=ApiResponse[Product])
def update_product(
    product_id: int,
    product_update: ProductUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    product = ProductService(db).update_product(product_id, product_update, current_user, ctx)
    return ApiResponse(message="Produit mis à jour", data=Product.from_orm(product))


@router.patch("/{product_id}/validation", response_model=ApiResponse[Product])
def toggle_product_validation(
    product_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    """
    Valider / invalider un produit (admin)
    """
    product = ProductService(db).toggle_validation(product_id, admin, ctx)
    return ApiResponse(message="Validation du produit mise à jour", data=Product.from_orm(product))


@router.patch("/{product_id}/stock", response_model=ApiResponse[Product])
def toggle_product_stock(
    product_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    product = ProductService(db).toggle_stock(product_id, current_user, ctx)
    return ApiResponse(message="Statut de stockage mis à jour", data=Product.from_orm(product))


@router.put("/{product_id}/stock", response_model=ApiResponse[Product])
def set_product_stock(
    product_id: int,
    data: StockStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    product = ProductService(db).set_stock_status(product_id, data.is_stocker, current_user, ctx)
    return ApiResponse(message="Statut de stockage mis à jour", data=Product.from_orm(product))


@router.delete("/{product_id}", response_model=MessageResponse)
def delete_product(
    product_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    ProductService(db).delete_product(product_id, current_user, ctx)
    return MessageResponse(message="Produit supprimé")
