# ===================================
# app/api/v1/sites.py
# ===================================
from typing import Any
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_request_context, paginated
from app.core.context import RequestContext
from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User
from app.schemas.common import ApiResponse, MessageResponse, PaginatedResponse
from app.schemas.site import Site, SiteCreate, SiteUpdate, SiteQuery, NearbyQuery, SiteWithDistance
from app.services.site_service import SiteService

router = APIRouter()


@router.post("/", response_model=ApiResponse[Site], status_code=status.HTTP_201_CREATED)
def create_site(
    site_data: SiteCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    """Créer un site pour l'utilisateur connecté"""
    site = SiteService(db).create(current_user.id, site_data, ctx)
    return ApiResponse(message="Site créé avec succès", data=Site.from_orm(site))


@router.get("/", response_model=PaginatedResponse[Site])
def list_sites(
    query: SiteQuery = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    sites, total = SiteService(db).find_all(query)
    return paginated("Sites récupérés", [Site.from_orm(s) for s in sites], total, query.page, query.limit)


@router.get("/me", response_model=PaginatedResponse[Site])
def list_my_sites(
    query: SiteQuery = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    """Sites de l'utilisateur connecté"""
    sites, total = SiteService(db).find_all_by_user(current_user.id, query)
    return paginated("Sites récupérés", [Site.from_orm(s) for s in sites], total, query.page, query.limit)


@router.get("/nearby", response_model=PaginatedResponse[SiteWithDistance])
def find_sites_nearby(
    query: NearbyQuery = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    """Sites dans un rayon (km) autour d'un point"""
    results, total = SiteService(db).find_by_location(query)
    items = [
        SiteWithDistance(**Site.from_orm(site).dict(), distance_km=round(distance, 3))
        for site, distance in results
    ]
    return paginated("Sites à proximité", items, total, query.page, query.limit)


@router.get("/{site_id}", response_model=ApiResponse[Site])
def read_site(
    site_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    site = SiteService(db).find_one(site_id)
    return ApiResponse(message="Site récupéré", data=Site.from_orm(site))


@router.patch("/{site_id}", response_model=ApiResponse[Site])
def update_site(
    site_id: int,
    site_update: SiteUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    site = SiteService(db).update(site_id, site_update, current_user, ctx)
    return ApiResponse(message="Site mis à jour", data=Site.from_orm(site))


@router.delete("/{site_id}", response_model=MessageResponse)
def delete_site(
    site_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    SiteService(db).remove(site_id, current_user, ctx)
    return MessageResponse(message="Site supprimé")
