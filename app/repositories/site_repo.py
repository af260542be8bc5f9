# ===================================
# app/repositories/site_repo.py
# ===================================
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import select, func, and_, desc
import math

from app.models.site import Site

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance orthodromique entre deux points (km)"""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


class SiteRepository:
    """Repository pour la gestion des sites"""

    def __init__(self, db: Session):
        self.db = db

    def get_site_by_id(self, site_id: int) -> Optional[Site]:
        """Récupérer un site par son ID"""
        return self.db.get(Site, site_id)

    def get_sites(self, skip: int = 0, limit: int = 10,
                  search: Optional[str] = None,
                  owner_id: Optional[int] = None) -> Tuple[List[Site], int]:
        """Récupérer les sites avec recherche sur le nom et pagination"""
        query = select(Site)

        conditions = []
        if search:
            conditions.append(Site.site_name.ilike(f"%{search}%"))
        if owner_id is not None:
            conditions.append(Site.owner_id == owner_id)
        if conditions:
            query = query.where(and_(*conditions))

        total = self.db.scalar(select(func.count()).select_from(query.subquery()))

        sites = self.db.scalars(
            query.order_by(desc(Site.created_at), desc(Site.id))
            .offset(skip)
            .limit(limit)
        ).all()

        return list(sites), total or 0

    def get_sites_near(self, lat: float, lng: float, radius_km: float) -> List[Tuple[Site, float]]:
        """
        Sites dans un rayon donné, du plus proche au plus éloigné.
        Un rectangle englobant filtre en SQL, la distance exacte est calculée ensuite.
        """
        d_lat = math.degrees(radius_km / EARTH_RADIUS_KM)
        cos_lat = math.cos(math.radians(lat))
        conditions = [Site.site_lat.between(lat - d_lat, lat + d_lat)]
        if cos_lat > 1e-6:
            d_lng = math.degrees(radius_km / (EARTH_RADIUS_KM * cos_lat))
            # Près des pôles ou de l'antiméridien, pas de filtre sur la longitude
            if lng - d_lng >= -180 and lng + d_lng <= 180:
                conditions.append(Site.site_lng.between(lng - d_lng, lng + d_lng))

        candidates = self.db.scalars(select(Site).where(and_(*conditions))).all()

        results = []
        for site in candidates:
            distance = haversine_km(lat, lng, site.site_lat, site.site_lng)
            if distance <= radius_km:
                results.append((site, distance))
        results.sort(key=lambda item: (item[1], item[0].id))
        return results

    def create_site(self, site_data: dict) -> Site:
        """Créer un nouveau site"""
        site = Site(**site_data)
        self.db.add(site)
        self.db.flush()
        return site
