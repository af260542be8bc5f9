# ===================================
# app/schemas/site.py
# ===================================
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field


class SiteCreate(BaseModel):
    site_name: str = Field(min_length=1, max_length=255)
    site_address: str = Field(min_length=1)
    site_lat: float = Field(ge=-90, le=90)
    site_lng: float = Field(ge=-180, le=180)


class SiteUpdate(BaseModel):
    site_name: Optional[str] = Field(None, min_length=1, max_length=255)
    site_address: Optional[str] = None
    site_lat: Optional[float] = Field(None, ge=-90, le=90)
    site_lng: Optional[float] = Field(None, ge=-180, le=180)


class GeoPoint(BaseModel):
    type: str = "Point"
    coordinates: List[float]


class Site(BaseModel):
    id: int
    site_name: str
    site_address: str
    site_lat: float
    site_lng: float
    location: GeoPoint
    owner_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SiteWithDistance(Site):
    distance_km: float


class SiteQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    search: Optional[str] = None


class NearbyQuery(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    radius_km: float = Field(default=5, gt=0, le=20000)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
