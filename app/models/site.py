# ===================================
# app/models/site.py
# ===================================
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, JSON, CheckConstraint, event
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


def geo_point(lat: float, lng: float) -> dict:
    """Point GeoJSON : la longitude vient en premier"""
    return {"type": "Point", "coordinates": [lng, lat]}


class Site(Base):
    __tablename__ = "site"
    __table_args__ = (
        CheckConstraint('site_lat >= -90 AND site_lat <= 90', name='check_site_lat_range'),
        CheckConstraint('site_lng >= -180 AND site_lng <= 180', name='check_site_lng_range'),
    )

    id = Column(Integer, primary_key=True, index=True)
    site_name = Column(String, nullable=False, index=True)
    site_address = Column(String, nullable=False)
    site_lat = Column(Float, nullable=False)
    site_lng = Column(Float, nullable=False)
    location = Column(JSON, nullable=False)
    owner_id = Column(Integer, ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relations
    owner = relationship("User", back_populates="sites")

    def __repr__(self):
        return f"<Site(id={self.id}, name='{self.site_name}')>"

    def sync_location(self):
        """Recalculer le point GeoJSON à partir de lat/lng"""
        self.location = geo_point(self.site_lat, self.site_lng)


@event.listens_for(Site, "before_insert")
@event.listens_for(Site, "before_update")
def _sync_site_location(mapper, connection, target: Site):
    target.sync_location()
