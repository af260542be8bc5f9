import pytest

from app.core.exceptions import ForbiddenError
from app.repositories.site_repo import haversine_km
from app.schemas.site import SiteCreate, SiteUpdate, NearbyQuery
from app.services.site_service import SiteService

TANA = (-18.8792, 47.5079)


def test_create_stores_geojson_longitude_first(db_session, user, ctx):
    site = SiteService(db_session).create(
        user.id, SiteCreate(site_name="Tana", site_address="Analakely", site_lat=TANA[0], site_lng=TANA[1]), ctx
    )

    assert site.location == {"type": "Point", "coordinates": [47.5079, -18.8792]}


def test_update_recomputes_location(db_session, user, make_site, ctx):
    site = make_site(user, lat=0.0, lng=0.0)

    updated = SiteService(db_session).update(
        site.id, SiteUpdate(site_lat=TANA[0], site_lng=TANA[1]), user, ctx
    )

    assert updated.location["coordinates"] == [47.5079, -18.8792]


def test_location_on_read_paths(client, user, auth_headers):
    headers = auth_headers(user)
    created = client.post(
        "/api/v1/sites/",
        json={"site_name": "Tana", "site_address": "Analakely", "site_lat": 10, "site_lng": 20},
        headers=headers,
    )
    assert created.status_code == 201
    site_id = created.json()["data"]["id"]
    assert created.json()["data"]["location"]["coordinates"] == [20, 10]

    patched = client.patch(
        f"/api/v1/sites/{site_id}", json={"site_lat": TANA[0], "site_lng": TANA[1]}, headers=headers
    )
    assert patched.json()["data"]["location"]["coordinates"] == [47.5079, -18.8792]

    read = client.get(f"/api/v1/sites/{site_id}", headers=headers)
    assert read.json()["data"]["location"]["coordinates"] == [47.5079, -18.8792]

    mine = client.get("/api/v1/sites/me", headers=headers)
    assert mine.json()["data"][0]["location"]["coordinates"] == [47.5079, -18.8792]


def test_only_owner_or_admin_can_update(db_session, user, make_user, admin, make_site, ctx):
    site = make_site(user)
    stranger = make_user()
    service = SiteService(db_session)

    with pytest.raises(ForbiddenError):
        service.update(site.id, SiteUpdate(site_name="Autre"), stranger, ctx)

    assert service.update(site.id, SiteUpdate(site_name="Autre"), admin, ctx).site_name == "Autre"


def test_nearby_sorted_by_distance_within_radius(db_session, user, make_site):
    near = make_site(user, name="Proche", lat=-18.88, lng=47.51)
    nearer = make_site(user, name="Très proche", lat=-18.8792, lng=47.5080)
    make_site(user, name="Loin", lat=-21.45, lng=47.08)

    results, total = SiteService(db_session).find_by_location(
        NearbyQuery(lat=TANA[0], lng=TANA[1], radius_km=5)
    )

    assert total == 2
    assert [site.id for site, _ in results] == [nearer.id, near.id]
    assert results[0][1] < results[1][1] <= 5


def test_haversine_known_distance():
    # Antananarivo - Fianarantsoa, environ 300 km
    assert 280 < haversine_km(-18.8792, 47.5079, -21.4536, 47.0857) < 300


def test_delete_site(client, user, make_site, auth_headers):
    site = make_site(user)

    response = client.delete(f"/api/v1/sites/{site.id}", headers=auth_headers(user))
    assert response.status_code == 200

    missing = client.get(f"/api/v1/sites/{site.id}", headers=auth_headers(user))
    assert missing.status_code == 404
    assert missing.json() == {"status": "error", "message": "Site non trouvé", "data": None}
