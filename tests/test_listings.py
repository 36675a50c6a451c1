import json
from datetime import datetime

from sqlalchemy.exc import OperationalError

from app.models import Listing, User

AD = {
    "title": "Harbour view apartment",
    "description": "Three bedrooms with a balcony",
    "address": "Sydney NSW",
    "propertyType": "Residential-Apartment",
    "action": "Sell",
    "pricing": {"price": 850000},
    "propertyDetails": {"bedrooms": 3, "bathrooms": 2, "floorNumber": 7},
    "amenities": ["Gym", "Lift"],
    "features": {"view": "Harbour"},
}

IMAGES = [("images", ("front.jpg", b"jpeg-bytes", "image/jpeg"))]


def create_ad(client, headers, ad=None, files=IMAGES):
    return client.post(
        "/api/create-ad",
        data={"payload": json.dumps(ad or AD)},
        files=files,
        headers=headers,
    )


def update_body(listing, **changes):
    body = dict(AD)
    body["photos"] = [
        {"url": p["url"], "key": p["key"], "uploadedBy": p["uploadedBy"]} for p in listing["photos"]
    ]
    body.update(changes)
    return body


# ── Create ─────────────────────────────────────────────────────────────────────

def test_create_ad(client, db, make_user, auth_headers, geocoder, image_store):
    user = make_user()

    response = create_ad(client, auth_headers(user))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    ad = body["ad"]
    assert ad["slug"].startswith("residential-apartment-sell-sydney-nsw-850000-")
    assert ad["location"] == {"type": "Point", "coordinates": [151.2093, -33.8688]}
    assert ad["photos"] == image_store.stored
    assert ad["postedBy"]["email"] == user.email
    assert "hashed_password" not in ad["postedBy"]
    assert "geocodeResult" not in ad and "geocode_result" not in ad
    assert ad["status"] == "In market"
    assert ad["isNew"] is True
    assert [h["price"] for h in ad["pricing"]["priceHistory"]] == [850000]
    assert "Seller" in body["user"]["roles"]
    assert geocoder.calls == ["Sydney NSW"]


def test_create_ad_missing_price_persists_nothing(client, db, make_user, auth_headers):
    user = make_user()
    ad = {k: v for k, v in AD.items() if k != "pricing"}

    response = create_ad(client, auth_headers(user), ad)

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Price is required"}
    assert db.query(Listing).count() == 0
    db.refresh(user)
    assert user.roles == ["Buyer"]


def test_create_ad_required_fields_in_order(client, make_user, auth_headers):
    user = make_user()
    expectations = [
        ("title", "Title is required"),
        ("description", "Description is required"),
        ("address", "Address is required"),
        ("propertyType", "Property Type is required"),
        ("action", "Property Action (Sell/Rent) is required"),
    ]
    for field, message in expectations:
        ad = {k: v for k, v in AD.items() if k != field}
        response = create_ad(client, auth_headers(user), ad)
        assert response.json()["error"] == message


def test_create_ad_requires_an_image(client, make_user, auth_headers):
    user = make_user()

    response = create_ad(client, auth_headers(user), files=None)

    assert response.status_code == 400
    assert response.json()["error"] == "At least one image is required"


def test_create_ad_requires_login(client):
    assert create_ad(client, {}).status_code == 401


def test_create_ad_geocoding_failure(client, db, make_user, auth_headers):
    user = make_user()
    ad = dict(AD, address="Nowhere Land")

    response = create_ad(client, auth_headers(user), ad)

    assert response.status_code == 502
    assert db.query(Listing).count() == 0


def test_create_land_plot_requires_land_size(client, make_user, auth_headers):
    user = make_user()
    ad = dict(AD, propertyType="Land-Plot", propertyDetails={})

    response = create_ad(client, auth_headers(user), ad)
    assert response.json()["error"] == "Land size is required for Land plots"

    ad["propertyDetails"] = {"landSize": 600}
    response = create_ad(client, auth_headers(user), ad)
    assert response.json()["error"] == "Land size type is required for Land plots"


def test_create_ad_rejects_unknown_enum(client, make_user, auth_headers):
    user = make_user()

    response = create_ad(client, auth_headers(user), dict(AD, action="Lease"))

    assert response.status_code == 422
    assert response.json()["success"] is False


# ── Read ───────────────────────────────────────────────────────────────────────

def test_read_ad_not_found(client):
    response = client.get("/api/ad/missing-slug")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Ad not found"}


def test_read_ad_returns_three_nearest_related(client, make_user, make_listing):
    owner = make_user()
    ad = make_listing(owner)
    lon, lat = ad.longitude, ad.latitude
    nearby = [make_listing(owner, location=(lon, lat + 0.01 * n)) for n in (5, 1, 4, 2, 3)]
    make_listing(owner, location=(lon, lat + 0.001), action="Rent")
    make_listing(owner, location=(lon, lat + 0.001), property_type="Residential-House")
    make_listing(owner, location=(144.9631, -37.8136))

    response = client.get(f"/api/ad/{ad.slug}")

    assert response.status_code == 200
    related = response.json()["related"]
    expected = [nearby[1], nearby[3], nearby[4]]
    assert [r["id"] for r in related] == [str(e.id) for e in expected]
    assert all(r["id"] != str(ad.id) for r in related)


def test_read_ad_counts_views(client, db, make_user, make_listing, auth_headers):
    owner = make_user()
    viewer = make_user()
    ad = make_listing(owner)

    client.get(f"/api/ad/{ad.slug}")
    client.get(f"/api/ad/{ad.slug}", headers=auth_headers(viewer))
    client.get(f"/api/ad/{ad.slug}", headers=auth_headers(viewer))

    db.refresh(ad)
    assert ad.views_total == 3
    assert ad.views_unique == [str(viewer.id)]
    assert ad.last_viewed_at is not None


def test_read_ad_survives_view_recording_failure(client, db, make_user, make_listing, monkeypatch):
    owner = make_user()
    ad = make_listing(owner)
    nearby = make_listing(owner)

    def broken_commit():
        raise OperationalError("UPDATE listings", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "commit", broken_commit)

    response = client.get(f"/api/ad/{ad.slug}")

    assert response.status_code == 200
    body = response.json()
    assert body["ad"]["id"] == str(ad.id)
    assert [r["id"] for r in body["related"]] == [str(nearby.id)]
    monkeypatch.undo()
    db.refresh(ad)
    assert ad.views_total == 0


def test_read_ad_keeps_updated_at(client, db, make_user, make_listing, auth_headers):
    owner = make_user()
    viewer = make_user()
    edited = datetime(2020, 1, 1)
    ad = make_listing(owner, updated_at=edited)

    client.get(f"/api/ad/{ad.slug}", headers=auth_headers(viewer))

    db.refresh(ad)
    assert ad.views_total == 1
    assert ad.views_unique == [str(viewer.id)]
    assert ad.updated_at == edited


# ── Browse ─────────────────────────────────────────────────────────────────────

def test_browse_ads_paginates_by_two(client, make_user, make_listing):
    owner = make_user()
    for _ in range(3):
        make_listing(owner)
    make_listing(owner, published=False)

    first = client.get("/api/ads/1").json()
    second = client.get("/api/ads/2").json()

    assert first["total"] == 3
    assert first["totalPages"] == 2
    assert len(first["ads"]) == 2
    assert len(second["ads"]) == 1


def test_browse_ads_filters_by_action(client, make_user, make_listing):
    owner = make_user()
    make_listing(owner, action="Rent")
    make_listing(owner, action="Sell")

    body = client.get("/api/ads/1", params={"action": "Rent"}).json()

    assert body["total"] == 1
    assert body["ads"][0]["action"] == "Rent"


def test_user_ads_include_unpublished(client, make_user, make_listing, auth_headers):
    owner = make_user()
    other = make_user()
    make_listing(owner, published=False)
    make_listing(other)

    body = client.get("/api/user-ads/1", headers=auth_headers(owner)).json()

    assert body["total"] == 1


# ── Update ─────────────────────────────────────────────────────────────────────

def test_update_ad_appends_price_history(client, db, make_user, auth_headers):
    user = make_user()
    created = create_ad(client, auth_headers(user)).json()["ad"]

    body = update_body(created, pricing={"price": 900000})
    response = client.put(f"/api/update-ad/{created['slug']}", json=body, headers=auth_headers(user))

    assert response.status_code == 200
    ad = response.json()["ad"]
    history = ad["pricing"]["priceHistory"]
    assert [h["price"] for h in history] == [850000, 900000]
    assert history[0] == created["pricing"]["priceHistory"][0]
    assert ad["slug"] != created["slug"]
    assert ad["slug"].startswith("residential-apartment-sell-sydney-nsw-900000-")


def test_update_ad_same_price_keeps_history(client, make_user, auth_headers, geocoder):
    user = make_user()
    created = create_ad(client, auth_headers(user)).json()["ad"]

    body = update_body(created, title="Renamed")
    ad = client.put(f"/api/update-ad/{created['slug']}", json=body, headers=auth_headers(user)).json()["ad"]

    assert ad["title"] == "Renamed"
    assert len(ad["pricing"]["priceHistory"]) == 1
    # Address unchanged, so no second geocode
    assert geocoder.calls == ["Sydney NSW"]


def test_update_ad_regeocodes_changed_address(client, make_user, auth_headers):
    user = make_user()
    created = create_ad(client, auth_headers(user)).json()["ad"]

    body = update_body(created, address="Parramatta NSW")
    ad = client.put(f"/api/update-ad/{created['slug']}", json=body, headers=auth_headers(user)).json()["ad"]

    assert ad["location"]["coordinates"] == [151.0011, -33.8150]


def test_update_ad_leaves_omitted_fields(client, make_user, auth_headers):
    user = make_user()
    created = create_ad(client, auth_headers(user)).json()["ad"]

    body = update_body(created)
    body.pop("amenities")
    body["features"] = None
    ad = client.put(f"/api/update-ad/{created['slug']}", json=body, headers=auth_headers(user)).json()["ad"]

    assert ad["amenities"] == ["Gym", "Lift"]
    assert ad["features"] == {"view": "Harbour"}


def test_update_ad_requires_photos(client, make_user, auth_headers):
    user = make_user()
    created = create_ad(client, auth_headers(user)).json()["ad"]

    body = update_body(created, photos=[])
    response = client.put(f"/api/update-ad/{created['slug']}", json=body, headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json()["error"] == "At least one image is required"


def test_update_ad_unknown_slug(client, make_user, auth_headers):
    user = make_user()
    body = update_body({"photos": [{"url": "u", "key": "k", "uploadedBy": str(user.id)}]})

    response = client.put("/api/update-ad/nope", json=body, headers=auth_headers(user))

    assert response.status_code == 404


def test_non_owner_cannot_modify(client, db, make_user, make_listing, auth_headers):
    owner = make_user()
    intruder = make_user()
    ad = make_listing(owner)
    slug = ad.slug
    body = update_body({"photos": ad.photos}, title="Hijacked")

    update = client.put(f"/api/update-ad/{slug}", json=body, headers=auth_headers(intruder))
    status = client.put(f"/api/update-ad-status/{slug}", json={"status": "Sold"}, headers=auth_headers(intruder))
    delete = client.delete(f"/api/delete-ad/{slug}", headers=auth_headers(intruder))

    assert update.status_code == status.status_code == delete.status_code == 401
    db.expire_all()
    unchanged = db.query(Listing).filter(Listing.slug == slug).one()
    assert unchanged.title == "Sunny apartment"
    assert unchanged.status == "In market"


# ── Status & delete ────────────────────────────────────────────────────────────

def test_update_status(client, make_user, make_listing, auth_headers):
    owner = make_user()
    ad = make_listing(owner)

    response = client.put(f"/api/update-ad-status/{ad.slug}", json={"status": "Under offer"}, headers=auth_headers(owner))

    assert response.status_code == 200
    assert response.json()["ad"]["status"] == "Under offer"


def test_update_status_rejects_unknown_value(client, make_user, make_listing, auth_headers):
    owner = make_user()
    ad = make_listing(owner)

    response = client.put(f"/api/update-ad-status/{ad.slug}", json={"status": "Vanished"}, headers=auth_headers(owner))

    assert response.status_code == 422


def test_delete_ad_removes_images(client, db, make_user, make_listing, auth_headers, image_store):
    owner = make_user()
    ad = make_listing(owner)
    slug = ad.slug

    response = client.delete(f"/api/delete-ad/{slug}", headers=auth_headers(owner))

    assert response.status_code == 200
    assert db.query(Listing).filter(Listing.slug == slug).count() == 0
    assert image_store.deleted == ["a.jpeg"]


def test_delete_ad_survives_image_cleanup_failure(client, db, make_user, make_listing, auth_headers, image_store):
    owner = make_user()
    ad = make_listing(owner)
    image_store.fail_delete = True

    response = client.delete(f"/api/delete-ad/{ad.slug}", headers=auth_headers(owner))

    assert response.status_code == 200
    assert db.query(Listing).count() == 0


def test_deleting_owner_removes_listings(db, make_user, make_listing):
    owner = make_user()
    make_listing(owner)

    db.delete(db.get(User, owner.id))
    db.commit()

    assert db.query(Listing).count() == 0


# ── Images ─────────────────────────────────────────────────────────────────────

def test_upload_image(client, make_user, auth_headers, image_store):
    user = make_user()

    response = client.post(
        "/api/upload-image",
        files=[("images", ("a.jpg", b"1", "image/jpeg")), ("images", ("b.jpg", b"2", "image/jpeg"))],
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    results = response.json()["results"]
    assert len(results) == 2
    assert all(r["uploadedBy"] == str(user.id) for r in results)


def test_upload_image_storage_failure(client, make_user, auth_headers, image_store):
    user = make_user()
    image_store.fail_store = True

    response = client.post(
        "/api/upload-image",
        files=[("images", ("a.jpg", b"1", "image/jpeg"))],
        headers=auth_headers(user),
    )

    assert response.status_code == 502


def test_remove_image_only_by_uploader(client, make_user, auth_headers, image_store):
    user = make_user()
    other = make_user()
    body = {"key": "a.jpeg", "uploadedBy": str(user.id)}

    denied = client.request("DELETE", "/api/remove-image", json=body, headers=auth_headers(other))
    allowed = client.request("DELETE", "/api/remove-image", json=body, headers=auth_headers(user))

    assert denied.status_code == 401
    assert allowed.json() == {"success": True}
    assert image_store.deleted == ["a.jpeg"]
